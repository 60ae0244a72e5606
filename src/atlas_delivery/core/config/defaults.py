# src/atlas_delivery/core/config/defaults.py
"""
Configuração canônica embutida do Atlas Delivery.

Toda configuração efetiva é resolvida sobre estes valores. Overrides
(arquivos ou dicts) só precisam declarar as chaves que alteram.

Chaves:
    - engine.max_parallel_actions: paralelismo máximo de Actions dentro de um Stage
    - engine.max_queued_executions: limite da fila de execuções pendentes
    - source.poll_interval_seconds: intervalo de polling do objeto de source
    - source.trigger_on_first_poll: se a primeira versão observada dispara execução
    - approval.timeout_seconds: `None` = espera indefinida pela aprovação humana
    - store.retry.*: política de retry do chamador para StorageUnavailable
    - history.dir: diretório de persistência do histórico (`None` = apenas memória)
"""

from typing import Any, Dict


DEFAULT_CONFIG: Dict[str, Any] = {
    "engine": {
        "max_parallel_actions": 4,
        "max_queued_executions": 16,
    },
    "source": {
        "poll_interval_seconds": 60.0,
        "trigger_on_first_poll": False,
    },
    "approval": {
        "timeout_seconds": None,
    },
    "store": {
        "retry": {
            "attempts": 3,
            "backoff_seconds": 0.5,
            "max_backoff_seconds": 8.0,
        },
    },
    "history": {
        "dir": None,
    },
}
