# src/atlas_delivery/core/config/settings.py
"""
Visão tipada da configuração efetiva consumida pelo Engine.

O Engine nunca lê chaves soltas do dict de configuração durante a execução:
tudo passa por `EngineSettings.from_config`, que valida domínios uma única
vez, no startup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import InvalidConfigValueError


def _section(config: Dict[str, Any], *path: str) -> Dict[str, Any]:
    node: Any = config
    for key in path:
        node = (node or {}).get(key, {}) if isinstance(node, dict) else {}
    return node if isinstance(node, dict) else {}


def _positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidConfigValueError(f"'{key}' deve ser inteiro >= 1, recebido: {value!r}")
    return value


def _non_negative(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise InvalidConfigValueError(f"'{key}' deve ser número >= 0, recebido: {value!r}")
    return float(value)


@dataclass(frozen=True)
class EngineSettings:
    """Parâmetros operacionais do Engine, do poller e do artifact store."""

    max_parallel_actions: int = 4
    max_queued_executions: int = 16
    poll_interval_seconds: float = 60.0
    trigger_on_first_poll: bool = False
    approval_timeout_seconds: Optional[float] = None
    retry_attempts: int = 3
    retry_backoff_seconds: float = 0.5
    retry_max_backoff_seconds: float = 8.0
    history_dir: Optional[str] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EngineSettings":
        engine = _section(config, "engine")
        source = _section(config, "source")
        approval = _section(config, "approval")
        retry = _section(config, "store", "retry")
        history = _section(config, "history")

        timeout = approval.get("timeout_seconds")
        poll = _non_negative(source.get("poll_interval_seconds", 60.0), "source.poll_interval_seconds")
        if poll == 0:
            raise InvalidConfigValueError("'source.poll_interval_seconds' deve ser > 0")

        return cls(
            max_parallel_actions=_positive_int(engine.get("max_parallel_actions", 4), "engine.max_parallel_actions"),
            max_queued_executions=_positive_int(engine.get("max_queued_executions", 16), "engine.max_queued_executions"),
            poll_interval_seconds=poll,
            trigger_on_first_poll=bool(source.get("trigger_on_first_poll", False)),
            approval_timeout_seconds=None if timeout is None else _non_negative(timeout, "approval.timeout_seconds"),
            retry_attempts=_positive_int(retry.get("attempts", 3), "store.retry.attempts"),
            retry_backoff_seconds=_non_negative(retry.get("backoff_seconds", 0.5), "store.retry.backoff_seconds"),
            retry_max_backoff_seconds=_non_negative(
                retry.get("max_backoff_seconds", 8.0), "store.retry.max_backoff_seconds"
            ),
            history_dir=history.get("dir"),
        )
