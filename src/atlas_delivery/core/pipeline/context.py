# src/atlas_delivery/core/pipeline/context.py
"""
Contexto de execução compartilhado do pipeline.

Este módulo define o `ExecutionContext`, a estrutura passada a todas as
Actions de uma execução. É o único meio permitido de:
    - ler e gravar artefatos da execução (slots write-once)
    - acessar os colaboradores externos (build, aprovação, store)
    - registrar logs estruturados
    - atualizar o histórico da execução

Princípios fundamentais:
    - Isolamento por execução (cada execução possui seu próprio contexto)
    - Ausência de estado global compartilhado
    - Actions paralelas de um Stage compartilham o contexto: toda mutação
      é protegida por lock

Invariantes:
    - Logs sempre incluem `execution_id`, `stage` e `action`
    - O histórico só é alterado dentro de `recording()`

Limites explícitos:
    - Não executa Actions
    - Não decide ordem de execução
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from atlas_delivery.core.artifacts.slots import ExecutionArtifacts
from atlas_delivery.core.artifacts.store import ArtifactStore
from atlas_delivery.core.config.settings import EngineSettings
from atlas_delivery.core.traceability.history import ExecutionHistory
from atlas_delivery.integrations.approval import ApprovalChannel
from atlas_delivery.integrations.build import BuildService


@dataclass
class ExecutionContext:
    """
    Contexto de uma execução de pipeline.

    Campos canônicos:
    - execution_id / pipeline_name / created_at: identidade da execução
    - config / settings: configuração efetiva e sua visão tipada
    - artifacts: slots write-once de artefatos
    - store / build_service / approval_channel: colaboradores externos
    - history: histórico forense da execução
    - events: log estruturado da execução
    """

    execution_id: str
    pipeline_name: str
    created_at: datetime
    config: Dict[str, Any]
    settings: EngineSettings
    artifacts: ExecutionArtifacts
    store: ArtifactStore
    build_service: BuildService
    approval_channel: ApprovalChannel
    history: ExecutionHistory

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    @contextmanager
    def recording(self) -> Iterator[ExecutionHistory]:
        """Acesso exclusivo ao histórico (Actions paralelas escrevem nele)."""
        with self._lock:
            yield self.history

    # -----------------------------
    # Logging
    # -----------------------------
    def log(
        self,
        *,
        level: str,
        message: str,
        stage: Optional[str] = None,
        action: Optional[str] = None,
        **extra: Any,
    ) -> None:
        event = {
            "execution_id": self.execution_id,
            "stage": stage,
            "action": action,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        with self._lock:
            self.events.append(event)
