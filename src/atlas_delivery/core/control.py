# src/atlas_delivery/core/control.py
"""
Operações de controle de pipeline expostas a pipelines colaboradores.

    - StartPipelineExecution(pipelineId)           → execution id
    - GetPipelineExecution(pipelineId[, execId])   → ExecutionRecord

Toda chamada é autorizada **antes** de qualquer efeito: uma identidade
sem permissão recebe `PermissionDenied` de forma síncrona e o estado do
pipeline não é alterado. O recurso avaliado nas policies é o nome do
pipeline.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from atlas_delivery.core.engine.engine import ExecutionRecord, PipelineEngine
from atlas_delivery.core.exceptions import ExecutionNotFound, PipelineNotFound
from atlas_delivery.core.iam.policy import (
    GET_PIPELINE_EXECUTION,
    START_PIPELINE_EXECUTION,
    PolicyAuthority,
    Role,
)
from atlas_delivery.core.pipeline.types import ExecutionTrigger


class PipelineControlService:
    """Fachada autorizada sobre um conjunto de Engines."""

    def __init__(self, authority: PolicyAuthority):
        self.authority = authority
        self._engines: Dict[str, PipelineEngine] = {}
        self._lock = threading.Lock()

    def register(self, engine: PipelineEngine, *, pipeline_id: Optional[str] = None) -> str:
        pipeline_id = pipeline_id or engine.name
        with self._lock:
            if pipeline_id in self._engines and self._engines[pipeline_id] is not engine:
                raise ValueError(f"Duplicate pipeline id: {pipeline_id}")
            self._engines[pipeline_id] = engine
        for role in engine.definition.roles():
            self.authority.register(role)
        return pipeline_id

    def pipelines(self) -> List[str]:
        with self._lock:
            return sorted(self._engines)

    def _engine(self, pipeline_id: str) -> PipelineEngine:
        with self._lock:
            engine = self._engines.get(pipeline_id)
        if engine is None:
            raise PipelineNotFound(
                message=f"Pipeline '{pipeline_id}' não registrado",
                details={"pipeline_id": pipeline_id},
            )
        return engine

    def start_pipeline_execution(self, identity: Role, pipeline_id: str) -> str:
        self.authority.require(identity, START_PIPELINE_EXECUTION, pipeline_id)
        return self._engine(pipeline_id).start_execution(ExecutionTrigger.MANUAL)

    def get_pipeline_execution(
        self,
        identity: Role,
        pipeline_id: str,
        execution_id: Optional[str] = None,
    ) -> ExecutionRecord:
        self.authority.require(identity, GET_PIPELINE_EXECUTION, pipeline_id)
        engine = self._engine(pipeline_id)
        try:
            return engine.get_execution(execution_id)
        except KeyError:
            raise ExecutionNotFound(
                message="Execução não encontrada",
                details={"pipeline_id": pipeline_id, "execution_id": execution_id},
            ) from None
