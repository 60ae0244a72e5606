# src/atlas_delivery/core/engine/engine.py
"""
Engine de execução de pipelines do Atlas Delivery.

O Engine é dono da lista ordenada de Stages (via `PipelinePlan`), da
máquina de estados da execução e da política de re-disparo por mudança
de source.

Máquina de estados (por pipeline):
    Idle → Running(0)               novo trigger
    Running(i) → Running(i+1)       Stage i SUCCEEDED
    Running(i) → Failed(i)          Stage i FAILED
    Running(last) → Succeeded       último Stage SUCCEEDED
    Succeeded | Failed(i) → Running(0)  próxima execução da fila

Concorrência:
    - No máximo uma execução RUNNING por pipeline; as demais aguardam em
      fila FIFO e iniciam somente após o estado terminal da corrente
    - Triggers de source são coalescidos: no máximo um pendente na fila
    - Starts manuais entram individualmente, até `engine.max_queued_executions`
    - Stages executam sequencialmente em uma thread worker dedicada

Decisões arquiteturais:
    - `ExecutionRecord` é imutável; atualizações usam `dataclasses.replace`
    - Estado e fila são protegidos por um único `threading.Condition`
    - Falhas de Action não sobem como exceção: viram StageResult FAILED
    - Erros inesperados do próprio Engine encerram a execução como FAILED
      e são registrados no log técnico (`logging`)

Limites explícitos:
    - Não cancela Actions em andamento
    - Não reexecuta Stages: recuperação é sempre uma nova execução
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Deque, Dict, FrozenSet, List, Optional, Tuple

from atlas_delivery import __version__
from atlas_delivery.core.artifacts.slots import ExecutionArtifacts
from atlas_delivery.core.artifacts.store import ArtifactStore
from atlas_delivery.core.config.hashing import compute_config_hash, compute_definition_hash
from atlas_delivery.core.config.loader import resolve_config
from atlas_delivery.core.config.settings import EngineSettings
from atlas_delivery.core.errors import engine_configuration_error, error_from_exception
from atlas_delivery.core.pipeline.context import ExecutionContext
from atlas_delivery.core.pipeline.definition import PipelineDefinition
from atlas_delivery.core.pipeline.types import (
    ExecutionStatus,
    ExecutionTrigger,
    PipelineState,
    StageResult,
)
from atlas_delivery.core.source.poller import SourcePoller
from atlas_delivery.core.traceability.history import (
    ExecutionHistory,
    create_history,
    execution_finished,
    save_history,
    stage_finished,
    stage_started,
)
from atlas_delivery.integrations.approval import ApprovalChannel
from atlas_delivery.integrations.build import BuildService

from .planner import PipelinePlan, plan_pipeline
from .stage import StageExecutor

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExecutionRecord:
    """
    Registro consultável de uma execução (`GetPipelineExecution`).

    `state` é None enquanto a execução está na fila.
    """

    execution_id: str
    pipeline_name: str
    trigger: ExecutionTrigger
    status: ExecutionStatus
    queued_at: datetime
    state: Optional[PipelineState] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    stage_results: Tuple[StageResult, ...] = ()
    error: Optional[Dict[str, Any]] = None
    history_path: Optional[str] = None

    @property
    def failed_actions(self) -> FrozenSet[str]:
        for r in self.stage_results:
            if not r.succeeded:
                return r.failed_actions
        return frozenset()

    def stage_result(self, stage_name: str) -> Optional[StageResult]:
        for r in self.stage_results:
            if r.stage_name == stage_name:
                return r
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "pipeline_name": self.pipeline_name,
            "trigger": self.trigger.value,
            "status": self.status.value,
            "state": str(self.state) if self.state is not None else None,
            "queued_at": self.queued_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "stages": [r.to_dict() for r in self.stage_results],
            "error": self.error,
            "history_path": self.history_path,
        }


class PipelineEngine:
    """Engine canônico do Atlas Delivery (planner + fila + executor de Stages)."""

    def __init__(
        self,
        *,
        definition: PipelineDefinition,
        store: ArtifactStore,
        build_service: BuildService,
        approval_channel: ApprovalChannel,
        config: Optional[Dict[str, Any]] = None,
    ):
        self.definition = definition
        self.plan: PipelinePlan = plan_pipeline(definition)
        self.config: Dict[str, Any] = resolve_config(config)
        self.settings = EngineSettings.from_config(self.config)

        self.store = store
        self.build_service = build_service
        self.approval_channel = approval_channel

        self._config_hash = compute_config_hash(self.config)
        self._definition_hash = compute_definition_hash(definition)
        self._stage_executor = StageExecutor(max_workers=self.settings.max_parallel_actions)

        self._cond = threading.Condition()
        self._state = PipelineState.idle()
        self._queue: Deque[str] = deque()
        self._records: Dict[str, ExecutionRecord] = {}
        self._order: List[str] = []
        self._current: Optional[str] = None
        self._worker: Optional[threading.Thread] = None

    @property
    def name(self) -> str:
        return self.plan.name

    @property
    def state(self) -> PipelineState:
        with self._cond:
            return self._state

    # ------------------------------------------------------------------
    # Trigger / fila
    # ------------------------------------------------------------------
    def start_execution(self, trigger: ExecutionTrigger = ExecutionTrigger.MANUAL) -> str:
        """
        Solicita uma nova execução e retorna seu execution id.

        Se o pipeline está ocioso (ou terminal), a execução inicia
        imediatamente na thread worker; caso contrário, aguarda na fila.
        Um trigger de source com outro trigger de source já pendente é
        coalescido e retorna o id da execução pendente.

        Raises:
            EngineConfigurationError: Fila cheia (`engine.max_queued_executions`).
        """
        trigger = ExecutionTrigger(trigger)
        with self._cond:
            if trigger == ExecutionTrigger.SOURCE:
                for pending in self._queue:
                    if self._records[pending].trigger == ExecutionTrigger.SOURCE:
                        logger.info("source trigger coalesced into pending execution %s", pending)
                        return pending

            if len(self._queue) >= self.settings.max_queued_executions:
                raise engine_configuration_error(
                    message="Fila de execuções cheia",
                    details={
                        "pipeline": self.name,
                        "max_queued_executions": self.settings.max_queued_executions,
                    },
                    hint="Aguarde a conclusão das execuções pendentes ou aumente engine.max_queued_executions.",
                )

            execution_id = str(uuid.uuid4())
            self._records[execution_id] = ExecutionRecord(
                execution_id=execution_id,
                pipeline_name=self.name,
                trigger=trigger,
                status=ExecutionStatus.QUEUED,
                queued_at=_now(),
            )
            self._order.append(execution_id)
            self._queue.append(execution_id)
            self._ensure_worker()
            self._cond.notify_all()

        logger.info("execution %s queued (pipeline=%s, trigger=%s)", execution_id, self.name, trigger.value)
        return execution_id

    def run_execution(
        self,
        trigger: ExecutionTrigger = ExecutionTrigger.MANUAL,
        timeout: Optional[float] = None,
    ) -> ExecutionRecord:
        """Variante síncrona: enfileira e bloqueia até o estado terminal."""
        return self.wait_for(self.start_execution(trigger), timeout=timeout)

    def _ensure_worker(self) -> None:
        # chamado com self._cond adquirido
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(
            target=self._drain_queue,
            name=f"pipeline-{self.name}",
            daemon=True,
        )
        self._worker.start()

    def _drain_queue(self) -> None:
        while True:
            with self._cond:
                if not self._queue:
                    self._worker = None
                    self._cond.notify_all()
                    return
                execution_id = self._queue.popleft()
                self._current = execution_id
            try:
                self._execute(execution_id)
            except Exception:
                logger.exception("worker failed to finalize execution %s", execution_id)
                self._abort(execution_id)
            finally:
                with self._cond:
                    self._current = None
                    self._cond.notify_all()

    def _abort(self, execution_id: str) -> None:
        with self._cond:
            record = self._records[execution_id]
            if record.status.is_terminal:
                return
            state = record.state if record.state is not None else PipelineState.running(0)
            failed = PipelineState.failed(state.stage_index if state.stage_index is not None else 0)
            self._records[execution_id] = replace(
                record,
                status=ExecutionStatus.FAILED,
                state=failed,
                finished_at=_now(),
            )
            self._state = failed
            self._cond.notify_all()

    # ------------------------------------------------------------------
    # Consulta
    # ------------------------------------------------------------------
    def get_execution(self, execution_id: Optional[str] = None) -> ExecutionRecord:
        """Retorna o registro de uma execução (default: a mais recente)."""
        with self._cond:
            if execution_id is None:
                if not self._order:
                    raise KeyError("no executions")
                execution_id = self._order[-1]
            return self._records[execution_id]

    def executions(self) -> List[ExecutionRecord]:
        with self._cond:
            return [self._records[e] for e in self._order]

    def running_execution(self) -> Optional[ExecutionRecord]:
        with self._cond:
            return self._records[self._current] if self._current else None

    def queued_executions(self) -> List[ExecutionRecord]:
        with self._cond:
            return [self._records[e] for e in self._queue]

    def wait_for(self, execution_id: str, timeout: Optional[float] = None) -> ExecutionRecord:
        with self._cond:
            if execution_id not in self._records:
                raise KeyError(execution_id)
            done = self._cond.wait_for(lambda: self._records[execution_id].status.is_terminal, timeout=timeout)
            if not done:
                raise TimeoutError(f"execution {execution_id} did not finish within {timeout}s")
            return self._records[execution_id]

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Bloqueia até não haver execução em andamento nem na fila."""
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._queue and self._current is None and self._worker is None,
                timeout=timeout,
            )

    def create_source_poller(self) -> SourcePoller:
        """Poller para a (primeira) SourceAction com `poll_for_source_changes`."""
        for action in self.plan.source_actions():
            if getattr(action, "poll_for_source_changes", False):
                return SourcePoller(
                    engine=self,
                    store=self.store,
                    bucket=action.bucket,
                    key=action.bucket_key,
                    interval=self.settings.poll_interval_seconds,
                    trigger_on_first_poll=self.settings.trigger_on_first_poll,
                )
        raise engine_configuration_error(
            message="Pipeline não possui SourceAction com polling habilitado",
            details={"pipeline": self.name},
        )

    # ------------------------------------------------------------------
    # Execução
    # ------------------------------------------------------------------
    def _update(self, execution_id: str, **changes: Any) -> ExecutionRecord:
        with self._cond:
            record = replace(self._records[execution_id], **changes)
            self._records[execution_id] = record
            if "state" in changes:
                self._state = record.state
            self._cond.notify_all()
            return record

    def _new_context(self, record: ExecutionRecord) -> ExecutionContext:
        history = create_history(
            execution_id=record.execution_id,
            pipeline_name=self.name,
            trigger=record.trigger.value,
            started_at=record.started_at or _now(),
            atlas_version=__version__,
            config_hash=self._config_hash,
            definition_hash=self._definition_hash,
        )
        return ExecutionContext(
            execution_id=record.execution_id,
            pipeline_name=self.name,
            created_at=record.started_at or _now(),
            config=self.config,
            settings=self.settings,
            artifacts=ExecutionArtifacts(
                store=self.store,
                bucket=self.plan.artifact_bucket,
                pipeline_name=self.name,
                execution_id=record.execution_id,
                settings=self.settings,
            ),
            store=self.store,
            build_service=self.build_service,
            approval_channel=self.approval_channel,
            history=history,
        )

    def _failed_at_current(self, execution_id: str) -> PipelineState:
        current = self.get_execution(execution_id).state
        return PipelineState.failed(current.stage_index if current and current.stage_index is not None else 0)

    def _execute(self, execution_id: str) -> None:
        record = self._update(
            execution_id,
            status=ExecutionStatus.RUNNING,
            started_at=_now(),
            state=PipelineState.running(0),
        )
        ctx: Optional[ExecutionContext] = None
        final_state: Optional[PipelineState] = None
        error: Optional[Dict[str, Any]] = None
        try:
            ctx = self._new_context(record)
            ctx.log(level="info", message="execution started", trigger=record.trigger.value)
            final_state = self._run_stages(ctx)
        except Exception as exc:
            logger.exception("execution %s aborted by unexpected error", execution_id)
            error = error_from_exception(exc).to_dict()
        finally:
            # estado terminal garantido, inclusive após falha interna
            if final_state is None:
                final_state = self._failed_at_current(execution_id)
            status = ExecutionStatus.SUCCEEDED if final_state == PipelineState.succeeded() else ExecutionStatus.FAILED
            finished_at = _now()
            history_path = self._close_history(ctx, status=status, state=final_state, ts=finished_at)
            self._update(
                execution_id,
                status=status,
                state=final_state,
                finished_at=finished_at,
                error=error,
                history_path=history_path,
            )
        logger.info("execution %s finished: %s", execution_id, final_state)

    def _close_history(
        self,
        ctx: Optional[ExecutionContext],
        *,
        status: ExecutionStatus,
        state: PipelineState,
        ts: datetime,
    ) -> Optional[str]:
        """Registra o fim da execução no histórico e o persiste; falhas aqui não mudam o resultado."""
        if ctx is None:
            return None
        try:
            with ctx.recording() as history:
                execution_finished(history, status=status.value, state=str(state), ts=ts)
            ctx.log(level="info", message="execution finished", status=status.value, state=str(state))
            return self._persist(ctx.history)
        except Exception:
            logger.exception("could not close history for execution %s", ctx.execution_id)
            return None

    def _run_stages(self, ctx: ExecutionContext) -> PipelineState:
        for planned in self.plan.stages:
            self._update(ctx.execution_id, state=PipelineState.running(planned.position))
            with ctx.recording() as history:
                stage_started(history, stage=planned.name, position=planned.position, ts=_now())
            ctx.log(level="info", message="stage started", stage=planned.name)

            result = self._stage_executor.execute(planned, ctx)

            with ctx.recording() as history:
                stage_finished(
                    history,
                    stage=planned.name,
                    ts=_now(),
                    status=result.status.value,
                    failed_actions=sorted(result.failed_actions),
                )
            with self._cond:
                results = self._records[ctx.execution_id].stage_results + (result,)
            self._update(ctx.execution_id, stage_results=results)

            if not result.succeeded:
                ctx.log(
                    level="error",
                    message="stage failed",
                    stage=planned.name,
                    failed_actions=sorted(result.failed_actions),
                )
                return PipelineState.failed(planned.position)
            ctx.log(level="info", message="stage succeeded", stage=planned.name)

        return PipelineState.succeeded()

    def _persist(self, history: ExecutionHistory) -> Optional[str]:
        if not self.settings.history_dir:
            return None
        path = Path(self.settings.history_dir) / self.name / f"{history.execution_id}.json"
        try:
            save_history(history, path)
        except (OSError, TypeError, ValueError):
            logger.exception("could not persist history for execution %s at %s", history.execution_id, path)
            return None
        return str(path)
