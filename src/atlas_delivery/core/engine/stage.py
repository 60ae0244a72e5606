# src/atlas_delivery/core/engine/stage.py
"""
Executor de Stage: fan-out paralelo com barreira de fan-in.

As Actions de um grupo de `run_order` são submetidas a um
`ThreadPoolExecutor` e o Stage aguarda **todas** chegarem a um estado
terminal antes de decidir o resultado. Não há cancelamento: uma Action
que falha não interrompe as irmãs já em execução.

Regras:
    - Grupos executam em ordem crescente de `run_order`
    - Um grupo com falha impede a execução dos grupos seguintes
    - StageResult é SUCCEEDED sse todas as Actions executadas tiveram sucesso
    - Exceções nunca escapam do executor: viram ActionResult FAILED com
      AtlasErrorPayload (sem stack trace cru)
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Dict, Sequence

from atlas_delivery.core.errors import ENGINE_EXECUTION_ERROR, error_from_exception
from atlas_delivery.core.pipeline.action import Action
from atlas_delivery.core.pipeline.context import ExecutionContext
from atlas_delivery.core.pipeline.types import ActionResult, ActionStatus, StageResult, StageStatus
from atlas_delivery.core.traceability.history import action_finished, action_started

from .planner import PlannedStage

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class StageExecutor:
    """Executa um `PlannedStage` contra um `ExecutionContext`."""

    def __init__(self, *, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.max_workers = max_workers

    def execute(self, stage: PlannedStage, ctx: ExecutionContext) -> StageResult:
        results: Dict[str, ActionResult] = {}

        for group in stage.groups:
            results.update(self._run_group(stage.name, group, ctx))
            if any(not results[a.name].succeeded for a in group):
                break

        failed = frozenset(name for name, r in results.items() if not r.succeeded)
        return StageResult(
            stage_name=stage.name,
            position=stage.position,
            status=StageStatus.FAILED if failed else StageStatus.SUCCEEDED,
            action_results=results,
            failed_actions=failed,
        )

    def _run_group(
        self,
        stage_name: str,
        group: Sequence[Action],
        ctx: ExecutionContext,
    ) -> Dict[str, ActionResult]:
        if len(group) == 1:
            action = group[0]
            return {action.name: self._run_action(stage_name, action, ctx)}

        workers = min(self.max_workers, len(group))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"stage-{stage_name}") as pool:
            futures = {a.name: pool.submit(self._run_action, stage_name, a, ctx) for a in group}
            wait(list(futures.values()))

        return {name: f.result() for name, f in futures.items()}

    def _run_action(self, stage_name: str, action: Action, ctx: ExecutionContext) -> ActionResult:
        with ctx.recording() as history:
            action_started(history, stage=stage_name, action=action.name, kind=action.kind.value, ts=_now())

        try:
            result = action.run(ctx, stage=stage_name)
        except Exception as exc:
            payload = error_from_exception(exc, action=action.name)
            ctx.log(
                level="error",
                message=payload.message,
                stage=stage_name,
                action=action.name,
                error_type=payload.type,
            )
            result = ActionResult(
                action_name=action.name,
                kind=action.kind,
                status=ActionStatus.FAILED,
                summary=payload.message,
                error=payload.to_dict(),
            )
            if payload.type == ENGINE_EXECUTION_ERROR:
                logger.exception("unexpected failure in action %s (execution %s)", action.name, ctx.execution_id)

        with ctx.recording() as history:
            action_finished(history, stage=stage_name, action=action.name, ts=_now(), result=result.to_dict())
        return result
