# src/atlas_delivery/core/pipeline/actions.py
"""
Variantes concretas de Action: Source, Build/Test e Approval.

- SourceAction: snapshot do objeto de source (bucket + key fixa) para o
  artefato de saída da execução. A detecção de mudanças e o disparo de
  novas execuções ficam com o `SourcePoller`.
- BuildAction: entrega o artefato de entrada ao serviço de build, bloqueia
  até o status terminal e grava a saída em caso de sucesso.
- ApprovalAction: publica um pedido de aprovação e bloqueia até a decisão.
  Sem timeout por padrão: a espera indefinida é o comportamento da gate.

Todas as falhas são levantadas como `AtlasException`; nenhuma Action
repete trabalho após uma falha.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from atlas_delivery.core.errors import approval_rejected, build_failed
from atlas_delivery.core.exceptions import ApprovalTimedOut, ArtifactNotFound
from atlas_delivery.core.iam.policy import Role
from atlas_delivery.integrations.approval import ApprovalRequest
from atlas_delivery.integrations.build import BuildRequest

from .context import ExecutionContext
from .project import BuildProject
from .types import ActionKind, ActionResult, ActionStatus, Artifact


def _check_name(name: str) -> None:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("action.name must be a non-empty string")


@dataclass
class SourceAction:
    """Lê o objeto `bucket/bucket_key` e o publica como artefato de saída."""

    name: str
    bucket: str
    bucket_key: str
    output: Artifact
    poll_for_source_changes: bool = True
    run_order: int = 1
    role: Optional[Role] = None
    input: Optional[Artifact] = field(default=None, init=False)
    kind: ActionKind = field(default=ActionKind.SOURCE, init=False)

    def __post_init__(self) -> None:
        _check_name(self.name)

    def run(self, ctx: ExecutionContext, *, stage: str) -> ActionResult:
        current = ctx.artifacts.call_store(ctx.store.head, self.bucket, self.bucket_key)
        if current is None:
            raise ArtifactNotFound(
                message="Objeto de source não encontrado",
                details={"bucket": self.bucket, "key": self.bucket_key, "action": self.name},
                hint="Publique o pacote de source na chave monitorada.",
            )

        data = ctx.artifacts.call_store(ctx.store.get, current)
        handle = ctx.artifacts.write(self.output.name, data, producing_action=self.name)

        ctx.log(
            level="info",
            message="source snapshot stored",
            stage=stage,
            action=self.name,
            source_sha256=current.sha256,
            bytes=handle.size,
        )
        return ActionResult(
            action_name=self.name,
            kind=self.kind,
            status=ActionStatus.SUCCEEDED,
            summary="source snapshot stored",
            output=handle,
            metadata={"source_key": self.bucket_key, "source_sha256": current.sha256},
        )

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "bucket": self.bucket,
            "bucket_key": self.bucket_key,
            "output": self.output.name,
            "poll_for_source_changes": self.poll_for_source_changes,
            "run_order": self.run_order,
        }


@dataclass
class BuildAction:
    """Executa um `BuildProject` no serviço externo (deploy ou testes)."""

    name: str
    project: BuildProject
    input: Artifact
    output: Optional[Artifact] = None
    run_order: int = 1
    role: Optional[Role] = None
    kind: ActionKind = field(default=ActionKind.BUILD, init=False)

    def __post_init__(self) -> None:
        _check_name(self.name)
        if self.role is None:
            self.role = self.project.role

    def run(self, ctx: ExecutionContext, *, stage: str) -> ActionResult:
        source = ctx.artifacts.read(self.input.name)
        request = BuildRequest(
            project=self.project,
            source=source,
            pipeline_name=ctx.pipeline_name,
            execution_id=ctx.execution_id,
            action_name=self.name,
            environment=dict(self.project.environment),
        )
        ctx.log(level="info", message="build started", stage=stage, action=self.name, project=self.project.name)

        outcome = ctx.build_service.run_build(request)
        if not outcome.succeeded:
            ctx.log(
                level="error",
                message="build failed",
                stage=stage,
                action=self.name,
                project=self.project.name,
                build_status=outcome.status,
            )
            raise build_failed(
                action=self.name,
                project=self.project.name,
                build_status=outcome.status,
                logs=outcome.logs,
            )

        handle = None
        if self.output is not None:
            handle = ctx.artifacts.write(self.output.name, outcome.output, producing_action=self.name)

        ctx.log(level="info", message="build succeeded", stage=stage, action=self.name, project=self.project.name)
        return ActionResult(
            action_name=self.name,
            kind=self.kind,
            status=ActionStatus.SUCCEEDED,
            summary=f"build '{self.project.name}' succeeded",
            output=handle,
            metadata={"project": self.project.name, "build_status": outcome.status},
        )

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "project": self.project.describe(),
            "input": self.input.name,
            "output": self.output.name if self.output is not None else None,
            "run_order": self.run_order,
            "role": self.role.name if self.role is not None else None,
        }


@dataclass
class ApprovalAction:
    """Gate manual: bloqueia até aprovar/rejeitar."""

    name: str
    notify: Tuple[str, ...] = ()
    message: Optional[str] = None
    run_order: int = 1
    role: Optional[Role] = None
    input: Optional[Artifact] = field(default=None, init=False)
    output: Optional[Artifact] = field(default=None, init=False)
    kind: ActionKind = field(default=ActionKind.APPROVAL, init=False)

    def __post_init__(self) -> None:
        _check_name(self.name)
        self.notify = tuple(self.notify)

    def run(self, ctx: ExecutionContext, *, stage: str) -> ActionResult:
        token = ctx.approval_channel.request(
            ApprovalRequest(
                pipeline_name=ctx.pipeline_name,
                execution_id=ctx.execution_id,
                stage_name=stage,
                action_name=self.name,
                notify=self.notify,
                message=self.message,
            )
        )
        ctx.log(level="info", message="waiting for approval", stage=stage, action=self.name, token=token)

        timeout = ctx.settings.approval_timeout_seconds
        decision = ctx.approval_channel.wait(token, timeout=timeout)
        if decision is None:
            raise ApprovalTimedOut(
                message="Prazo de aprovação expirou",
                details={"action": self.name, "timeout_seconds": timeout},
                hint="Dispare nova execução ou aumente approval.timeout_seconds.",
                decision_required=True,
            )
        if not decision.approved:
            ctx.log(level="warning", message="approval rejected", stage=stage, action=self.name, reviewer=decision.reviewer)
            raise approval_rejected(action=self.name, reviewer=decision.reviewer, comment=decision.comment)

        ctx.log(level="info", message="approved", stage=stage, action=self.name, reviewer=decision.reviewer)
        return ActionResult(
            action_name=self.name,
            kind=self.kind,
            status=ActionStatus.SUCCEEDED,
            summary="approved",
            metadata={"reviewer": decision.reviewer, "comment": decision.comment},
        )

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "notify": list(self.notify),
            "run_order": self.run_order,
        }
