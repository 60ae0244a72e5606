# src/atlas_delivery/core/pipeline/types.py
"""
Tipos canônicos do pipeline do Atlas Delivery.

Este módulo define as estruturas e enums que padronizam a comunicação
entre Actions, Stages, Engine e a camada de rastreabilidade.

Componentes principais:
    - Artifact        → declaração (em tempo de definição) de um artefato
    - ActionKind      → variantes de Action (source, build, approval)
    - ActionStatus    → estados terminais de uma Action
    - StageStatus     → estados terminais de um Stage
    - ExecutionStatus → ciclo de vida de uma execução
    - PipelinePhase / PipelineState → máquina de estados do Engine
    - ActionResult / StageResult    → resultados imutáveis

Princípios fundamentais:
    - Tipos são estáveis e serializáveis
    - Valores textuais dos enums são canônicos (usados no histórico)
    - Nenhuma lógica de execução vive neste módulo
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from atlas_delivery.core.artifacts.store import ArtifactHandle


@dataclass(frozen=True)
class Artifact:
    """
    Declaração de artefato em tempo de definição.

    Um Artifact tem no máximo um produtor (a Action que o declara como
    `output`) e zero ou mais consumidores (Actions que o declaram como
    `input`). O handle físico só existe em tempo de execução.
    """

    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip() or "/" in self.name:
            raise ValueError(f"artifact name inválido: {self.name!r}")


class ActionKind(str, Enum):
    """Variantes de Action suportadas pelo Engine."""

    SOURCE = "source"
    BUILD = "build"
    APPROVAL = "approval"


class ActionStatus(str, Enum):
    """Estados terminais de uma Action."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class StageStatus(str, Enum):
    """Estados terminais de um Stage."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ExecutionStatus(str, Enum):
    """
    Ciclo de vida de uma execução.

    QUEUED → RUNNING → SUCCEEDED | FAILED
    """

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.SUCCEEDED, ExecutionStatus.FAILED)


class ExecutionTrigger(str, Enum):
    """Origem de uma execução."""

    SOURCE = "source"
    MANUAL = "manual"


class PipelinePhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineState:
    """
    Estado do Engine: `Idle`, `Running(i)`, `Succeeded`, `Failed(i)`.

    `stage_index` só é definido para RUNNING e FAILED.
    """

    phase: PipelinePhase
    stage_index: Optional[int] = None

    @classmethod
    def idle(cls) -> "PipelineState":
        return cls(PipelinePhase.IDLE)

    @classmethod
    def running(cls, stage_index: int) -> "PipelineState":
        return cls(PipelinePhase.RUNNING, stage_index)

    @classmethod
    def succeeded(cls) -> "PipelineState":
        return cls(PipelinePhase.SUCCEEDED)

    @classmethod
    def failed(cls, stage_index: int) -> "PipelineState":
        return cls(PipelinePhase.FAILED, stage_index)

    @property
    def is_terminal(self) -> bool:
        return self.phase in (PipelinePhase.SUCCEEDED, PipelinePhase.FAILED)

    def __str__(self) -> str:
        label = self.phase.value.capitalize()
        return label if self.stage_index is None else f"{label}({self.stage_index})"


@dataclass(frozen=True)
class ActionResult:
    """
    Resultado imutável da execução de uma Action.

    Campos:
        - action_name / kind: identidade da Action
        - status: SUCCEEDED ou FAILED
        - summary: resumo textual
        - output: handle do artefato produzido (quando houver)
        - error: AtlasErrorPayload serializado (quando FAILED)
        - metadata: dados livres (ex.: revisor da aprovação, status do build)
    """

    action_name: str
    kind: ActionKind
    status: ActionStatus
    summary: str = ""
    output: Optional[ArtifactHandle] = None
    error: Optional[Dict[str, Any]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == ActionStatus.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action_name": self.action_name,
            "kind": self.kind.value,
            "status": self.status.value,
            "summary": self.summary,
            "output": self.output.to_dict() if self.output is not None else None,
            "error": dict(self.error) if self.error is not None else None,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class StageResult:
    """
    Resultado imutável de um Stage.

    SUCCEEDED se e somente se todas as Actions tiveram sucesso; caso
    contrário FAILED com `failed_actions` contendo os nomes das que falharam.
    Actions de grupos (`run_order`) não executados não aparecem em
    `action_results`.
    """

    stage_name: str
    position: int
    status: StageStatus
    action_results: Dict[str, ActionResult] = field(default_factory=dict)
    failed_actions: FrozenSet[str] = frozenset()

    @property
    def succeeded(self) -> bool:
        return self.status == StageStatus.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage_name": self.stage_name,
            "position": self.position,
            "status": self.status.value,
            "failed_actions": sorted(self.failed_actions),
            "actions": {k: v.to_dict() for k, v in self.action_results.items()},
        }
