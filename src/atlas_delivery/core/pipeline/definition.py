# src/atlas_delivery/core/pipeline/definition.py
"""
Definição declarativa de pipelines.

Um pipeline é uma sequência ordenada de Stages, cada um com uma lista
ordenada de Actions. A definição é montada uma vez (em tempo de
definição) e consumida somente leitura pelo Engine, após validação pelo
planner.

Responsabilidades do módulo:
    - Registrar Stages preservando a ordem de declaração
    - Rejeitar nomes de Stage duplicados no momento do registro
    - Expor uma descrição serializável (para hashing e histórico)

Limites explícitos:
    - Não valida o grafo de artefatos (ver `engine.planner`)
    - Não executa Actions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from atlas_delivery.core.iam.policy import Role

from .action import Action


class PipelineDefinitionError(ValueError):
    """Base para violações estruturais da definição de pipeline."""


class DuplicateNameError(PipelineDefinitionError):
    """Nome de Stage ou Action repetido no pipeline."""


@dataclass(frozen=True)
class Stage:
    """Grupo de Actions sincronizado por barreira."""

    name: str
    actions: Tuple[Action, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise PipelineDefinitionError("stage.name must be a non-empty string")
        object.__setattr__(self, "actions", tuple(self.actions))

    def describe(self) -> Dict[str, Any]:
        return {"name": self.name, "actions": [a.describe() for a in self.actions]}


@dataclass
class PipelineDefinition:
    """
    Definição de pipeline montada incrementalmente via `add_stage`.

    Campos:
        - name: identificador do pipeline (também usado como recurso nas policies)
        - artifact_bucket: bucket onde os artefatos das execuções são gravados
    """

    name: str
    artifact_bucket: str
    _stages: List[Stage] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise PipelineDefinitionError("pipeline.name must be a non-empty string")
        if not isinstance(self.artifact_bucket, str) or not self.artifact_bucket.strip():
            raise PipelineDefinitionError("artifact_bucket must be a non-empty string")

    def add_stage(self, *, name: str, actions: Sequence[Action]) -> Stage:
        if any(s.name == name for s in self._stages):
            raise DuplicateNameError(f"Duplicate stage name: {name}")
        stage = Stage(name=name, actions=tuple(actions))
        self._stages.append(stage)
        return stage

    @property
    def stages(self) -> Tuple[Stage, ...]:
        return tuple(self._stages)

    def stage(self, name: str) -> Stage:
        for s in self._stages:
            if s.name == name:
                return s
        raise KeyError(name)

    def actions(self) -> Iterable[Action]:
        for s in self._stages:
            yield from s.actions

    def roles(self) -> List[Role]:
        seen: Dict[str, Role] = {}
        for a in self.actions():
            role: Optional[Role] = getattr(a, "role", None)
            if role is not None:
                seen.setdefault(role.name, role)
        return list(seen.values())

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "artifact_bucket": self.artifact_bucket,
            "stages": [s.describe() for s in self._stages],
            "roles": [r.describe() for r in self.roles()],
        }
