# src/atlas_delivery/core/engine/planner.py
"""
Planejador de execução do pipeline.

Este módulo valida a estrutura de uma `PipelineDefinition` e produz um
`PipelinePlan` imutável, consumido somente leitura pelo Engine.

O planner opera exclusivamente em nível estrutural, analisando:
    - nomes de Stages e Actions
    - posição das Actions de source
    - grafo produtor → consumidor de artefatos

A ordem dos Stages é a declarada pelo autor do pipeline; o planner não a
reordena. Dentro de um Stage, Actions são agrupadas por `run_order`
(grupos executam em ordem crescente; Actions do mesmo grupo em paralelo).

Invariantes garantidos pelo plano:
    - Cada artefato tem exatamente um produtor
    - Todo consumidor executa depois do produtor (stage anterior ou
      grupo de `run_order` anterior no mesmo stage)
    - Actions de source existem e ficam apenas no primeiro Stage

Limites explícitos:
    - Não executa Actions
    - Não interage com o ExecutionContext
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from atlas_delivery.core.pipeline.action import Action
from atlas_delivery.core.pipeline.definition import (
    DuplicateNameError,
    PipelineDefinition,
    PipelineDefinitionError,
)
from atlas_delivery.core.pipeline.types import ActionKind


class UnknownArtifactError(PipelineDefinitionError):
    """Action consome um artefato que nenhuma Action produz."""


class ArtifactOrderError(PipelineDefinitionError):
    """Action consome um artefato produzido no mesmo grupo ou depois dela."""


class MultipleProducersError(PipelineDefinitionError):
    """Mais de uma Action declara o mesmo artefato como saída."""


class InvalidStageLayoutError(PipelineDefinitionError):
    """Pipeline vazio, stage vazio, source fora do primeiro stage ou run_order inválido."""


@dataclass(frozen=True)
class PlannedStage:
    position: int
    name: str
    groups: Tuple[Tuple[Action, ...], ...]

    @property
    def actions(self) -> Tuple[Action, ...]:
        return tuple(a for g in self.groups for a in g)


@dataclass(frozen=True)
class PipelinePlan:
    name: str
    artifact_bucket: str
    stages: Tuple[PlannedStage, ...]
    definition: PipelineDefinition

    @property
    def last_index(self) -> int:
        return len(self.stages) - 1

    def source_actions(self) -> List[Action]:
        return [a for a in self.stages[0].actions if a.kind == ActionKind.SOURCE]

    def describe(self) -> Dict[str, Any]:
        return self.definition.describe()


def plan_pipeline(definition: PipelineDefinition) -> PipelinePlan:
    """
    Valida a definição e produz o plano de execução.

    Raises:
        InvalidStageLayoutError: Pipeline/stage vazio, source mal posicionado,
            `run_order` inválido.
        DuplicateNameError: Nome de Action repetido.
        MultipleProducersError: Artefato com mais de um produtor.
        UnknownArtifactError: Input sem produtor.
        ArtifactOrderError: Input produzido depois (ou junto) do consumidor.
    """
    stages = definition.stages
    if not stages:
        raise InvalidStageLayoutError(f"Pipeline '{definition.name}' has no stages")

    action_names: Dict[str, str] = {}
    # artefato -> (posição do stage, run_order, action)
    producers: Dict[str, Tuple[int, int, str]] = {}
    planned: List[PlannedStage] = []

    for position, stage in enumerate(stages):
        if not stage.actions:
            raise InvalidStageLayoutError(f"Stage '{stage.name}' has no actions")

        for action in stage.actions:
            name = getattr(action, "name", None)
            if not isinstance(name, str) or not name.strip():
                raise InvalidStageLayoutError("action.name must be a non-empty string")
            if name in action_names:
                raise DuplicateNameError(
                    f"Duplicate action name: {name} (stages '{action_names[name]}' and '{stage.name}')"
                )
            action_names[name] = stage.name

            run_order = getattr(action, "run_order", 1)
            if isinstance(run_order, bool) or not isinstance(run_order, int) or run_order < 1:
                raise InvalidStageLayoutError(f"Action '{name}' has invalid run_order: {run_order!r}")

            is_source = action.kind == ActionKind.SOURCE
            if position == 0 and not is_source:
                raise InvalidStageLayoutError(f"First stage may only contain source actions, found '{name}'")
            if position > 0 and is_source:
                raise InvalidStageLayoutError(f"Source action '{name}' must be in the first stage")

            output = getattr(action, "output", None)
            if output is not None:
                if output.name in producers:
                    raise MultipleProducersError(
                        f"Artifact '{output.name}' produced by '{producers[output.name][2]}' and '{name}'"
                    )
                producers[output.name] = (position, run_order, name)

        groups: Dict[int, List[Action]] = {}
        for action in stage.actions:
            groups.setdefault(action.run_order, []).append(action)
        planned.append(
            PlannedStage(
                position=position,
                name=stage.name,
                groups=tuple(tuple(groups[k]) for k in sorted(groups)),
            )
        )

    for position, stage in enumerate(stages):
        for action in stage.actions:
            artifact = getattr(action, "input", None)
            if artifact is None:
                continue
            if artifact.name not in producers:
                raise UnknownArtifactError(f"Action '{action.name}' consumes unknown artifact '{artifact.name}'")
            p_pos, p_order, p_name = producers[artifact.name]
            if (p_pos, p_order) >= (position, action.run_order):
                raise ArtifactOrderError(
                    f"Action '{action.name}' consumes '{artifact.name}' before its producer '{p_name}' completes"
                )

    return PipelinePlan(
        name=definition.name,
        artifact_bucket=definition.artifact_bucket,
        stages=tuple(planned),
        definition=definition,
    )
