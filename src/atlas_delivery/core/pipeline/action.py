# src/atlas_delivery/core/pipeline/action.py
"""
Contrato canônico de Action do Atlas Delivery.

Uma Action é a menor unidade de trabalho do pipeline: consome no máximo
um artefato (`input`) e produz no máximo um (`output`).

Princípios fundamentais:
    - Actions não conhecem o Engine nem os outros Stages
    - Artefatos são acessados exclusivamente via `ctx.artifacts`
    - Falhas são sinalizadas levantando `AtlasException`; o StageExecutor
      converte a exceção em `ActionResult` FAILED
    - Conformidade é garantida por duck typing (@runtime_checkable)

Invariantes:
    - `name` é único no pipeline
    - `run` é chamado no máximo uma vez por execução
    - Actions com o mesmo `run_order` em um Stage executam em paralelo
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from atlas_delivery.core.iam.policy import Role

from .context import ExecutionContext
from .types import ActionKind, ActionResult, Artifact


@runtime_checkable
class Action(Protocol):
    """
    Contrato de uma Action.

    Atributos obrigatórios:
        - name: identificador único e estável
        - kind: variante (`ActionKind`)
        - input / output: artefatos declarados (opcionais)
        - run_order: grupo de execução dentro do Stage (default 1)
        - role: identidade de execução referenciada (opcional)
    """

    name: str
    kind: ActionKind
    input: Optional[Artifact]
    output: Optional[Artifact]
    run_order: int
    role: Optional[Role]

    def run(self, ctx: ExecutionContext, *, stage: str) -> ActionResult:
        """Executa a Action uma única vez; levanta AtlasException em falha."""
        ...

    def describe(self) -> Dict[str, Any]:
        ...
