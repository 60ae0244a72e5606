# src/atlas_delivery/core/pipeline/project.py
"""
Projeto de build: a especificação declarada que o serviço externo de build
executa para uma BuildAction.

O Engine não interpreta o `buildspec`; apenas o repassa ao serviço.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from atlas_delivery.core.iam.policy import Role


@dataclass(frozen=True)
class BuildProject:
    """
    Descritor imutável de um projeto de build.

    Campos:
        - name: identificador estável do projeto
        - buildspec: especificação opaca entregue ao serviço de build
        - environment: variáveis de ambiente da build
        - role: identidade com a qual a build executa (opcional)
        - description: texto livre
    """

    name: str
    buildspec: Dict[str, Any] = field(default_factory=dict)
    environment: Dict[str, str] = field(default_factory=dict)
    role: Optional[Role] = field(default=None, compare=False)
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("project.name must be a non-empty string")

    def describe(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "buildspec": self.buildspec,
            "environment": dict(self.environment),
            "role": self.role.name if self.role is not None else None,
        }
