# src/atlas_delivery/core/iam/policy.py
"""
Role/Permission Binding do Atlas Delivery.

Este módulo associa identidades de execução (roles) ao subconjunto de
operações de controle de pipeline que elas podem invocar.

Modelo:
    - ServicePrincipal → serviço que assume uma role (ex.: serviço de build)
    - PolicyStatement  → conjunto de operações permitidas sobre recursos
    - Role             → identidade de execução: principal confiável + statements
    - PolicyAuthority  → resolve `assumed_by(principal)` e `authorize(...)`

Decisões arquiteturais:
    - Fail closed: operação não listada é negada
    - Recursos aceitam id exato, `*` (todos) ou padrão glob (`pipeline-*`)
    - Não existem statements de negação: apenas allow explícito

Invariantes:
    - Uma Role sem statements não autoriza nada
    - `authorize` nunca altera estado

Limites explícitos:
    - Não emite credenciais
    - Não consulta serviço de identidade externo
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from atlas_delivery.core.errors import permission_denied


# Operações de controle expostas a pipelines colaboradores/filhos
GET_PIPELINE_EXECUTION = "codepipeline:GetPipelineExecution"
START_PIPELINE_EXECUTION = "codepipeline:StartPipelineExecution"

ALL_RESOURCES = "*"


@dataclass(frozen=True)
class ServicePrincipal:
    """Principal de serviço (ex.: `codebuild.amazonaws.com`)."""

    service: str

    def __str__(self) -> str:
        return self.service


class PolicyStatement:
    """
    Statement de permissão (allow) com API fluente.

    Exemplo:
        PolicyStatement().add_actions(GET_PIPELINE_EXECUTION).add_all_resources()
    """

    def __init__(self, actions: Iterable[str] = (), resources: Iterable[str] = ()):
        self._actions: Set[str] = set(actions)
        self._resources: Set[str] = set(resources)

    def add_actions(self, *actions: str) -> "PolicyStatement":
        self._actions.update(actions)
        return self

    def add_resources(self, *resources: str) -> "PolicyStatement":
        self._resources.update(resources)
        return self

    def add_all_resources(self) -> "PolicyStatement":
        self._resources.add(ALL_RESOURCES)
        return self

    @property
    def actions(self) -> FrozenSet[str]:
        return frozenset(self._actions)

    @property
    def resources(self) -> FrozenSet[str]:
        return frozenset(self._resources)

    def allows(self, operation: str, resource: str) -> bool:
        if operation not in self._actions:
            return False
        return any(r == ALL_RESOURCES or fnmatchcase(resource, r) for r in self._resources)

    def describe(self) -> Dict[str, List[str]]:
        return {"actions": sorted(self._actions), "resources": sorted(self._resources)}


@dataclass
class Role:
    """
    Identidade de execução (ExecutionIdentity).

    Referenciada (não possuída) por Actions; o conjunto de operações
    permitidas é a união dos statements anexados.
    """

    name: str
    assumed_by: ServicePrincipal
    statements: List[PolicyStatement] = field(default_factory=list)

    def add_to_policy(self, statement: PolicyStatement) -> None:
        self.statements.append(statement)

    @property
    def allowed_operations(self) -> FrozenSet[str]:
        ops: Set[str] = set()
        for s in self.statements:
            ops.update(s.actions)
        return frozenset(ops)

    def describe(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "assumed_by": self.assumed_by.service,
            "statements": [s.describe() for s in self.statements],
        }


class PolicyAuthority:
    """Resolve identidades e decide autorizações (fail closed)."""

    def __init__(self, roles: Iterable[Role] = ()):
        self._roles: Dict[str, Role] = {}
        for role in roles:
            self.register(role)

    def register(self, role: Role) -> None:
        if not isinstance(role.name, str) or not role.name.strip():
            raise ValueError("role.name must be a non-empty string")
        if role.name in self._roles and self._roles[role.name] is not role:
            raise ValueError(f"Duplicate role name: {role.name}")
        self._roles[role.name] = role

    def roles(self) -> List[Role]:
        return list(self._roles.values())

    def assumed_by(self, principal: ServicePrincipal, *, role_name: Optional[str] = None) -> Role:
        """
        Retorna a role que o principal pode assumir.

        Raises:
            PermissionDenied: Se nenhuma role confiar no principal, ou se
                `role_name` não confiar nele.
        """
        candidates = [r for r in self._roles.values() if r.assumed_by == principal]
        if role_name is not None:
            candidates = [r for r in candidates if r.name == role_name]
        if not candidates:
            raise permission_denied(
                identity=principal.service,
                operation="sts:AssumeRole",
                resource=role_name or ALL_RESOURCES,
            )
        return candidates[0]

    def authorize(self, identity: Role, operation: str, resource: str = ALL_RESOURCES) -> bool:
        if identity.name not in self._roles or self._roles[identity.name] is not identity:
            return False
        return any(s.allows(operation, resource) for s in identity.statements)

    def require(self, identity: Role, operation: str, resource: str = ALL_RESOURCES) -> None:
        """Variante de `authorize` que levanta `PermissionDenied`."""
        if not self.authorize(identity, operation, resource):
            raise permission_denied(identity=identity.name, operation=operation, resource=resource)
