# tests/core/iam/test_policy.py
"""
Testes do Role/Permission Binding (PolicyStatement, Role, PolicyAuthority).

Os testes asseguram que:
- `assumed_by` resolve a role confiada pelo principal, ou nega
- `authorize` é fail closed: operação ou recurso não listado é negado
- recursos aceitam `*`, id exato e padrão glob
- identidades não registradas nunca são autorizadas

Invariantes:
    - `authorize` nunca altera estado
    - Uma role sem statements não autoriza nada
"""

import pytest

from atlas_delivery.core.exceptions import PermissionDenied
from atlas_delivery.core.iam.policy import (
    GET_PIPELINE_EXECUTION,
    START_PIPELINE_EXECUTION,
    PolicyAuthority,
    PolicyStatement,
    Role,
    ServicePrincipal,
)

CODEBUILD = ServicePrincipal("codebuild.amazonaws.com")
LAMBDA = ServicePrincipal("lambda.amazonaws.com")


def _manager_role(*resources: str) -> Role:
    statement = PolicyStatement().add_actions(GET_PIPELINE_EXECUTION).add_actions(START_PIPELINE_EXECUTION)
    if resources:
        statement.add_resources(*resources)
    else:
        statement.add_all_resources()
    role = Role(name="orchestrator-codebuild-role", assumed_by=CODEBUILD)
    role.add_to_policy(statement)
    return role


def test_statement_fluent_builders():
    s = PolicyStatement().add_actions("a:One", "a:Two").add_resources("r1").add_all_resources()
    assert s.actions == frozenset({"a:One", "a:Two"})
    assert s.resources == frozenset({"r1", "*"})
    assert s.describe() == {"actions": ["a:One", "a:Two"], "resources": ["*", "r1"]}


def test_statement_without_resources_allows_nothing():
    s = PolicyStatement().add_actions(START_PIPELINE_EXECUTION)
    assert not s.allows(START_PIPELINE_EXECUTION, "AnyPipeline")


def test_assumed_by_returns_trusted_role():
    role = _manager_role()
    authority = PolicyAuthority([role])
    assert authority.assumed_by(CODEBUILD) is role


def test_assumed_by_untrusted_principal_is_denied():
    authority = PolicyAuthority([_manager_role()])
    with pytest.raises(PermissionDenied) as exc:
        authority.assumed_by(LAMBDA)
    assert exc.value.details["operation"] == "sts:AssumeRole"


def test_assumed_by_with_role_name():
    authority = PolicyAuthority([_manager_role()])
    with pytest.raises(PermissionDenied):
        authority.assumed_by(CODEBUILD, role_name="some-other-role")


def test_authorize_allows_listed_operations_on_all_resources():
    role = _manager_role()
    authority = PolicyAuthority([role])
    assert authority.authorize(role, START_PIPELINE_EXECUTION, "module-a-pipeline")
    assert authority.authorize(role, GET_PIPELINE_EXECUTION)


def test_authorize_fails_closed_for_unlisted_operations():
    role = _manager_role()
    authority = PolicyAuthority([role])
    assert not authority.authorize(role, "codepipeline:DeletePipeline", "module-a-pipeline")
    assert not authority.authorize(role, "codepipeline:PutApprovalResult")


def test_authorize_narrowed_resources():
    role = _manager_role("module-a-pipeline", "team-*")
    authority = PolicyAuthority([role])
    assert authority.authorize(role, START_PIPELINE_EXECUTION, "module-a-pipeline")
    assert authority.authorize(role, START_PIPELINE_EXECUTION, "team-payments")
    assert not authority.authorize(role, START_PIPELINE_EXECUTION, "module-b-pipeline")


def test_role_without_statements_authorizes_nothing():
    role = Role(name="empty", assumed_by=CODEBUILD)
    authority = PolicyAuthority([role])
    assert role.allowed_operations == frozenset()
    assert not authority.authorize(role, GET_PIPELINE_EXECUTION)


def test_unregistered_identity_is_never_authorized():
    """
    Uma role com o mesmo nome mas não registrada (ex.: forjada pelo
    chamador) não herda as permissões da role registrada.
    """
    registered = _manager_role()
    authority = PolicyAuthority([registered])
    forged = _manager_role()
    assert not authority.authorize(forged, START_PIPELINE_EXECUTION)


def test_require_raises_permission_denied():
    role = Role(name="reader", assumed_by=CODEBUILD)
    role.add_to_policy(PolicyStatement().add_actions(GET_PIPELINE_EXECUTION).add_all_resources())
    authority = PolicyAuthority([role])

    authority.require(role, GET_PIPELINE_EXECUTION, "p")
    with pytest.raises(PermissionDenied) as exc:
        authority.require(role, START_PIPELINE_EXECUTION, "p")
    assert exc.value.details == {"identity": "reader", "operation": START_PIPELINE_EXECUTION, "resource": "p"}


def test_register_rejects_conflicting_role_names():
    authority = PolicyAuthority([_manager_role()])
    with pytest.raises(ValueError):
        authority.register(_manager_role())
