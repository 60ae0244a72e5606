# src/atlas_delivery/core/iam/__init__.py
"""Identidades de execução e autorização de operações de controle."""

from .policy import (
    ALL_RESOURCES,
    GET_PIPELINE_EXECUTION,
    START_PIPELINE_EXECUTION,
    PolicyAuthority,
    PolicyStatement,
    Role,
    ServicePrincipal,
)

__all__ = [
    "ALL_RESOURCES",
    "GET_PIPELINE_EXECUTION",
    "START_PIPELINE_EXECUTION",
    "PolicyAuthority",
    "PolicyStatement",
    "Role",
    "ServicePrincipal",
]
