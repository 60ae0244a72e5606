# src/atlas_delivery/integrations/__init__.py
"""
Colaboradores externos consumidos como interfaces opacas.

    - build    → serviço de execução de builds (BuildService)
    - approval → canal de aprovação humana (ApprovalChannel)

Cada contrato acompanha um dublê em memória para execução local e testes.
"""

from .build import BuildOutcome, BuildRequest, BuildService, ScriptedBuildService
from .approval import ApprovalChannel, ApprovalDecision, ApprovalRequest, InMemoryApprovalChannel

__all__ = [
    "BuildOutcome",
    "BuildRequest",
    "BuildService",
    "ScriptedBuildService",
    "ApprovalChannel",
    "ApprovalDecision",
    "ApprovalRequest",
    "InMemoryApprovalChannel",
]
