# src/atlas_delivery/builders/projects.py
"""
Projetos de build da topologia padrão do orquestrador.

Cada fábrica devolve um `BuildProject` parametrizado pelo ambiente alvo
(`StageName`). O conteúdo do buildspec é opaco para o Engine.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from atlas_delivery.core.iam.policy import Role
from atlas_delivery.core.pipeline.project import BuildProject

SLIC_PIPELINE_SOURCE_ARTIFACT = "slic-pipeline-source.zip"


class StageName(str, Enum):
    """Ambientes de deploy."""

    STG = "stg"
    PROD = "prod"


def _buildspec(phase: str, stage_name: StageName) -> dict:
    return {
        "version": "0.2",
        "phases": {phase: {"commands": [f"{phase} --stage {stage_name.value}"]}},
    }


def orchestrator_deploy_project(stage_name: StageName, role: Optional[Role] = None) -> BuildProject:
    return BuildProject(
        name=f"{stage_name.value}OrchestratorDeploy",
        buildspec=_buildspec("deploy", stage_name),
        environment={"SLIC_STAGE": stage_name.value},
        role=role,
        description=f"Deploy do orquestrador em {stage_name.value}",
    )


def integration_test_project(stage_name: StageName = StageName.STG) -> BuildProject:
    return BuildProject(
        name="IntegrationTests",
        buildspec=_buildspec("integration-test", stage_name),
        environment={"SLIC_STAGE": stage_name.value},
        description="Testes de integração contra o ambiente implantado",
    )


def e2e_test_project(stage_name: StageName = StageName.STG) -> BuildProject:
    return BuildProject(
        name="e2eTests",
        buildspec=_buildspec("e2e-test", stage_name),
        environment={"SLIC_STAGE": stage_name.value},
        description="Testes end-to-end contra o ambiente implantado",
    )
