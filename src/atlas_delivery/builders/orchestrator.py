# src/atlas_delivery/builders/orchestrator.py
"""
Topologia padrão do pipeline orquestrador.

    Source → stgDeploy → Test{integration_tests, e2e_tests}
           → Approval → prodDeploy

A ordem dos Stages é fixada aqui, pelo autor do pipeline; o planner
apenas a valida. Deploys e testes consomem o artefato de source e cada
um produz seu próprio artefato de saída.

A role de deploy (`orchestrator-codebuild-role`) é a identidade usada
para gerenciar pipelines de módulos: só pode consultar e disparar
execuções. Por padrão a permissão vale para todos os recursos; passe
`resources` para restringi-la a pipelines específicos.
"""

from __future__ import annotations

from typing import Optional, Sequence

from atlas_delivery.core.iam.policy import (
    GET_PIPELINE_EXECUTION,
    START_PIPELINE_EXECUTION,
    PolicyStatement,
    Role,
    ServicePrincipal,
)
from atlas_delivery.core.pipeline.actions import ApprovalAction, BuildAction, SourceAction
from atlas_delivery.core.pipeline.definition import PipelineDefinition
from atlas_delivery.core.pipeline.types import Artifact

from .projects import (
    SLIC_PIPELINE_SOURCE_ARTIFACT,
    StageName,
    e2e_test_project,
    integration_test_project,
    orchestrator_deploy_project,
)

ORCHESTRATOR_PIPELINE_NAME = "OrchestratorPipeline"
ORCHESTRATOR_ROLE_NAME = "orchestrator-codebuild-role"
CODEBUILD_PRINCIPAL = ServicePrincipal("codebuild.amazonaws.com")

SOURCE_ARTIFACT = Artifact("source_output")


def orchestrator_role(resources: Optional[Sequence[str]] = None) -> Role:
    statement = PolicyStatement().add_actions(GET_PIPELINE_EXECUTION).add_actions(START_PIPELINE_EXECUTION)
    if resources:
        statement.add_resources(*resources)
    else:
        statement.add_all_resources()

    role = Role(name=ORCHESTRATOR_ROLE_NAME, assumed_by=CODEBUILD_PRINCIPAL)
    role.add_to_policy(statement)
    return role


def _add_deploy_stage(definition: PipelineDefinition, stage_name: StageName, role: Role) -> None:
    definition.add_stage(
        name=f"{stage_name.value}Deploy",
        actions=[
            BuildAction(
                name=stage_name.value,
                project=orchestrator_deploy_project(stage_name, role=role),
                input=SOURCE_ARTIFACT,
                output=Artifact(f"{stage_name.value}_deploy_output"),
            )
        ],
    )


def _add_test_stage(definition: PipelineDefinition) -> None:
    definition.add_stage(
        name="Test",
        actions=[
            BuildAction(
                name="integration_tests",
                project=integration_test_project(StageName.STG),
                input=SOURCE_ARTIFACT,
                output=Artifact("integration_tests_output"),
            ),
            BuildAction(
                name="e2e_tests",
                project=e2e_test_project(StageName.STG),
                input=SOURCE_ARTIFACT,
                output=Artifact("e2e_tests_output"),
            ),
        ],
    )


def build_orchestrator_pipeline(
    artifacts_bucket: str,
    *,
    source_key: str = SLIC_PIPELINE_SOURCE_ARTIFACT,
    pipeline_name: str = ORCHESTRATOR_PIPELINE_NAME,
    role: Optional[Role] = None,
) -> PipelineDefinition:
    """Monta a definição do pipeline orquestrador sobre `artifacts_bucket`."""
    role = role or orchestrator_role()
    definition = PipelineDefinition(name=pipeline_name, artifact_bucket=artifacts_bucket)

    definition.add_stage(
        name="Source",
        actions=[
            SourceAction(
                name="SLICSource",
                bucket=artifacts_bucket,
                bucket_key=source_key,
                output=SOURCE_ARTIFACT,
                poll_for_source_changes=True,
            )
        ],
    )
    _add_deploy_stage(definition, StageName.STG, role)
    _add_test_stage(definition)
    definition.add_stage(name="Approval", actions=[ApprovalAction(name="MoveToProduction")])
    _add_deploy_stage(definition, StageName.PROD, role)
    return definition
