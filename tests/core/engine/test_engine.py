# tests/core/engine/test_engine.py
"""
Testes de integração do PipelineEngine sobre a topologia padrão.

Os testes asseguram que:
- uma execução completa termina em Succeeded com todos os Stages
- uma falha no Stage i encerra em Failed(i) sem executar Stages posteriores
- a falha parcial do Stage paralelo reporta o conjunto exato de Actions
- a rejeição da aprovação encerra a execução antes de produção
- o artefato de source chega byte a byte aos builds
- o histórico é persistido em `history.dir`
- falhas ao fechar o histórico não prendem a execução nem a fila

Limites explícitos:
    - Fila e concorrência entre execuções: ver test_engine_queue.py
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from atlas_delivery.builders.projects import SLIC_PIPELINE_SOURCE_ARTIFACT
from atlas_delivery.core.artifacts.store import InMemoryArtifactStore
from atlas_delivery.core.iam.policy import Role
from atlas_delivery.core.pipeline.actions import SourceAction
from atlas_delivery.core.pipeline.definition import PipelineDefinition
from atlas_delivery.core.pipeline.types import (
    ActionKind,
    ActionResult,
    ActionStatus,
    Artifact,
    ExecutionStatus,
    ExecutionTrigger,
    PipelineState,
    StageStatus,
)
from atlas_delivery.core.traceability.history import load_history
from atlas_delivery.integrations.build import BuildOutcome

STAGES = ["Source", "stgDeploy", "Test", "Approval", "prodDeploy"]


def test_full_execution_succeeds(make_engine, orchestrator_definition, build_service):
    engine = make_engine(orchestrator_definition)

    record = engine.run_execution(timeout=5)

    assert record.status == ExecutionStatus.SUCCEEDED
    assert record.state == PipelineState.succeeded()
    assert [r.stage_name for r in record.stage_results] == STAGES
    assert all(r.status == StageStatus.SUCCEEDED for r in record.stage_results)
    assert record.failed_actions == frozenset()
    assert record.trigger == ExecutionTrigger.MANUAL
    assert engine.state == PipelineState.succeeded()

    projects = [r.project.name for r in build_service.requests]
    assert projects.index("stgOrchestratorDeploy") < projects.index("IntegrationTests")
    assert projects.index("e2eTests") < projects.index("prodOrchestratorDeploy")


def test_engine_starts_idle(make_engine, orchestrator_definition):
    engine = make_engine(orchestrator_definition)
    assert engine.state == PipelineState.idle()
    assert engine.executions() == []


def test_source_bytes_reach_every_build(make_engine, orchestrator_definition, build_service, source_bytes):
    engine = make_engine(orchestrator_definition)
    engine.run_execution(timeout=5)

    for project in ("stgOrchestratorDeploy", "IntegrationTests", "e2eTests", "prodOrchestratorDeploy"):
        [request] = build_service.calls_for(project)
        assert request.source == source_bytes


def test_stg_deploy_failure_stops_pipeline(make_engine, orchestrator_definition, build_service, approval_channel):
    build_service.fail("stgOrchestratorDeploy")
    engine = make_engine(orchestrator_definition, approval_channel=approval_channel)

    record = engine.run_execution(timeout=5)

    assert record.status == ExecutionStatus.FAILED
    assert record.state == PipelineState.failed(1)
    assert [r.stage_name for r in record.stage_results] == ["Source", "stgDeploy"]
    assert record.failed_actions == frozenset({"stg"})
    assert build_service.calls_for("IntegrationTests") == []
    assert build_service.calls_for("e2eTests") == []
    assert build_service.calls_for("prodOrchestratorDeploy") == []
    assert approval_channel.pending() == []


def test_partial_test_failure_reports_exact_set(
    make_engine, orchestrator_definition, build_service, approval_channel
):
    build_service.fail("IntegrationTests")
    engine = make_engine(orchestrator_definition, approval_channel=approval_channel)

    record = engine.run_execution(timeout=5)

    test_stage = record.stage_result("Test")
    assert record.state == PipelineState.failed(2)
    assert test_stage.failed_actions == frozenset({"integration_tests"})
    assert test_stage.action_results["e2e_tests"].succeeded
    assert record.stage_result("Approval") is None
    assert approval_channel.pending() == []
    assert build_service.calls_for("prodOrchestratorDeploy") == []


def test_rejected_approval_never_reaches_production(
    make_engine, orchestrator_definition, build_service, approval_channel
):
    engine = make_engine(orchestrator_definition, approval_channel=approval_channel)
    execution_id = engine.start_execution()

    request = approval_channel.wait_for_request(timeout=5)
    assert request.action_name == "MoveToProduction"
    assert engine.state == PipelineState.running(3)
    assert engine.get_execution(execution_id).status == ExecutionStatus.RUNNING

    approval_channel.reject(request.token, reviewer="bob", comment="freeze")
    record = engine.wait_for(execution_id, timeout=5)

    assert record.state == PipelineState.failed(3)
    assert record.failed_actions == frozenset({"MoveToProduction"})
    error = record.stage_result("Approval").action_results["MoveToProduction"].error
    assert error["type"] == "APPROVAL_REJECTED"
    assert error["details"]["reviewer"] == "bob"
    assert build_service.calls_for("prodOrchestratorDeploy") == []


def test_approved_gate_continues_to_production(
    make_engine, orchestrator_definition, build_service, approval_channel
):
    engine = make_engine(orchestrator_definition, approval_channel=approval_channel)
    execution_id = engine.start_execution()

    approval_channel.approve(approval_channel.wait_for_request(timeout=5).token, reviewer="alice")
    record = engine.wait_for(execution_id, timeout=5)

    assert record.state == PipelineState.succeeded()
    assert len(build_service.calls_for("prodOrchestratorDeploy")) == 1


def test_missing_source_fails_first_stage(make_engine, orchestrator_definition, build_service):
    engine = make_engine(orchestrator_definition, store=InMemoryArtifactStore())

    record = engine.run_execution(timeout=5)

    assert record.state == PipelineState.failed(0)
    error = record.stage_result("Source").action_results["SLICSource"].error
    assert error["type"] == "ARTIFACT_NOT_FOUND"
    assert build_service.requests == []


def test_unexpected_build_error_fails_stage(make_engine, orchestrator_definition, build_service):
    def crash(request):
        raise RuntimeError("socket closed")

    build_service.on("e2eTests", crash)
    record = make_engine(orchestrator_definition).run_execution(timeout=5)

    error = record.stage_result("Test").action_results["e2e_tests"].error
    assert record.state == PipelineState.failed(2)
    assert error["type"] == "ENGINE_EXECUTION_ERROR"


def test_recovery_is_a_new_execution(make_engine, orchestrator_definition, build_service):
    build_service.fail("stgOrchestratorDeploy")
    engine = make_engine(orchestrator_definition)
    first = engine.run_execution(timeout=5)

    build_service.on("stgOrchestratorDeploy", lambda r: BuildOutcome.success())
    second = engine.run_execution(timeout=5)

    assert first.execution_id != second.execution_id
    assert first.state == PipelineState.failed(1)
    assert second.state == PipelineState.succeeded()
    assert engine.get_execution(first.execution_id).state == PipelineState.failed(1)
    assert engine.get_execution().execution_id == second.execution_id


def test_history_is_persisted(make_engine, orchestrator_definition, tmp_path):
    engine = make_engine(orchestrator_definition, config={"history": {"dir": str(tmp_path)}})

    record = engine.run_execution(timeout=5)

    path = tmp_path / orchestrator_definition.name / f"{record.execution_id}.json"
    assert record.history_path == str(path)
    history = load_history(path)
    assert history.execution["state"] == "Succeeded"
    assert history.execution["status"] == "succeeded"
    assert history.action_status("Test", "integration_tests") == "succeeded"
    assert history.stages["prodDeploy"]["position"] == 4
    assert len(history.inputs["config_hash"]) == 64


def test_history_records_failed_stage(make_engine, orchestrator_definition, build_service, tmp_path):
    build_service.fail("IntegrationTests")
    engine = make_engine(orchestrator_definition, config={"history": {"dir": str(tmp_path)}})

    record = engine.run_execution(timeout=5)
    history = load_history(tmp_path / orchestrator_definition.name / f"{record.execution_id}.json")

    assert history.stages["Test"]["status"] == "failed"
    assert history.stages["Test"]["failed_actions"] == ["integration_tests"]
    assert "Approval" not in history.stages
    assert history.events[-1]["event_type"] == "execution_finished"
    assert history.events[-1]["payload"]["state"] == "Failed(2)"


def test_record_to_dict(make_engine, orchestrator_definition):
    record = make_engine(orchestrator_definition).run_execution(timeout=5)
    d = record.to_dict()
    assert d["state"] == "Succeeded"
    assert d["status"] == "succeeded"
    assert d["trigger"] == "manual"
    assert [s["stage_name"] for s in d["stages"]] == STAGES


def test_state_advances_through_stages(make_engine, orchestrator_definition, build_service, approval_channel):
    seen = []

    def observe(request):
        seen.append(str(engine.state))
        return BuildOutcome.success()

    for project in ("stgOrchestratorDeploy", "IntegrationTests", "prodOrchestratorDeploy"):
        build_service.on(project, observe)

    engine = make_engine(orchestrator_definition, approval_channel=approval_channel)
    execution_id = engine.start_execution()
    approval_channel.approve(approval_channel.wait_for_request(timeout=5).token)
    engine.wait_for(execution_id, timeout=5)

    assert seen == ["Running(1)", "Running(2)", "Running(4)"]


DEPLOYED_AT = datetime(2026, 1, 16, 12, 0, 0, tzinfo=timezone.utc)


@dataclass
class StampAction:
    """Action que devolve metadata não serializável em JSON (datetime)."""

    name: str
    input: Optional[Artifact] = Artifact("source_output")
    output: Optional[Artifact] = None
    run_order: int = 1
    role: Optional[Role] = None
    kind: ActionKind = field(default=ActionKind.BUILD, init=False)

    def run(self, ctx, *, stage):
        return ActionResult(
            action_name=self.name,
            kind=self.kind,
            status=ActionStatus.SUCCEEDED,
            summary="stamped",
            metadata={"deployed_at": DEPLOYED_AT},
        )

    def describe(self):
        return {"name": self.name, "kind": self.kind.value}


def _stamp_definition():
    definition = PipelineDefinition(name="StampPipeline", artifact_bucket="artifacts-bucket")
    definition.add_stage(
        name="Source",
        actions=[
            SourceAction(
                name="SLICSource",
                bucket="artifacts-bucket",
                bucket_key=SLIC_PIPELINE_SOURCE_ARTIFACT,
                output=Artifact("source_output"),
            )
        ],
    )
    definition.add_stage(name="Deploy", actions=[StampAction(name="stamp")])
    return definition


def test_non_json_metadata_is_persisted_as_text(make_engine, tmp_path):
    engine = make_engine(_stamp_definition(), config={"history": {"dir": str(tmp_path)}})

    first = engine.start_execution()
    second = engine.start_execution()
    assert engine.wait_idle(timeout=5)

    for execution_id in (first, second):
        record = engine.get_execution(execution_id)
        assert record.status == ExecutionStatus.SUCCEEDED
        history = load_history(tmp_path / "StampPipeline" / f"{execution_id}.json")
        metadata = history.stages["Deploy"]["actions"]["stamp"]["metadata"]
        assert metadata == {"deployed_at": str(DEPLOYED_AT)}


def test_history_close_failure_still_finishes_and_drains_queue(make_engine, orchestrator_definition, monkeypatch):
    engine = make_engine(orchestrator_definition)

    def broken_persist(history):
        raise RuntimeError("disk gone")

    monkeypatch.setattr(engine, "_persist", broken_persist)

    first = engine.start_execution()
    second = engine.start_execution()
    assert engine.wait_idle(timeout=5)

    for execution_id in (first, second):
        record = engine.get_execution(execution_id)
        assert record.status == ExecutionStatus.SUCCEEDED
        assert record.state == PipelineState.succeeded()
        assert record.history_path is None
    assert engine.state == PipelineState.succeeded()


def test_failed_build_with_binary_logs_is_persisted(make_engine, orchestrator_definition, build_service, tmp_path):
    build_service.on("stgOrchestratorDeploy", lambda r: BuildOutcome(status="FAILED", logs=b"\x1b[31mtrace"))
    engine = make_engine(orchestrator_definition, config={"history": {"dir": str(tmp_path)}})

    record = engine.run_execution(timeout=5)

    assert record.state == PipelineState.failed(1)
    assert record.history_path is not None
    history = load_history(tmp_path / orchestrator_definition.name / f"{record.execution_id}.json")
    assert history.execution["state"] == "Failed(1)"
    assert history.stages["stgDeploy"]["actions"]["stg"]["status"] == "failed"
