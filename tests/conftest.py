# tests/conftest.py
"""
Fixtures compartilhados para testes do Atlas Delivery.

Este módulo define fixtures reutilizáveis que fornecem:
- configuração mínima e determinística (retry sem espera)
- artifact store em memória com o pacote de source publicado
- dublês dos colaboradores externos (build e aprovação)
- a definição da topologia padrão do orquestrador
- fábricas de Engine e de ExecutionContext

Decisões arquiteturais:
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas
    - Colaboradores externos são sempre dublês em memória
    - Fábricas (`make_engine`, `make_ctx`) evitam estado compartilhado
      entre testes

Invariantes:
    - Nenhuma fixture inicia threads por conta própria
    - Nenhuma fixture realiza I/O fora de `tmp_path`
    - Retry do store nunca dorme durante os testes

Limites explícitos:
    - Não substituir testes de integração com serviços reais
    - Não conter lógica condicional complexa
"""

import pytest
from datetime import datetime, timezone


ARTIFACTS_BUCKET = "artifacts-bucket"
SOURCE_BYTES = b"PK\x03\x04 slic pipeline source v1"


# =====================================================
# Config
# =====================================================

@pytest.fixture
def fast_config() -> dict:
    """
    Overrides de configuração para testes: retry imediato e polling curto.

    Returns:
        dict: Overrides aplicados sobre DEFAULT_CONFIG.
    """
    return {
        "engine": {"max_parallel_actions": 4, "max_queued_executions": 16},
        "source": {"poll_interval_seconds": 0.01},
        "store": {"retry": {"attempts": 3, "backoff_seconds": 0, "max_backoff_seconds": 0}},
    }


@pytest.fixture
def fast_settings(fast_config):
    from atlas_delivery.core.config.loader import resolve_config
    from atlas_delivery.core.config.settings import EngineSettings

    return EngineSettings.from_config(resolve_config(fast_config))


# =====================================================
# Colaboradores externos
# =====================================================

@pytest.fixture
def store():
    from atlas_delivery.core.artifacts.store import InMemoryArtifactStore

    return InMemoryArtifactStore()


@pytest.fixture
def seeded_store(store):
    """
    Store em memória com o pacote de source publicado na chave monitorada.

    Returns:
        InMemoryArtifactStore: Store pronto para uma execução completa.
    """
    from atlas_delivery.builders.projects import SLIC_PIPELINE_SOURCE_ARTIFACT

    store.put(ARTIFACTS_BUCKET, SLIC_PIPELINE_SOURCE_ARTIFACT, SOURCE_BYTES)
    return store


@pytest.fixture
def build_service():
    from atlas_delivery.integrations.build import ScriptedBuildService

    return ScriptedBuildService()


@pytest.fixture
def approval_channel():
    from atlas_delivery.integrations.approval import InMemoryApprovalChannel

    return InMemoryApprovalChannel()


@pytest.fixture
def auto_approve_channel():
    from atlas_delivery.integrations.approval import ApprovalDecision, InMemoryApprovalChannel

    return InMemoryApprovalChannel(auto_decision=ApprovalDecision(approved=True, reviewer="release-manager"))


# =====================================================
# Pipeline
# =====================================================

@pytest.fixture
def orchestrator_definition():
    """
    Definição da topologia padrão:
    Source → stgDeploy → Test{integration_tests, e2e_tests} → Approval → prodDeploy
    """
    from atlas_delivery.builders.orchestrator import build_orchestrator_pipeline

    return build_orchestrator_pipeline(ARTIFACTS_BUCKET)


@pytest.fixture
def make_engine(fast_config, seeded_store, build_service, auto_approve_channel):
    """
    Fábrica de PipelineEngine com colaboradores em memória.

    Qualquer colaborador pode ser substituído por keyword.
    """
    from atlas_delivery.core.config.merge import deep_merge
    from atlas_delivery.core.engine.engine import PipelineEngine

    def _make(definition, *, store=None, builds=None, approval_channel=None, config=None):
        return PipelineEngine(
            definition=definition,
            store=store or seeded_store,
            build_service=builds or build_service,
            approval_channel=approval_channel or auto_approve_channel,
            config=deep_merge(fast_config, config or {}),
        )

    return _make


@pytest.fixture
def make_ctx(fast_config, fast_settings, store, build_service, approval_channel):
    """
    Fábrica de ExecutionContext isolado, para testar Actions diretamente.

    `execution_id` e `created_at` são fixos para garantir determinismo.
    """
    from atlas_delivery.core.artifacts.slots import ExecutionArtifacts
    from atlas_delivery.core.pipeline.context import ExecutionContext
    from atlas_delivery.core.traceability.history import create_history

    def _make(*, pipeline_name="TestPipeline", execution_id="exec-test-001", settings=None, approval=None):
        created_at = datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc)
        settings = settings or fast_settings
        return ExecutionContext(
            execution_id=execution_id,
            pipeline_name=pipeline_name,
            created_at=created_at,
            config=fast_config,
            settings=settings,
            artifacts=ExecutionArtifacts(
                store=store,
                bucket=ARTIFACTS_BUCKET,
                pipeline_name=pipeline_name,
                execution_id=execution_id,
                settings=settings,
            ),
            store=store,
            build_service=build_service,
            approval_channel=approval or approval_channel,
            history=create_history(
                execution_id=execution_id,
                pipeline_name=pipeline_name,
                trigger="manual",
                started_at=created_at,
                atlas_version="test",
                config_hash="0" * 64,
                definition_hash="0" * 64,
            ),
        )

    return _make


@pytest.fixture
def source_bytes() -> bytes:
    """Conteúdo publicado por `seeded_store` na chave monitorada."""
    return SOURCE_BYTES
