# src/atlas_delivery/core/exceptions.py
"""
Atlas Delivery: Canonical Exceptions (v1)

Este módulo define as exceções tipadas internas do Atlas Delivery.

Objetivo:
- Permitir que Actions, Stages e Engine levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para AtlasErrorPayload
- Separar falhas transitórias (storage) de falhas terminais (build, aprovação)

Taxonomia:
- StorageUnavailable  → transitória, o chamador aplica retry com backoff
- BuildFailed         → terminal no nível da Action, falha o Stage
- ApprovalRejected    → terminal, exige novo trigger de Source
- PermissionDenied    → síncrona para o chamador, sem mudança de estado

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- Nenhuma exceção aqui implica retry automático além do limite da Action.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AtlasException(Exception):
    """Base class para exceções internas do Atlas Delivery.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None
    decision_required: bool = False

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Artifact Store
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StorageUnavailable(AtlasException):
    """Backing store inacessível. Transitória: o chamador decide o retry."""


@dataclass(frozen=True)
class ArtifactNotFound(AtlasException):
    """Artefato (ou objeto de origem) inexistente no store ou no slot da execução."""


@dataclass(frozen=True)
class ArtifactAlreadyWritten(AtlasException):
    """Tentativa de segunda escrita em um slot write-once de artefato."""


@dataclass(frozen=True)
class ArtifactIntegrityError(AtlasException):
    """Bytes lidos não correspondem ao sha256 registrado no handle."""


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BuildFailed(AtlasException):
    """Serviço de build reportou status terminal diferente de sucesso."""


@dataclass(frozen=True)
class ApprovalRejected(AtlasException):
    """Aprovação manual rejeitada por um revisor humano."""


@dataclass(frozen=True)
class ApprovalTimedOut(AtlasException):
    """Prazo opcional de aprovação expirou sem decisão."""


# ---------------------------------------------------------------------------
# Controle / Permissões
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PermissionDenied(AtlasException):
    """Identidade não autorizada para a operação de controle solicitada."""


@dataclass(frozen=True)
class PipelineNotFound(AtlasException):
    """Pipeline não registrado no serviço de controle."""


@dataclass(frozen=True)
class ExecutionNotFound(AtlasException):
    """Execution id desconhecido para o pipeline consultado."""


# ---------------------------------------------------------------------------
# Engine / Configuração
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EngineConfigurationError(AtlasException):
    """Configuração inválida ou inconsistente para execução."""


@dataclass(frozen=True)
class EngineExecutionError(AtlasException):
    """Erro inesperado durante execução do Engine (encapsulado)."""
