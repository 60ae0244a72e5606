# src/atlas_delivery/core/errors.py
"""
Atlas Delivery: Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros do Atlas Delivery.
Falhas de Actions nunca sobem como exceções cruas até o operador: são
convertidas em `AtlasErrorPayload`, registradas no resultado da Action e
no histórico da execução.

Erros devem ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Type

from .exceptions import (
    AtlasException,
    ApprovalRejected,
    ApprovalTimedOut,
    ArtifactAlreadyWritten,
    ArtifactIntegrityError,
    ArtifactNotFound,
    BuildFailed,
    EngineConfigurationError,
    EngineExecutionError,
    ExecutionNotFound,
    PermissionDenied,
    PipelineNotFound,
    StorageUnavailable,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AtlasErrorPayload:
    """
    Payload canônico de erro do Atlas Delivery.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    - decision_required: indica que a recuperação depende de decisão humana
      (ex.: novo upload de source ou re-execução manual).
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Artifact Store
STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
ARTIFACT_NOT_FOUND = "ARTIFACT_NOT_FOUND"
ARTIFACT_ALREADY_WRITTEN = "ARTIFACT_ALREADY_WRITTEN"
ARTIFACT_INTEGRITY_ERROR = "ARTIFACT_INTEGRITY_ERROR"

# Actions
BUILD_FAILED = "BUILD_FAILED"
APPROVAL_REJECTED = "APPROVAL_REJECTED"
APPROVAL_TIMED_OUT = "APPROVAL_TIMED_OUT"

# Controle
PERMISSION_DENIED = "PERMISSION_DENIED"
PIPELINE_NOT_FOUND = "PIPELINE_NOT_FOUND"
EXECUTION_NOT_FOUND = "EXECUTION_NOT_FOUND"

# Engine / Execução
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"
ENGINE_CONFIGURATION_ERROR = "ENGINE_CONFIGURATION_ERROR"


_CODES: Dict[Type[AtlasException], str] = {
    StorageUnavailable: STORAGE_UNAVAILABLE,
    ArtifactNotFound: ARTIFACT_NOT_FOUND,
    ArtifactAlreadyWritten: ARTIFACT_ALREADY_WRITTEN,
    ArtifactIntegrityError: ARTIFACT_INTEGRITY_ERROR,
    BuildFailed: BUILD_FAILED,
    ApprovalRejected: APPROVAL_REJECTED,
    ApprovalTimedOut: APPROVAL_TIMED_OUT,
    PermissionDenied: PERMISSION_DENIED,
    PipelineNotFound: PIPELINE_NOT_FOUND,
    ExecutionNotFound: EXECUTION_NOT_FOUND,
    EngineConfigurationError: ENGINE_CONFIGURATION_ERROR,
    EngineExecutionError: ENGINE_EXECUTION_ERROR,
}


def error_code_for(exc: BaseException) -> str:
    """Código estável para uma exceção (fallback: ENGINE_EXECUTION_ERROR)."""
    for cls in type(exc).__mro__:
        code = _CODES.get(cls)  # type: ignore[arg-type]
        if code is not None:
            return code
    return ENGINE_EXECUTION_ERROR


def error_from_exception(exc: Exception, *, action: Optional[str] = None) -> AtlasErrorPayload:
    """Converte exceções em AtlasErrorPayload (serializável, acionável).

    Regras:
    - AtlasException: já vem com message/details/hint/decision_required.
    - Outras exceções: encapsular como ENGINE_EXECUTION_ERROR sem expor stack trace.
    """
    if isinstance(exc, AtlasException):
        details = dict(exc.details or {})
        if action is not None:
            details.setdefault("action", action)
        return AtlasErrorPayload(
            type=error_code_for(exc),
            message=exc.message or "Erro de execução",
            details=details,
            hint=exc.hint,
            decision_required=bool(exc.decision_required),
        )

    return engine_execution_error(
        action=action,
        exc_type=exc.__class__.__name__,
        exc_message=str(exc) or None,
    )


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def storage_unavailable(
    *,
    bucket: str,
    key: Optional[str] = None,
    operation: str = "put",
    reason: Optional[str] = None,
) -> StorageUnavailable:
    return StorageUnavailable(
        message="Artifact store indisponível",
        details={"bucket": bucket, "key": key, "operation": operation, "reason": reason},
        hint="Falha transitória: o chamador deve repetir com backoff.",
    )


def build_failed(
    *,
    action: str,
    project: str,
    build_status: str,
    logs: Optional[str] = None,
) -> BuildFailed:
    return BuildFailed(
        message=f"Build '{project}' terminou com status {build_status}",
        details={"action": action, "project": project, "build_status": build_status, "logs": logs},
        hint="Corrija a causa no source e publique uma nova versão para disparar nova execução.",
        decision_required=True,
    )


def approval_rejected(
    *,
    action: str,
    reviewer: Optional[str],
    comment: Optional[str] = None,
) -> ApprovalRejected:
    return ApprovalRejected(
        message="Aprovação manual rejeitada",
        details={"action": action, "reviewer": reviewer, "comment": comment},
        hint="A execução foi encerrada. Um novo trigger de source reinicia o pipeline.",
        decision_required=True,
    )


def permission_denied(
    *,
    identity: str,
    operation: str,
    resource: str,
) -> PermissionDenied:
    return PermissionDenied(
        message=f"'{identity}' não pode executar {operation}",
        details={"identity": identity, "operation": operation, "resource": resource},
        hint="Adicione um PolicyStatement explícito à role ou use outra identidade.",
    )


def engine_execution_error(
    *,
    action: Optional[str] = None,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique o log técnico da execução. Nenhum retry é aplicado automaticamente.",
) -> AtlasErrorPayload:
    return AtlasErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message="Falha inesperada durante a execução do pipeline",
        details={
            "action": action,
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
        decision_required=False,
    )


def engine_configuration_error(
    *,
    message: str = "Configuração inválida para execução do pipeline",
    details: Optional[Dict[str, Any]] = None,
    hint: str = "Revise a definição do pipeline e a configuração antes de reexecutar.",
) -> EngineConfigurationError:
    return EngineConfigurationError(
        message=message,
        details=details or {},
        hint=hint,
    )


__all__: List[str] = [
    "AtlasErrorPayload",
    "error_code_for",
    "error_from_exception",
    "storage_unavailable",
    "build_failed",
    "approval_rejected",
    "permission_denied",
    "engine_execution_error",
    "engine_configuration_error",
]
