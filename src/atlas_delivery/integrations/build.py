# src/atlas_delivery/integrations/build.py
"""
Contrato com o serviço externo de execução de builds.

O Engine trata o serviço como opaco: entrega o projeto, o source e o
contexto da execução, e bloqueia até receber um status terminal.

`ScriptedBuildService` é um dublê em memória, programável por projeto,
usado em testes e em execuções locais.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

from atlas_delivery.core.pipeline.project import BuildProject


@dataclass(frozen=True)
class BuildRequest:
    project: BuildProject
    source: bytes
    pipeline_name: str
    execution_id: str
    action_name: str
    environment: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class BuildOutcome:
    """
    Status terminal reportado pelo serviço.

    `status` segue o vocabulário do serviço (ex.: SUCCEEDED, FAILED,
    FAULT, TIMED_OUT); apenas SUCCEEDED é sucesso.
    """

    status: str
    output: bytes = b""
    logs: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "SUCCEEDED"

    @classmethod
    def success(cls, output: bytes = b"", logs: Optional[str] = None) -> "BuildOutcome":
        return cls(status="SUCCEEDED", output=output, logs=logs)

    @classmethod
    def failure(cls, logs: Optional[str] = None, status: str = "FAILED") -> "BuildOutcome":
        return cls(status=status, logs=logs)


@runtime_checkable
class BuildService(Protocol):
    def run_build(self, request: BuildRequest) -> BuildOutcome:
        """Executa a build de forma síncrona e retorna o status terminal."""
        ...


BuildHandler = Callable[[BuildRequest], BuildOutcome]


class ScriptedBuildService:
    """
    Serviço de build programável.

    Por padrão toda build tem sucesso e devolve o próprio source como saída.
    Handlers por projeto substituem esse comportamento.
    """

    def __init__(self, handlers: Optional[Dict[str, BuildHandler]] = None):
        self._handlers: Dict[str, BuildHandler] = dict(handlers or {})
        self._lock = threading.Lock()
        self.requests: List[BuildRequest] = []

    def on(self, project_name: str, handler: BuildHandler) -> None:
        with self._lock:
            self._handlers[project_name] = handler

    def fail(self, project_name: str, logs: str = "build failed") -> None:
        self.on(project_name, lambda request: BuildOutcome.failure(logs=logs))

    def calls_for(self, project_name: str) -> List[BuildRequest]:
        with self._lock:
            return [r for r in self.requests if r.project.name == project_name]

    def run_build(self, request: BuildRequest) -> BuildOutcome:
        with self._lock:
            self.requests.append(request)
            handler = self._handlers.get(request.project.name)
        if handler is None:
            return BuildOutcome.success(output=request.source)
        return handler(request)
