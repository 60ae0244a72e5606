# src/atlas_delivery/core/artifacts/slots.py
"""
Slots write-once de artefatos por execução.

Cada execução de pipeline possui uma tabela `nome do artefato → handle`.
Cada Action é dona de exatamente um slot de saída, e um slot só pode ser
gravado uma vez: corridas de escrita concorrente são impossíveis por
construção.

Layout das chaves no store:
    <pipeline>/<execution_id>/<artifact_name>

Todas as chamadas ao store passam pela política de retry do chamador
(`storage_retrying`); falhas não transitórias propagam imediatamente.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional, Set, TypeVar

from atlas_delivery.core.config.settings import EngineSettings
from atlas_delivery.core.exceptions import ArtifactAlreadyWritten, ArtifactNotFound

from .retry import storage_retrying
from .store import ArtifactHandle, ArtifactStore

T = TypeVar("T")


class ExecutionArtifacts:
    """Tabela write-once de artefatos de uma execução."""

    def __init__(
        self,
        *,
        store: ArtifactStore,
        bucket: str,
        pipeline_name: str,
        execution_id: str,
        settings: Optional[EngineSettings] = None,
    ):
        self.store = store
        self.bucket = bucket
        self.pipeline_name = pipeline_name
        self.execution_id = execution_id
        self.settings = settings or EngineSettings()

        self._handles: Dict[str, ArtifactHandle] = {}
        self._reserved: Set[str] = set()
        self._lock = threading.Lock()

    def key_for(self, artifact_name: str) -> str:
        return f"{self.pipeline_name}/{self.execution_id}/{artifact_name}"

    def call_store(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Executa uma operação do store sob a política de retry configurada."""
        return storage_retrying(self.settings)(fn, *args, **kwargs)

    # -----------------------------
    # Escrita (write-once)
    # -----------------------------
    def write(self, artifact_name: str, data: bytes, *, producing_action: str) -> ArtifactHandle:
        with self._lock:
            if artifact_name in self._handles or artifact_name in self._reserved:
                owner = self._handles.get(artifact_name)
                raise ArtifactAlreadyWritten(
                    message=f"Artefato '{artifact_name}' já foi gravado nesta execução",
                    details={
                        "artifact": artifact_name,
                        "execution_id": self.execution_id,
                        "producing_action": owner.producing_action if owner else None,
                        "attempted_by": producing_action,
                    },
                )
            self._reserved.add(artifact_name)

        try:
            handle = self.call_store(
                self.store.put,
                self.bucket,
                self.key_for(artifact_name),
                data,
                producing_action=producing_action,
            )
        except BaseException:
            with self._lock:
                self._reserved.discard(artifact_name)
            raise

        with self._lock:
            self._reserved.discard(artifact_name)
            self._handles[artifact_name] = handle
        return handle

    # -----------------------------
    # Leitura
    # -----------------------------
    def has(self, artifact_name: str) -> bool:
        with self._lock:
            return artifact_name in self._handles

    def handle(self, artifact_name: str) -> ArtifactHandle:
        with self._lock:
            handle = self._handles.get(artifact_name)
        if handle is None:
            raise ArtifactNotFound(
                message=f"Artefato '{artifact_name}' ainda não foi produzido nesta execução",
                details={"artifact": artifact_name, "execution_id": self.execution_id},
                hint="Consumidores só executam depois que a Action produtora termina com sucesso.",
            )
        return handle

    def read(self, artifact_name: str) -> bytes:
        return self.call_store(self.store.get, self.handle(artifact_name))

    def handles(self) -> Dict[str, ArtifactHandle]:
        with self._lock:
            return dict(self._handles)
