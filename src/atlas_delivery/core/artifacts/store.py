# src/atlas_delivery/core/artifacts/store.py
"""
Artifact Store Adapter do Atlas Delivery.

Este módulo define o contrato do armazenamento durável de artefatos e duas
implementações de referência:

    - InMemoryArtifactStore   → dict protegido por lock (testes, execução local)
    - FileSystemArtifactStore → objetos em `root/<bucket>/<key>`

Contrato (`ArtifactStore`):
    - put(bucket, key, data, producing_action=...) -> ArtifactHandle
    - get(handle) -> bytes
    - head(bucket, key) -> Optional[ArtifactHandle]

Decisões arquiteturais:
    - Handles são content-addressed: `sha256` do conteúdo é a versão do objeto
    - `get` verifica o sha256 antes de devolver os bytes (round-trip byte a byte)
    - Indisponibilidade do backend vira `StorageUnavailable`; o retry é
      responsabilidade do chamador

Invariantes:
    - Um `put` concluído com sucesso é durável para leituras posteriores
    - Bytes devolvidos por `get` são idênticos aos gravados no `put` do handle

Limites explícitos:
    - Não aplica retry
    - Não conhece stages, actions ou execuções (ver `slots`)
"""

from __future__ import annotations

import hashlib
import os
import threading
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Dict, Optional, Protocol, Tuple, Union, runtime_checkable

from atlas_delivery.core.errors import storage_unavailable
from atlas_delivery.core.exceptions import ArtifactIntegrityError, ArtifactNotFound


def content_sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class ArtifactHandle:
    """
    Handle imutável de um objeto gravado no store.

    Campos:
        - bucket / key: localização física do objeto
        - sha256: digest do conteúdo (versão do objeto)
        - size: tamanho em bytes
        - producing_action: Action que gravou o objeto (None para uploads externos)
    """

    bucket: str
    key: str
    sha256: str
    size: int
    producing_action: Optional[str] = None

    @property
    def artifact_id(self) -> str:
        return f"{self.bucket}/{self.key}@{self.sha256[:16]}"

    @property
    def storage_location(self) -> str:
        return f"{self.bucket}/{self.key}"

    def to_dict(self) -> Dict[str, object]:
        return {
            "artifact_id": self.artifact_id,
            "bucket": self.bucket,
            "key": self.key,
            "sha256": self.sha256,
            "size": self.size,
            "producing_action": self.producing_action,
        }


@runtime_checkable
class ArtifactStore(Protocol):
    """Contrato mínimo de armazenamento durável de artefatos."""

    def put(self, bucket: str, key: str, data: bytes, *, producing_action: Optional[str] = None) -> ArtifactHandle:
        ...

    def get(self, handle: ArtifactHandle) -> bytes:
        ...

    def head(self, bucket: str, key: str) -> Optional[ArtifactHandle]:
        ...


def _verify(handle: ArtifactHandle, data: bytes) -> bytes:
    actual = content_sha256(data)
    if actual != handle.sha256:
        raise ArtifactIntegrityError(
            message="Conteúdo do objeto difere do handle",
            details={
                "artifact_id": handle.artifact_id,
                "expected_sha256": handle.sha256,
                "actual_sha256": actual,
            },
            hint="O objeto foi sobrescrito após a gravação do handle.",
        )
    return data


class InMemoryArtifactStore:
    """
    Store em memória, thread-safe.

    Permite simular indisponibilidade do backend:
        - `set_available(False)` → toda operação falha até reativação
        - `fail_next(n)` → as próximas `n` operações falham (falha transitória)
    """

    def __init__(self) -> None:
        self._objects: Dict[Tuple[str, str], Tuple[bytes, Optional[str]]] = {}
        self._lock = threading.Lock()
        self._available = True
        self._failures_remaining = 0

    def set_available(self, available: bool) -> None:
        with self._lock:
            self._available = available

    def fail_next(self, count: int) -> None:
        with self._lock:
            self._failures_remaining = max(0, int(count))

    def _check_available(self, bucket: str, key: str, operation: str) -> None:
        if not self._available:
            raise storage_unavailable(bucket=bucket, key=key, operation=operation, reason="store offline")
        if self._failures_remaining > 0:
            self._failures_remaining -= 1
            raise storage_unavailable(bucket=bucket, key=key, operation=operation, reason="transient failure")

    def put(self, bucket: str, key: str, data: bytes, *, producing_action: Optional[str] = None) -> ArtifactHandle:
        payload = bytes(data)
        with self._lock:
            self._check_available(bucket, key, "put")
            self._objects[(bucket, key)] = (payload, producing_action)
        return ArtifactHandle(
            bucket=bucket,
            key=key,
            sha256=content_sha256(payload),
            size=len(payload),
            producing_action=producing_action,
        )

    def get(self, handle: ArtifactHandle) -> bytes:
        with self._lock:
            self._check_available(handle.bucket, handle.key, "get")
            entry = self._objects.get((handle.bucket, handle.key))
        if entry is None:
            raise ArtifactNotFound(
                message="Objeto não encontrado no store",
                details={"bucket": handle.bucket, "key": handle.key},
            )
        return _verify(handle, entry[0])

    def head(self, bucket: str, key: str) -> Optional[ArtifactHandle]:
        with self._lock:
            self._check_available(bucket, key, "head")
            entry = self._objects.get((bucket, key))
        if entry is None:
            return None
        data, producer = entry
        return ArtifactHandle(bucket=bucket, key=key, sha256=content_sha256(data), size=len(data), producing_action=producer)


class FileSystemArtifactStore:
    """
    Store persistido em disco: `root/<bucket>/<key>`.

    Escritas são atômicas (arquivo temporário + `os.replace`). Qualquer
    `OSError` do filesystem é reportado como `StorageUnavailable`.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _path(self, bucket: str, key: str) -> Path:
        parts = PurePosixPath(key).parts
        if not bucket or "/" in bucket or bucket in {".", ".."}:
            raise ValueError(f"bucket inválido: {bucket!r}")
        if not parts or any(p in {"..", "/"} for p in parts):
            raise ValueError(f"key inválida: {key!r}")
        return self.root.joinpath(bucket, *parts)

    def put(self, bucket: str, key: str, data: bytes, *, producing_action: Optional[str] = None) -> ArtifactHandle:
        path = self._path(bucket, key)
        payload = bytes(data)
        tmp = path.with_name(f".{path.name}.{threading.get_ident()}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(payload)
            os.replace(tmp, path)
        except OSError as e:
            raise storage_unavailable(bucket=bucket, key=key, operation="put", reason=str(e)) from e
        return ArtifactHandle(
            bucket=bucket,
            key=key,
            sha256=content_sha256(payload),
            size=len(payload),
            producing_action=producing_action,
        )

    def get(self, handle: ArtifactHandle) -> bytes:
        path = self._path(handle.bucket, handle.key)
        if not path.exists():
            raise ArtifactNotFound(
                message="Objeto não encontrado no store",
                details={"bucket": handle.bucket, "key": handle.key, "path": str(path)},
            )
        try:
            data = path.read_bytes()
        except OSError as e:
            raise storage_unavailable(bucket=handle.bucket, key=handle.key, operation="get", reason=str(e)) from e
        return _verify(handle, data)

    def head(self, bucket: str, key: str) -> Optional[ArtifactHandle]:
        path = self._path(bucket, key)
        if not path.exists():
            return None
        try:
            data = path.read_bytes()
        except OSError as e:
            raise storage_unavailable(bucket=bucket, key=key, operation="head", reason=str(e)) from e
        return ArtifactHandle(bucket=bucket, key=key, sha256=content_sha256(data), size=len(data))
