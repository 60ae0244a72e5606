# src/atlas_delivery/core/artifacts/__init__.py
"""
Artifact Store Adapter do Atlas Delivery.

    - store  → contrato `ArtifactStore`, `ArtifactHandle` e implementações
    - slots  → tabela write-once de artefatos por execução
    - retry  → política de retry (tenacity) para `StorageUnavailable`
"""

from .store import (
    ArtifactHandle,
    ArtifactStore,
    FileSystemArtifactStore,
    InMemoryArtifactStore,
    content_sha256,
)
from .slots import ExecutionArtifacts
from .retry import storage_retrying

__all__ = [
    "ArtifactHandle",
    "ArtifactStore",
    "FileSystemArtifactStore",
    "InMemoryArtifactStore",
    "ExecutionArtifacts",
    "content_sha256",
    "storage_retrying",
]
