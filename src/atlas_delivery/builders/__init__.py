# src/atlas_delivery/builders/__init__.py
"""Topologias de pipeline prontas para uso."""

from .orchestrator import build_orchestrator_pipeline, orchestrator_role
from .projects import SLIC_PIPELINE_SOURCE_ARTIFACT, StageName

__all__ = [
    "build_orchestrator_pipeline",
    "orchestrator_role",
    "SLIC_PIPELINE_SOURCE_ARTIFACT",
    "StageName",
]
