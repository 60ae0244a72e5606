# src/atlas_delivery/core/source/__init__.py
"""Detecção de mudanças de source por polling."""

from .poller import SourcePoller

__all__ = ["SourcePoller"]
