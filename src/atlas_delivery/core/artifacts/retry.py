# src/atlas_delivery/core/artifacts/retry.py
"""Política de retry do chamador para falhas transitórias do artifact store."""

from __future__ import annotations

from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from atlas_delivery.core.config.settings import EngineSettings
from atlas_delivery.core.exceptions import StorageUnavailable


def storage_retrying(settings: EngineSettings) -> Retrying:
    """Retrying que repete apenas `StorageUnavailable`, com backoff exponencial.

    Esgotadas as tentativas, a última `StorageUnavailable` é relançada.
    """
    return Retrying(
        retry=retry_if_exception_type(StorageUnavailable),
        stop=stop_after_attempt(settings.retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_seconds,
            max=settings.retry_max_backoff_seconds,
        ),
        reraise=True,
    )
