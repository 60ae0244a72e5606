# src/atlas_delivery/core/source/poller.py
"""
Poller de source: detecta mudanças no objeto monitorado e dispara execuções.

A cada `interval` segundos o poller consulta `store.head(bucket, key)` e
compara o sha256 atual com a última versão observada. Uma versão nova
resulta em `engine.start_execution(trigger=SOURCE)`; o Engine coalesce
triggers de source pendentes.

Regras:
    - A primeira versão observada não dispara, salvo `trigger_on_first_poll`
    - Objeto ausente não dispara; é registrado como estado observado, de
      modo que a primeira publicação na chave dispara uma execução
    - Falhas de poll são registradas e o polling continua
    - Se o Engine recusar o trigger, a versão não é marcada como vista e o
      próximo poll tenta novamente
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Optional

from atlas_delivery.core.artifacts.store import ArtifactStore
from atlas_delivery.core.exceptions import AtlasException
from atlas_delivery.core.pipeline.types import ExecutionTrigger

if TYPE_CHECKING:
    from atlas_delivery.core.engine.engine import PipelineEngine

logger = logging.getLogger(__name__)

_UNSEEN = object()


class SourcePoller:
    """Thread de polling de uma chave fixa do artifact store."""

    def __init__(
        self,
        *,
        engine: "PipelineEngine",
        store: ArtifactStore,
        bucket: str,
        key: str,
        interval: float = 60.0,
        trigger_on_first_poll: bool = False,
    ):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.engine = engine
        self.store = store
        self.bucket = bucket
        self.key = key
        self.interval = interval
        self.trigger_on_first_poll = trigger_on_first_poll

        self._last_version: object = _UNSEEN
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def last_version(self) -> Optional[str]:
        with self._lock:
            return None if self._last_version is _UNSEEN else self._last_version  # type: ignore[return-value]

    def poll_once(self) -> Optional[str]:
        """
        Executa um ciclo de polling.

        Returns:
            execution id disparado (ou coalescido), ou None se não houve trigger.

        Raises:
            StorageUnavailable: store indisponível neste ciclo.
            EngineConfigurationError: fila do Engine cheia.
        """
        with self._lock:
            handle = self.store.head(self.bucket, self.key)
            if handle is None:
                # ausência também é estado observado: a primeira publicação dispara
                self._last_version = None
                return None

            version = handle.sha256
            first = self._last_version is _UNSEEN
            if version == self._last_version:
                return None
            if first and not self.trigger_on_first_poll:
                self._last_version = version
                logger.info("source %s/%s baseline version %s", self.bucket, self.key, version[:12])
                return None

            execution_id = self.engine.start_execution(ExecutionTrigger.SOURCE)
            self._last_version = version

        logger.info(
            "source %s/%s changed to %s; execution %s",
            self.bucket,
            self.key,
            version[:12],
            execution_id,
        )
        return execution_id

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._polling_loop,
            daemon=True,
            name=f"source-poller-{self.bucket}",
        )
        self._thread.start()
        logger.info("SourcePoller started: %s/%s every %ss", self.bucket, self.key, self.interval)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("SourcePoller stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def _polling_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except AtlasException as e:
                logger.warning("source poll failed for %s/%s: %s", self.bucket, self.key, e)
            except Exception:
                logger.exception("unexpected error polling %s/%s", self.bucket, self.key)

            self._stop_event.wait(self.interval)
