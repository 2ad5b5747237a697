"""Fixed-interval polling of the smart plug into the reading store."""

from __future__ import annotations

import logging
import threading
import time
from functools import lru_cache
from typing import Any, Dict, Optional, Protocol, Sequence

from clients.device_cloud import DeviceCloudClient
from models.records import Reading
from services.ingestor import ReadingIngestor
from settings import get_settings
from storage.reading_store import build_default_store

logger = logging.getLogger(__name__)


class PropertySource(Protocol):
    def get_properties(self) -> Dict[str, Any]: ...


class DeviceClient(Protocol):
    def list_devices(self) -> Sequence[Any]: ...

    def get_device(self, sn: str) -> PropertySource: ...

    def close(self) -> None: ...


class DevicePoller:
    """Runs the fetch, normalize and append cycle on a single background thread.

    Ticks are serialized on that thread, so a slow device call delays the next
    tick instead of overlapping it. A failed tick is logged and skipped.
    """

    def __init__(
        self,
        client: DeviceClient,
        ingestor: ReadingIngestor,
        device_sn: str,
        interval_seconds: float = 10.0,
    ) -> None:
        self.client = client
        self.ingestor = ingestor
        self.device_sn = device_sn
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._tick_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> Optional[Reading]:
        start_time = time.perf_counter()
        try:
            devices = self.client.list_devices()
            logger.debug(
                "Device cloud lists %d device(s)", len(devices), extra={"device_sn": self.device_sn}
            )
            device = self.client.get_device(self.device_sn)
            properties = device.get_properties()
            reading = self.ingestor.ingest(properties)
        except Exception as exc:
            logger.warning(
                "Skipping poll cycle",
                exc_info=True,
                extra={"device_sn": self.device_sn, "reason": str(exc) or type(exc).__name__},
            )
            return None

        logger.info(
            "Polled smart plug: %.1f W",
            reading.watts,
            extra={
                "device_sn": self.device_sn,
                "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return reading

    def start(self) -> None:
        if self.running:
            return
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._thread = threading.Thread(
            target=self._run, args=(stop_event,), name="smart-plug-poller", daemon=True
        )
        self._thread.start()
        logger.info(
            "Started poller every %ss", self.interval_seconds, extra={"device_sn": self.device_sn}
        )

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(
                    "Poller thread still finishing a poll cycle after %ss",
                    timeout,
                    extra={"device_sn": self.device_sn},
                )
        self._thread = None

    def shutdown(self) -> None:
        """Stop polling and release the device client."""
        self.stop()
        self.client.close()

    def _run(self, stop_event: threading.Event) -> None:
        # Each run owns its stop event. The tick lock keeps a lingering thread
        # from a timed-out stop() from polling alongside its replacement.
        while not stop_event.is_set():
            with self._tick_lock:
                if stop_event.is_set():
                    break
                self.poll_once()
            stop_event.wait(self.interval_seconds)


@lru_cache
def build_default_poller() -> Optional[DevicePoller]:
    """Factory that wires the poller from settings; ``None`` when credentials are absent."""
    settings = get_settings()
    access_key = settings.access_key
    secret_key = settings.secret_key
    device_sn = settings.device_sn
    if not (access_key and secret_key and device_sn):
        logger.warning(
            "Device polling disabled: access key, secret key and device serial must all be set."
        )
        return None

    client = DeviceCloudClient(
        access_key=access_key,
        secret_key=secret_key,
        host=settings.api_host,
        timeout_seconds=settings.request_timeout_seconds,
    )
    ingestor = ReadingIngestor(
        store=build_default_store(),
        source_offset_hours=settings.source_utc_offset_hours,
        display_offset_hours=settings.display_utc_offset_hours,
    )
    return DevicePoller(
        client=client,
        ingestor=ingestor,
        device_sn=device_sn,
        interval_seconds=settings.poll_interval_seconds,
    )
