import logging
import threading
import time
from datetime import timedelta, timezone

import httpx

from services.ingestor import ReadingIngestor
from services.poller import DevicePoller, build_default_poller
from settings import get_settings
from storage.reading_store import ReadingStore, build_default_store
from tests.fakes import FakeDevice, FakeDeviceClient, plug_properties

NAIROBI = timezone(timedelta(hours=3))


def _poller(client: FakeDeviceClient, store: ReadingStore, interval: float = 10.0) -> DevicePoller:
    ingestor = ReadingIngestor(store=store, source_offset_hours=8, display_offset_hours=3)
    return DevicePoller(client=client, ingestor=ingestor, device_sn="HW52-TEST", interval_seconds=interval)


def test_poll_once_appends_reading() -> None:
    store = ReadingStore(display_tz=NAIROBI)
    client = FakeDeviceClient(properties=plug_properties(watts=1234))
    poller = _poller(client, store)

    reading = poller.poll_once()

    assert reading is not None
    assert reading.watts == 123.4
    assert len(store) == 1
    assert client.requested_sns == ["HW52-TEST"]


def test_poll_once_skips_cycle_on_upstream_error(caplog) -> None:
    store = ReadingStore(display_tz=NAIROBI)
    request = httpx.Request("GET", "https://example.invalid/iot-open/sign/device/quota/all")
    client = FakeDeviceClient(error=httpx.ConnectError("device offline", request=request))
    poller = _poller(client, store)

    with caplog.at_level(logging.WARNING):
        result = poller.poll_once()

    assert result is None
    assert len(store) == 0
    records = [record for record in caplog.records if record.name == "services.poller"]
    assert any("Skipping poll cycle" in record.getMessage() for record in records)
    assert any(getattr(record, "device_sn", None) == "HW52-TEST" for record in records)
    assert any("device offline" in getattr(record, "reason", "") for record in records)


def test_poll_once_skips_cycle_on_malformed_snapshot() -> None:
    store = ReadingStore(display_tz=NAIROBI)
    properties = plug_properties()
    del properties["2_1.watts"]
    poller = _poller(FakeDeviceClient(properties=properties), store)

    assert poller.poll_once() is None
    assert len(store) == 0


def test_background_thread_polls_until_stopped() -> None:
    store = ReadingStore(display_tz=NAIROBI)
    client = FakeDeviceClient(properties=plug_properties())
    poller = _poller(client, store, interval=0.01)

    poller.start()
    try:
        deadline = time.monotonic() + 2.0
        while len(store) < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert poller.running
    finally:
        poller.shutdown()

    assert len(store) >= 3
    assert poller.running is False
    assert client.closed is True


def test_start_is_idempotent() -> None:
    store = ReadingStore(display_tz=NAIROBI)
    poller = _poller(FakeDeviceClient(properties=plug_properties()), store, interval=5.0)

    poller.start()
    try:
        thread = poller._thread
        poller.start()
        assert poller._thread is thread
    finally:
        poller.stop()


def test_default_poller_disabled_without_credentials(monkeypatch) -> None:
    for name in ("SMART_PLUG_ACCESS_KEY", "SMART_PLUG_SECRET_KEY", "SMART_PLUG_DEVICE_SN"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    build_default_poller.cache_clear()
    try:
        assert build_default_poller() is None
    finally:
        build_default_poller.cache_clear()
        get_settings.cache_clear()


def test_default_poller_wired_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("SMART_PLUG_ACCESS_KEY", "access")
    monkeypatch.setenv("SMART_PLUG_SECRET_KEY", "secret")
    monkeypatch.setenv("SMART_PLUG_DEVICE_SN", "HW52ZKH4SF5T1769")
    monkeypatch.setenv("SMART_PLUG_POLL_INTERVAL_SECONDS", "30")
    caches = (get_settings, build_default_store, build_default_poller)
    for cache in caches:
        cache.cache_clear()
    try:
        poller = build_default_poller()
        assert poller is not None
        assert poller.device_sn == "HW52ZKH4SF5T1769"
        assert poller.interval_seconds == 30.0
        assert poller.ingestor.store is build_default_store()
        assert poller.running is False
        poller.shutdown()
    finally:
        for cache in caches:
            cache.cache_clear()


class SlowDeviceClient(FakeDeviceClient):
    """Blocks the first property fetch until released and records concurrency."""

    def __init__(self) -> None:
        super().__init__(properties=plug_properties())
        self.entered = threading.Event()
        self.release = threading.Event()
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def get_device(self, sn: str) -> FakeDevice:
        self.requested_sns.append(sn)
        return SlowDevice(self, sn)


class SlowDevice(FakeDevice):
    def get_properties(self):
        client = self._client
        with client._lock:
            client.active += 1
            client.max_active = max(client.max_active, client.active)
        try:
            client.entered.set()
            client.release.wait(2.0)
            return super().get_properties()
        finally:
            with client._lock:
                client.active -= 1


def test_restart_after_timed_out_stop_does_not_overlap_ticks() -> None:
    store = ReadingStore(display_tz=NAIROBI)
    client = SlowDeviceClient()
    poller = _poller(client, store, interval=0.01)

    poller.start()
    assert client.entered.wait(2.0)
    lingering = poller._thread
    poller.stop(timeout=0.05)
    assert lingering is not None and lingering.is_alive()

    poller.start()
    try:
        time.sleep(0.1)
        assert len(client.requested_sns) == 1

        client.release.set()
        deadline = time.monotonic() + 2.0
        while len(store) < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        client.release.set()
        poller.shutdown()
        lingering.join(2.0)

    assert len(store) >= 2
    assert client.max_active == 1
    assert lingering.is_alive() is False


def test_default_poller_disabled_with_partial_credentials(monkeypatch) -> None:
    monkeypatch.setenv("SMART_PLUG_ACCESS_KEY", "access")
    monkeypatch.setenv("SMART_PLUG_SECRET_KEY", "secret")
    monkeypatch.delenv("SMART_PLUG_DEVICE_SN", raising=False)
    get_settings.cache_clear()
    build_default_poller.cache_clear()
    try:
        assert build_default_poller() is None
    finally:
        build_default_poller.cache_clear()
        get_settings.cache_clear()
