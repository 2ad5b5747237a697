"""HTTP client for the smart plug vendor's device cloud."""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import httpx

DEVICE_LIST_PATH = "/iot-open/sign/device/list"
DEVICE_QUOTA_PATH = "/iot-open/sign/device/quota/all"


class DeviceCloudError(RuntimeError):
    """Raised when the device cloud answers with a non-success code."""

    def __init__(self, code: Any, message: str) -> None:
        self.code = code
        super().__init__(f"Device cloud request failed (code={code}): {message}")


@dataclass(frozen=True)
class DeviceInfo:
    sn: str
    name: Optional[str]
    online: bool


class Device:
    """Handle on one device; properties are fetched on demand."""

    def __init__(self, client: DeviceCloudClient, sn: str) -> None:
        self._client = client
        self.sn = sn

    def get_properties(self) -> Dict[str, Any]:
        data = self._client._request(DEVICE_QUOTA_PATH, {"sn": self.sn})
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected property payload for device {self.sn!r}")
        return data


def sign_params(
    params: Mapping[str, Any],
    *,
    access_key: str,
    secret_key: str,
    nonce: str,
    timestamp: str,
) -> str:
    """Return the hex HMAC-SHA256 signature expected by the device cloud."""

    parts = [f"{key}={params[key]}" for key in sorted(params)]
    parts.extend(
        [
            f"accessKey={access_key}",
            f"nonce={nonce}",
            f"timestamp={timestamp}",
        ]
    )
    message = "&".join(parts)
    return hmac.new(
        secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
    ).hexdigest()


class DeviceCloudClient:
    def __init__(
        self,
        *,
        access_key: str,
        secret_key: str,
        host: str,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._access_key = access_key
        self._secret_key = secret_key
        self._client = httpx.Client(
            base_url=host.rstrip("/"),
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def list_devices(self) -> List[DeviceInfo]:
        data = self._request(DEVICE_LIST_PATH, {})
        if not isinstance(data, list):
            raise ValueError("Unexpected device list payload")
        devices: List[DeviceInfo] = []
        for entry in data:
            if not isinstance(entry, dict) or "sn" not in entry:
                continue
            devices.append(
                DeviceInfo(
                    sn=str(entry["sn"]),
                    name=entry.get("deviceName"),
                    online=bool(entry.get("online")),
                )
            )
        return devices

    def get_device(self, sn: str) -> Device:
        return Device(self, sn)

    def _request(self, path: str, params: Dict[str, Any]) -> Any:
        nonce = f"{secrets.randbelow(900000) + 100000}"
        timestamp = str(int(time.time() * 1000))
        headers = {
            "accessKey": self._access_key,
            "nonce": nonce,
            "timestamp": timestamp,
            "sign": sign_params(
                params,
                access_key=self._access_key,
                secret_key=self._secret_key,
                nonce=nonce,
                timestamp=timestamp,
            ),
        }
        resp = self._client.get(path, params=params, headers=headers)
        resp.raise_for_status()
        payload = resp.json()
        if not isinstance(payload, dict):
            raise ValueError("Unexpected device cloud response shape")
        code = payload.get("code")
        if str(code) != "0":
            raise DeviceCloudError(code, str(payload.get("message") or "unknown error"))
        return payload.get("data")
