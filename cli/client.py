from __future__ import annotations

from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig

QUERY_PATH = "/api/smart-plug"


class ApiClient:
    """Minimal HTTP client for the smart plug query endpoint."""

    def __init__(self, config: CLIConfig, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.request_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def get_readings(self, start_date: str, end_date: str) -> List[Dict[str, Any]]:
        return self._query(
            {"startDate": start_date, "endDate": end_date, "dataType": "rawData"}
        )

    def get_aggregates(
        self, start_date: str, end_date: str, aggregation_type: str
    ) -> List[Dict[str, Any]]:
        return self._query(
            {
                "startDate": start_date,
                "endDate": end_date,
                "dataType": "aggregated",
                "aggregationType": aggregation_type,
            }
        )

    def _query(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            response = self._client.get(QUERY_PATH, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        payload = response.json()
        if not isinstance(payload, list):
            raise typer.BadParameter("Unexpected response payload from query endpoint.")
        return payload

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") or data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
