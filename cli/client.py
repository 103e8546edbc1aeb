from __future__ import annotations

from typing import Any, Dict, List

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the bin monitoring service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def list_bins(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/bins")

    def get_bin(self, bin_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/bins/{bin_id}")

    def create_bin(self, bin_id: int, location: str, capacity: int) -> Dict[str, Any]:
        payload = self._request(
            "POST",
            "/bins",
            json={"binId": bin_id, "location": location, "capacity": capacity},
        )
        return payload["bin"]

    def update_bin(self, bin_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
        payload = self._request("PUT", f"/bins/{bin_id}", json=changes)
        return payload["bin"]

    def delete_bin(self, bin_id: int) -> None:
        self._request("DELETE", f"/bins/{bin_id}")

    def login(self, username: str, password: str) -> Dict[str, Any]:
        return self._request(
            "POST", "/login", json={"username": username, "password": password}
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
