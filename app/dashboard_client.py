"""HTTP client for the catalog API, used by dashboard form controllers."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from storekit.errors import RequestFailed

_logger = logging.getLogger("storefront.client")


class DashboardApiClient:
    def __init__(
        self,
        base_url: str = "",
        token: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "DashboardApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, payload: dict | None = None, params: dict | None = None) -> dict:
        try:
            resp = self._client.request(method, path, json=payload, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            _logger.warning("api_request_error method=%s path=%s error=%s", method, path, exc)
            raise RequestFailed(f"Request failed: {exc}") from exc
        try:
            body: Any = resp.json()
        except ValueError:
            body = None
        if resp.status_code >= 400 or not isinstance(body, dict) or not body.get("ok"):
            errors = body.get("errors") if isinstance(body, dict) else None
            message = resp.reason_phrase or "Request failed"
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                message = errors[0].get("message") or message
            _logger.info("api_request_failed method=%s path=%s status=%s", method, path, resp.status_code)
            raise RequestFailed(message, resp.status_code, errors)
        return body

    # catalog entities

    def create(self, store_id: str, segment: str, payload: dict) -> dict:
        return self._request("POST", f"/api/{store_id}/{segment}", payload)["record"]

    def update(self, store_id: str, segment: str, entity_id: str, payload: dict) -> dict:
        return self._request("PATCH", f"/api/{store_id}/{segment}/{entity_id}", payload)["record"]

    def delete(self, store_id: str, segment: str, entity_id: str) -> dict:
        return self._request("DELETE", f"/api/{store_id}/{segment}/{entity_id}")["record"]

    def get(self, store_id: str, segment: str, entity_id: str) -> dict:
        return self._request("GET", f"/api/{store_id}/{segment}/{entity_id}")["record"]

    def list(self, store_id: str, segment: str, **filters: Any) -> list[dict]:
        params = {key: value for key, value in filters.items() if value is not None}
        return self._request("GET", f"/api/{store_id}/{segment}", params=params or None)["records"]

    # stores

    def create_store(self, name: str) -> dict:
        return self._request("POST", "/api/stores", {"name": name})["record"]

    def list_stores(self) -> list[dict]:
        return self._request("GET", "/api/stores")["records"]
