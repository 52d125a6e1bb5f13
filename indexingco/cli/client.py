import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from indexingco.config import DEFAULT_BASE_URL
from indexingco.errors import IndexingcoError
from indexingco.logging import get_logger, log_extra

log = get_logger("indexingco.cli.client")

_DETAIL_KEYS = ("detail", "message", "error")


class APIClientError(IndexingcoError):
    """The API answered with a non-2xx status, or could not be reached."""

    category = "api"


def error_detail(resp: httpx.Response) -> str:
    """Best human-readable reason from an error response body."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text
    if isinstance(data, dict):
        for key in _DETAIL_KEYS:
            if data.get(key):
                return str(data[key])
    return resp.text


def decode_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    if "application/json" in resp.headers.get("content-type", ""):
        return resp.json()
    try:
        return json.loads(resp.text)
    except ValueError:
        return resp.text


@dataclass
class APIClient:
    """
    Thin synchronous client for the Indexing Co REST API.

    Paths are relative to ``base_url``; callers percent-encode any path
    segment they interpolate. The key is read on every request so it can be
    replaced while the dashboard is running.
    """

    base_url: str = DEFAULT_BASE_URL
    api_key: Optional[str] = None
    transport: Optional[httpx.BaseTransport] = None
    timeout: float = 20.0

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-API-KEY"] = self.api_key
        return headers

    def send(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = path.lstrip("/")
        started = time.monotonic()
        try:
            with httpx.Client(
                base_url=self.base_url.rstrip("/") + "/",
                headers=self._headers(),
                transport=self.transport,
                timeout=self.timeout,
            ) as client:
                resp = client.request(method, url, json=payload, params=params or None)
        except httpx.HTTPError as exc:
            log.error("request_failed", extra=log_extra(method=method, path=url, error=str(exc)))
            raise APIClientError(f"{method} {url} failed: {exc}", retryable=True, metadata={"path": url}) from exc

        elapsed = round((time.monotonic() - started) * 1000, 1)
        log.debug(
            "request_complete",
            extra=log_extra(method=method, path=url, status_code=resp.status_code, duration_ms=elapsed),
        )
        if resp.is_error:
            raise APIClientError(
                f"{resp.status_code} {resp.reason_phrase}: {error_detail(resp)}",
                metadata={"status_code": resp.status_code, "path": url},
                retryable=resp.status_code >= 500,
            )
        return decode_body(resp)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.send("GET", path, params=params)

    def post(self, path: str, payload: Optional[Dict[str, Any]] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.send("POST", path, payload, params)

    def delete(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        return self.send("DELETE", path, payload)
