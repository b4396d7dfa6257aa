# provider.py
"""
Thin PhantomBuster v2 API client.
Only the two calls the orchestration needs: launch an agent and fetch a
container's output. Failures come back as classified ScrapeErrors.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .classifier import error_from_exception, error_from_response, response_body
from .config import DEFAULT_BASE_URL
from .errors import ProviderError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Phantombuster-Key"


class PhantomBusterClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def launch(self, agent_id: str, argument: Dict[str, Any]) -> Dict[str, Any]:
        """POST /agents/launch. Returns the raw response body ({"containerId": ...})."""
        return self._request(
            "POST",
            "/agents/launch",
            json={"id": agent_id, "argument": argument},
        )

    def fetch_output(self, container_id: str) -> Dict[str, Any]:
        """GET /containers/fetch-output. Body may carry `output` and/or `error`."""
        return self._request(
            "GET",
            "/containers/fetch-output",
            params={"id": container_id},
        )

    # -------------------------------------------------------------------
    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {API_KEY_HEADER: self.api_key, "Content-Type": "application/json"}
        try:
            resp = self.session.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.warning("PhantomBuster %s %s failed: %s", method, path, e)
            raise error_from_exception(e) from e

        if resp.status_code >= 400:
            body = response_body(resp)
            logger.warning("PhantomBuster %s %s -> HTTP %s", method, path, resp.status_code)
            raise error_from_response(resp.status_code, body)

        try:
            data = resp.json()
        except (ValueError, RecursionError) as e:
            raise ProviderError(
                "PhantomBuster returned a non-JSON response",
                detail=resp.text[:500],
                http_status=resp.status_code,
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(
                "PhantomBuster returned an unexpected response shape",
                detail=data,
                http_status=resp.status_code,
            )
        return data
