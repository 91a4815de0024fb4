import logging
from typing import Iterable, Optional

import requests

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """A completion request that produced no assistant reply."""

    INVALID_METHOD = "InvalidMethod"
    UPSTREAM_FAILURE = "UpstreamFailure"
    NETWORK_FAILURE = "NetworkFailure"

    def __init__(self, kind: str, detail: str):
        super().__init__(detail)
        self.kind = kind
        self.detail = detail

    def __repr__(self) -> str:
        return f"GatewayError({self.kind!r}, {self.detail!r})"


class CompletionGateway:
    """Sends one conversation to the chat proxy endpoint and returns the reply text.

    Exactly one HTTP attempt is made per call. No timeout is applied unless one
    is configured, so the transport's default behaviour governs slow requests.
    """

    def __init__(self, endpoint: str, timeout: Optional[float] = None, session=None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.http = session or requests

    def complete(self, messages: Iterable[dict], model: str) -> str:
        payload = {"messages": list(messages), "model": model}
        try:
            response = self.http.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Completion request to %s failed: %s", self.endpoint, exc)
            raise GatewayError(GatewayError.NETWORK_FAILURE, str(exc)) from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code == 405:
            raise GatewayError(GatewayError.INVALID_METHOD, _error_detail(data, "Method not allowed"))
        if not response.ok:
            raise GatewayError(GatewayError.UPSTREAM_FAILURE, _error_detail(data, "Failed to get response"))
        if not isinstance(data, dict) or not isinstance(data.get("message"), str):
            raise GatewayError(GatewayError.UPSTREAM_FAILURE, "Malformed response from chat endpoint")
        return data["message"]


def _error_detail(data, fallback: str) -> str:
    if not isinstance(data, dict):
        return fallback
    error = data.get("error") or fallback
    details = data.get("details")
    return f"{error} ({details})" if details else error
