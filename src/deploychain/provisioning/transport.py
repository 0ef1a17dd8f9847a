"""JSON transport to a provisioning gateway, with retry and circuit breaking.

Only transient failures (network errors, timeouts, 408/425/429/5xx) are
retried. Retrying a POST is only safe because every provisioning request
carries an Idempotency-Key the gateway deduplicates on.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from circuitbreaker import circuit
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger()

TRANSIENT_STATUSES = frozenset({408, 425, 429, 500, 502, 503, 504})


class TransientGatewayError(Exception):
    """Gateway unreachable or temporarily failing; worth another attempt."""


class GatewayRejected(Exception):
    """Gateway answered with a definitive error."""

    def __init__(self, status_code: int, detail: str, body: Any = None):
        super().__init__(f"HTTP {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.body = body


def _error_detail(response: httpx.Response) -> tuple[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None
    if isinstance(body, dict):
        detail = body.get("error") or body.get("message") or body.get("detail")
        if detail:
            return str(detail), body
    return response.text, body


class GatewayTransport:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 300.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json", **(headers or {})}

    @circuit(
        failure_threshold=5,
        recovery_timeout=60,
        expected_exception=TransientGatewayError,
        name="provisioning-gateway",
    )
    @retry(
        retry=retry_if_exception_type(TransientGatewayError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=1, max=30),
        reraise=True,
    )
    async def submit(
        self,
        path: str,
        payload: dict[str, Any],
        *,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """POST a JSON payload and return the decoded JSON response."""
        url = f"{self.base_url}{path}"
        headers = dict(self.headers)
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload, headers=headers)
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            logger.warning(
                "gateway_unreachable",
                url=url,
                idempotency_key=idempotency_key,
                error=str(exc),
            )
            raise TransientGatewayError(str(exc)) from exc

        if response.status_code in TRANSIENT_STATUSES:
            logger.warning(
                "gateway_transient_error",
                url=url,
                status=response.status_code,
                idempotency_key=idempotency_key,
            )
            raise TransientGatewayError(f"HTTP {response.status_code}")

        if response.is_error:
            detail, body = _error_detail(response)
            logger.error(
                "gateway_rejected",
                url=url,
                status=response.status_code,
                idempotency_key=idempotency_key,
                error=detail,
            )
            raise GatewayRejected(response.status_code, detail, body)

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise GatewayRejected(response.status_code, "response is not JSON") from exc
        if not isinstance(data, dict):
            raise GatewayRejected(response.status_code, "response is not a JSON object", data)
        return data
