"""HTTP plumbing shared by the hosted embedding providers."""

from typing import Any

import httpx
from loguru import logger

from kbforge.errors import TimeoutError, TransientError, classify_http_error


def post_json(
    client: httpx.Client,
    url: str,
    headers: dict[str, str],
    payload: dict[str, Any],
    provider: str,
) -> dict[str, Any]:
    """POST a JSON payload and return the decoded response body.

    Transport failures and HTTP error statuses are translated into the
    KBForge error taxonomy so callers can tell retryable from permanent
    failures.
    """
    try:
        resp = client.post(url, headers=headers, json=payload)
    except httpx.TimeoutException as e:
        logger.error(f"{provider} embedding request timed out: {e}")
        raise TimeoutError(
            f"{provider} embedding request timed out",
            timeout=client.timeout.read,
            original_error=e,
        ) from e
    except httpx.TransportError as e:
        logger.error(f"{provider} embedding request failed: {e}")
        raise TransientError(f"{provider} embedding request failed", original_error=e) from e

    if resp.status_code >= 400:
        logger.error(f"{provider} embedding failed: HTTP {resp.status_code}")
        error = classify_http_error(resp.status_code, resp.text, dict(resp.headers))
        error.details["provider"] = provider
        raise error

    return resp.json()
