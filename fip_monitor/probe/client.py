"""
HTTP Probe Client — a single outbound request with a hard timeout.

Behavioral Contract:
- Resolves with the response body only when the status equals the expected code
- Redirects are never followed; a 3xx is just another status to compare
- The timeout timer starts before dispatch and wins over a late response,
  which is then discarded
- Exactly one outcome per call: a body, or one ProbeError subclass
"""

import asyncio
import logging
from typing import Mapping, Optional, Union

import httpx

logger = logging.getLogger(__name__)


class ProbeError(Exception):
    """Base class for recoverable outbound request failures."""
    pass


class ProbeTimeout(ProbeError):
    """No response arrived within the request timeout."""

    def __init__(self, method: str, url: str, timeout: float):
        super().__init__(f"{method.upper()} {url} timed out after {timeout:g}s")
        self.timeout = timeout


class ProbeStatusMismatch(ProbeError):
    """The response status did not equal the expected status."""

    def __init__(self, method: str, url: str, status_code: int, expected_status: int):
        super().__init__(
            f"{method.upper()} {url} returned {status_code}, expected {expected_status}"
        )
        self.status_code = status_code
        self.expected_status = expected_status


class ProbeTransportError(ProbeError):
    """Network-level failure (connection refused, DNS, reset, unusable URL, ...)."""

    def __init__(self, method: str, url: str, cause: Exception):
        super().__init__(f"{method.upper()} {url} failed: {cause!r}")
        self.cause = cause


Body = Union[str, bytes, dict, None]


class ProbeClient:
    """Thin wrapper around httpx.AsyncClient with first-resolution-wins timeouts."""

    def __init__(
        self,
        timeout: float,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            follow_redirects=False,
            timeout=httpx.Timeout(timeout),
        )

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Body = None,
        expected_status: int = 200,
        json_body: Optional[dict] = None,
    ) -> str:
        """
        Issue one request and return its body text.

        A dict ``body`` is sent as a form; ``json_body`` is sent as JSON.
        Raises ProbeTimeout, ProbeStatusMismatch or ProbeTransportError.
        """
        kwargs: dict = {"headers": dict(headers) if headers else None}
        if isinstance(body, dict):
            kwargs["data"] = body
        elif body is not None:
            kwargs["content"] = body
        if json_body is not None:
            kwargs["json"] = json_body

        try:
            response = await asyncio.wait_for(
                self._client.request(
                    method.upper(), url, follow_redirects=False, **kwargs
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise ProbeTimeout(method, url, self.timeout) from None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ProbeTransportError(method, url, e) from e

        if response.status_code != expected_status:
            raise ProbeStatusMismatch(method, url, response.status_code, expected_status)

        logger.debug("%s %s -> %d", method.upper(), url, response.status_code)
        return response.text

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
