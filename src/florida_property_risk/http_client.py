import asyncio
import logging
import urllib.parse
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from .config import Settings
from .errors import RemoteError, UpstreamDataError

logger = logging.getLogger("fpr.http")

SleepFn = Callable[[float], Awaitable[None]]


def compute_backoff_delays(retries: int, step_s: float = 1.0) -> List[float]:
    """Linear backoff: step, 2*step, 3*step ..."""
    return [step_s * (attempt + 1) for attempt in range(max(retries, 0))]


def embedded_error_message(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    err = payload.get("error")
    if not err:
        return None
    if isinstance(err, dict):
        message = err.get("message") or "feature service error"
        details = err.get("details") or []
        if details:
            message = f"{message} ({'; '.join(str(d) for d in details)})"
        code = err.get("code")
        return f"{code}: {message}" if code else str(message)
    return str(err)


class RemoteQueryClient:
    """GET client for feature-query services.

    Each call opens a short-lived ``httpx.AsyncClient`` so that certificate
    verification can be relaxed per host without sharing a connection pool
    between trusted and untrusted servers.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFn] = None,
        usage=None,
    ):
        self.settings = settings
        self._transport = transport
        self._sleep = sleep if sleep is not None else asyncio.sleep
        self._usage = usage

    def verify_tls(self, url: str) -> bool:
        host = (urllib.parse.urlparse(url).hostname or "").lower()
        return host not in self.settings.relaxed_tls_hosts

    async def _get_once(
        self, url: str, params: Dict[str, Any], timeout_s: float
    ) -> Dict[str, Any]:
        verify = self.verify_tls(url)
        if not verify:
            logger.debug("relaxed TLS verification for %s", url)
        async with httpx.AsyncClient(
            timeout=timeout_s,
            verify=verify,
            transport=self._transport,
            headers={
                "User-Agent": self.settings.user_agent,
                "Accept": "application/json",
            },
            follow_redirects=True,
        ) as client:
            response = await client.get(url, params=params)
        if response.status_code < 200 or response.status_code >= 300:
            raise RemoteError(f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteError(f"invalid JSON response: {exc}") from exc
        if not isinstance(payload, dict):
            raise RemoteError("unexpected response shape")
        return payload

    async def query(
        self,
        url: str,
        params: Dict[str, Any],
        *,
        timeout_s: Optional[float] = None,
        retries: Optional[int] = None,
        label: str = "ArcGIS",
    ) -> Dict[str, Any]:
        timeout_s = timeout_s or self.settings.request_timeout_s
        retries = self.settings.retries if retries is None else retries
        delays = compute_backoff_delays(retries, self.settings.backoff_step_s)
        attempts = len(delays) + 1
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            if self._usage is not None:
                await asyncio.to_thread(self._usage.record, label)
            try:
                payload = await self._get_once(url, params, timeout_s)
            except (RemoteError, httpx.HTTPError) as exc:
                last_error = exc
                logger.warning(
                    "[%s] attempt %d/%d failed: %s",
                    label,
                    attempt + 1,
                    attempts,
                    str(exc) or type(exc).__name__,
                )
                if attempt < len(delays):
                    await self._sleep(delays[attempt])
                continue
            message = embedded_error_message(payload)
            if message is not None:
                logger.warning("[%s] service error: %s", label, message)
                raise UpstreamDataError(f"{label}: {message}", label=label)
            return payload
        detail = str(last_error) or type(last_error).__name__
        raise RemoteError(f"{label}: {detail}", label=label)
