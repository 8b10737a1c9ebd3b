"""MKG HTTP Client.

Session-authenticated HTTP client for the MKG REST API.
Handles login, session cookies, transparent re-login and error decoding.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from connectors.erp_base import (
    ERPClient,
    ERPConfig,
    ERPConnectionStatus,
    HttpMethod,
    register_connector,
)
from connectors.mkg.mkg_auth import MkgAuthProvider
from connectors.mkg.mkg_config import MkgConfig
from connectors.mkg.mkg_models import extract_error_messages

logger = logging.getLogger(__name__)


class MkgApiError(Exception):
    """Base exception for MKG API errors."""
    def __init__(self, message: str, status_code: int = 0, response_body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class MkgAuthenticationError(MkgApiError):
    """Login failed or the session was rejected (401/403)."""
    pass


class MkgNotFoundError(MkgApiError):
    """Resource not found (404)."""
    pass


class MkgValidationError(MkgApiError):
    """Payload rejected by MKG (400/422)."""
    pass


class MkgConnectionError(MkgApiError):
    """Network failure or timeout; no HTTP response was received."""
    pass


_STATUS_ERRORS = {
    400: MkgValidationError,
    401: MkgAuthenticationError,
    403: MkgAuthenticationError,
    404: MkgNotFoundError,
    422: MkgValidationError,
}

# Substring of an HTML error page -> message shown instead of the markup
_HTML_ERROR_HINTS = (
    ("Bad Request", "Bad Request - Check API payload format and required fields"),
    ("Unauthorized", "Unauthorized - Check API credentials and session"),
    ("Not Found", "Not Found - Check API endpoint and resource existence"),
)


def is_html(text: str) -> bool:
    lowered = text.lower()
    return "<!doctype html" in lowered or "<html" in lowered


def decode_body(text: str) -> Dict[str, Any]:
    """Decode a response body.

    Lists are wrapped as {"data": [...]}, non-JSON text as {"raw": text}.
    """
    if not text or not text.strip():
        return {}
    try:
        parsed = json.loads(text)
    except ValueError:
        return {"raw": text}
    if isinstance(parsed, dict):
        return parsed
    if isinstance(parsed, list):
        return {"data": parsed}
    return {"raw": text}


def describe_error(status: int, reason: str, text: str) -> str:
    """Build the message for a failed call.

    HTML error pages are summarized by known substrings; JSON bodies yield
    their t_melding messages; anything else is reported verbatim.
    """
    if is_html(text):
        for needle, message in _HTML_ERROR_HINTS:
            if needle in text:
                return message
        return "Server returned HTML error page - check logs for details"

    messages = extract_error_messages(decode_body(text))
    detail = "; ".join(messages) if messages else text
    prefix = f"HTTP {status} {reason}".strip()
    return f"{prefix}: {detail}"


@register_connector("mkg")
class MkgApiClient(ERPClient):
    """HTTP client for the MKG REST API.

    Provides:
    - Implicit login on first use (form login, JSESSIONID cookie)
    - One transparent re-login when MKG answers 401
    - Typed errors with HTML error pages reduced to a readable message
    - Per-request timeouts; no automatic retries

    Usage:
        async with MkgApiClient(MkgConfig.from_env()) as client:
            body = await client.get("Documents/vorh?NumRows=1")
    """

    def __init__(self, config: ERPConfig, auth_provider: Optional[MkgAuthProvider] = None):
        if not isinstance(config, MkgConfig):
            config = MkgConfig(
                connector_type=config.connector_type,
                base_url=config.base_url,
                administration_number=config.administration_number,
                debtor_number=config.debtor_number,
                relation_number=config.relation_number,
                timeout_seconds=config.timeout_seconds,
                **config.custom_settings,
            )
        super().__init__(config)
        self.config: MkgConfig = config
        self.auth_provider = auth_provider or MkgAuthProvider(config)
        self._http: Optional[aiohttp.ClientSession] = None
        self.request_count = 0

    async def connect(self) -> None:
        """Open the HTTP session.

        Cookies are managed by hand (the Cookie header), so the session's
        own cookie jar is disabled.
        """
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(cookie_jar=aiohttp.DummyCookieJar())

    async def disconnect(self) -> None:
        """Close HTTP session."""
        if self._http is not None:
            await self._http.close()
            self._http = None
        self._connection_status = ERPConnectionStatus.DISCONNECTED

    async def login(self) -> bool:
        await self.connect()
        self._connection_status = ERPConnectionStatus.AUTHENTICATING
        ok = await self.auth_provider.login(self._http)
        self._connection_status = ERPConnectionStatus.CONNECTED if ok else ERPConnectionStatus.FAILED
        return ok

    async def test_connection(self) -> ERPConnectionStatus:
        """Log in and read one debtor row."""
        try:
            if not await self.login():
                return ERPConnectionStatus.FAILED
            await self.get("Documents/debi/?FieldList=debi_num&NumRows=1")
        except MkgApiError as e:
            logger.warning(f"MKG connection test failed: {e}")
            self._connection_status = ERPConnectionStatus.FAILED
        return self._connection_status

    async def request(
        self,
        method: HttpMethod,
        endpoint: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make an authenticated API request.

        Args:
            method: HTTP verb
            endpoint: Path relative to the REST root
            body: JSON body

        Returns:
            Decoded response body

        Raises:
            MkgAuthenticationError: Login failed or session rejected twice
            MkgNotFoundError: Resource not found
            MkgValidationError: Payload rejected
            MkgConnectionError: Network error or timeout
            MkgApiError: Other API errors
        """
        await self.connect()
        method = HttpMethod(method)
        url = self.config.rest_url(endpoint)
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)

        relogged = False
        while True:
            session = await self.auth_provider.ensure_session(self._http)
            if session is None:
                self._connection_status = ERPConnectionStatus.FAILED
                raise MkgAuthenticationError("MKG login failed.")
            self._connection_status = ERPConnectionStatus.CONNECTED

            self.request_count += 1
            try:
                async with self._http.request(
                    method.value,
                    url,
                    headers=self.auth_provider.get_headers(),
                    json=body,
                    timeout=timeout,
                ) as response:
                    text = await response.text()
                    status = response.status
                    reason = response.reason or ""
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise MkgConnectionError(f"{method.value} {endpoint} failed: {e or type(e).__name__}") from e

            if status == 401 and not relogged:
                logger.warning("MKG session rejected (401), logging in again")
                self.auth_provider.invalidate(session)
                relogged = True
                continue

            if status >= 400:
                error_class = _STATUS_ERRORS.get(status, MkgApiError)
                message = describe_error(status, reason, text)
                logger.debug(f"{method.value} {endpoint} -> {status}: {message}")
                raise error_class(message, status, text)

            return decode_body(text)
