"""MKG session authentication.

MKG uses a Spring Security form login: the credentials are posted as
j_username/j_password and the session id comes back in a Set-Cookie header.
The session has no advertised expiry, so it is kept until the server rejects
it (401), at which point the client invalidates it and logs in again.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

import aiohttp

from connectors.mkg.mkg_config import MkgConfig

logger = logging.getLogger(__name__)


@dataclass
class MkgSession:
    """An authenticated MKG session."""
    token: str
    cookie_name: str = "JSESSIONID"
    obtained_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def cookie_header(self) -> str:
        """Value for the Cookie request header."""
        return f"{self.cookie_name}={self.token}"


def extract_session_token(set_cookie_headers: Iterable[str], cookie_name: str = "JSESSIONID") -> Optional[str]:
    """Pull the session token out of raw Set-Cookie header values.

    "JSESSIONID=abc123; Path=/mkg; HttpOnly" -> "abc123"
    """
    for header in set_cookie_headers:
        if not header.startswith(cookie_name):
            continue
        first_pair = header.split(";", 1)[0]
        _, _, token = first_pair.partition("=")
        token = token.strip()
        if token:
            return token
    return None


class MkgAuthProvider:
    """Holds the MKG session and performs (serialized) logins.

    Usage:
        auth = MkgAuthProvider(config)
        ok = await auth.login(http_session)
        headers = auth.get_headers()
    """

    def __init__(self, config: MkgConfig):
        self.config = config
        self._session: Optional[MkgSession] = None
        self._lock = asyncio.Lock()
        self.login_count = 0

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Optional[MkgSession]:
        return self._session

    def invalidate(self, stale: Optional[MkgSession] = None) -> None:
        """Drop the session, unless it was already replaced by another caller."""
        if stale is None or self._session is stale:
            self._session = None

    async def login(self, http: aiohttp.ClientSession) -> bool:
        """Post the form login and store the session token.

        Returns:
            True if a session token was obtained
        """
        async with self._lock:
            return await self._login(http)

    async def ensure_session(self, http: aiohttp.ClientSession) -> Optional[MkgSession]:
        """Return the current session, logging in first if there is none.

        Concurrent callers wait on the same lock, so only the first one
        actually performs the login.
        """
        if self._session is not None:
            return self._session
        async with self._lock:
            if self._session is None:
                await self._login(http)
            return self._session

    async def _login(self, http: aiohttp.ClientSession) -> bool:
        form = {
            "j_username": self.config.username,
            "j_password": self.config.password,
        }
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
        self.login_count += 1

        try:
            async with http.post(
                self.config.auth_url,
                data=form,
                allow_redirects=False,
                timeout=timeout,
            ) as response:
                cookies = response.headers.getall("Set-Cookie", [])
                token = extract_session_token(cookies, self.config.session_cookie)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"MKG login request failed: {e}")
            self._session = None
            return False

        if not token:
            logger.error(
                f"MKG login failed: no {self.config.session_cookie} cookie "
                f"in response (status {response.status})"
            )
            self._session = None
            return False

        self._session = MkgSession(token=token, cookie_name=self.config.session_cookie)
        logger.info("MKG login successful")
        return True

    def get_headers(self) -> Dict[str, str]:
        """Headers attached to every REST call."""
        headers = {
            "X-CustomerID": self.config.api_key,
            "Accept": "application/json",
        }
        if self._session is not None:
            headers["Cookie"] = self._session.cookie_header
        return headers
