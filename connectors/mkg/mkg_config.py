"""MKG connection configuration.

Settings are injected into the client; nothing here is read at import time
except the optional .env file next to the repository root.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from connectors.erp_base import ERPConfig

ENV_PATH = Path(__file__).resolve().parents[2] / ".env"


class MkgConfigError(ValueError):
    """Required MKG configuration is missing or malformed."""
    pass


@dataclass
class MkgConfig(ERPConfig):
    """Configuration for the MKG REST API.

    Attributes:
        auth_path: Path of the form-login endpoint, appended to base_url
        rest_path: REST root, appended to base_url; endpoints are relative to it
        username: Login user (j_username)
        password: Login password (j_password)
        api_key: Static key sent as X-CustomerID on every call
        session_cookie: Name of the session cookie returned by the login call
    """
    auth_path: str = "/mkg/static/auth/j_spring_security_check"
    rest_path: str = "/mkg/web/v3/MKG"
    username: str = ""
    password: str = ""
    api_key: str = ""
    session_cookie: str = "JSESSIONID"

    @property
    def auth_url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.auth_path}"

    def rest_url(self, endpoint: str) -> str:
        """Full URL for an endpoint relative to the REST root."""
        return f"{self.base_url.rstrip('/')}{self.rest_path}/{endpoint.lstrip('/')}"

    def validate(self) -> None:
        missing = [
            name for name in ("base_url", "username", "password", "api_key")
            if not getattr(self, name)
        ]
        if missing:
            raise MkgConfigError(
                f"Missing MKG configuration: {', '.join(missing)}. "
                "Set the corresponding MKG_* environment variables."
            )

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "MkgConfig":
        """Build configuration from MKG_* environment variables.

        Reads (after loading .env if present):
        - MKG_BASE_URL, MKG_AUTH_PATH, MKG_REST_PATH
        - MKG_USERNAME, MKG_PASSWORD, MKG_API_KEY
        - MKG_ADMINISTRATION_NUMBER, MKG_DEBTOR_NUMBER, MKG_RELATION_NUMBER
        - MKG_TIMEOUT_SECONDS

        Raises:
            MkgConfigError: If base URL or credentials are missing
        """
        path = env_path or ENV_PATH
        if path.exists():
            load_dotenv(path)

        defaults = cls()
        try:
            timeout = float(os.getenv("MKG_TIMEOUT_SECONDS", defaults.timeout_seconds))
        except ValueError as e:
            raise MkgConfigError(f"MKG_TIMEOUT_SECONDS is not a number: {e}") from e

        config = cls(
            base_url=os.getenv("MKG_BASE_URL", ""),
            auth_path=os.getenv("MKG_AUTH_PATH", defaults.auth_path),
            rest_path=os.getenv("MKG_REST_PATH", defaults.rest_path),
            username=os.getenv("MKG_USERNAME", ""),
            password=os.getenv("MKG_PASSWORD", ""),
            api_key=os.getenv("MKG_API_KEY", ""),
            administration_number=os.getenv("MKG_ADMINISTRATION_NUMBER", defaults.administration_number),
            debtor_number=os.getenv("MKG_DEBTOR_NUMBER", defaults.debtor_number),
            relation_number=os.getenv("MKG_RELATION_NUMBER", defaults.relation_number),
            timeout_seconds=timeout,
        )
        config.validate()
        return config
