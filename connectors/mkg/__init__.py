"""MKG Connector Package.

Implements the ERPClient interface for the MKG ERP REST API.
"""

from connectors.mkg.mkg_auth import MkgAuthProvider, MkgSession, extract_session_token
from connectors.mkg.mkg_client import (
    MkgApiClient,
    MkgApiError,
    MkgAuthenticationError,
    MkgConnectionError,
    MkgNotFoundError,
    MkgValidationError,
)
from connectors.mkg.mkg_config import MkgConfig, MkgConfigError

__all__ = [
    # Client
    "MkgApiClient",
    "MkgConfig",
    # Auth
    "MkgAuthProvider",
    "MkgSession",
    "extract_session_token",
    # Errors
    "MkgApiError",
    "MkgAuthenticationError",
    "MkgConnectionError",
    "MkgNotFoundError",
    "MkgValidationError",
    "MkgConfigError",
]
