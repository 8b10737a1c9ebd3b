"""
Shared test fixtures.

FakeERPClient stands in for MkgApiClient: responses are scripted per
method and endpoint prefix, and every call is recorded.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from connectors.erp_base import ERPClient, ERPConfig, ERPConnectionStatus, HttpMethod


# A fixed "now" for every test that builds headers or checks dates
FIXED_NOW = datetime(2025, 6, 2, 9, 30)

Response = Union[Dict[str, Any], Exception, Callable[[str, Optional[Dict[str, Any]]], Any]]


def created(table: str, id_field: str, value: str) -> Dict[str, Any]:
    """Body MKG returns after creating a header."""
    return {"response": {"OutputData": {table: [{id_field: value}]}}}


def records(table: str, *rows: Dict[str, Any]) -> Dict[str, Any]:
    """Query result envelope."""
    return {"response": {"ResultData": [{table: list(rows)}]}}


def error_body(*messages: str) -> Dict[str, Any]:
    """Body carrying t_type 1 (error) messages."""
    return {
        "response": {
            "ResultData": [{"t_messages": [{"t_type": 1, "t_melding": m} for m in messages]}]
        }
    }


class FakeERPClient(ERPClient):
    """
    Scripted ERPClient.

    Usage:
        client = FakeERPClient()
        client.on("POST", "Documents/vorh/", created("vorh", "vorh_num", "20250001"))
        client.on("GET", "Documents/vorh/?", records("vorh"))

    The most recently registered matching route wins. A route may be a
    body dict, an exception instance (raised) or a callable
    (endpoint, body) -> body. A list of responses is consumed in order,
    the last one repeating. Unmatched GETs return an empty result,
    unmatched writes return {}.
    """

    def __init__(self, config: Optional[ERPConfig] = None, delay: float = 0.0):
        super().__init__(config or ERPConfig())
        self.routes: List[Tuple[str, str, List[Response]]] = []
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []
        self.delay = delay
        self.connected = False

    def on(self, method: str, prefix: str, *responses: Response) -> "FakeERPClient":
        self.routes.append((method.upper(), prefix, list(responses)))
        return self

    def calls_to(self, method: str, prefix: str = "") -> List[Tuple[str, str, Optional[Dict[str, Any]]]]:
        return [c for c in self.calls if c[0] == method.upper() and c[1].startswith(prefix)]

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def login(self) -> bool:
        self._connection_status = ERPConnectionStatus.CONNECTED
        return True

    async def test_connection(self) -> ERPConnectionStatus:
        return ERPConnectionStatus.CONNECTED

    async def request(self, method: HttpMethod, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        method = HttpMethod(method).value
        self.calls.append((method, endpoint, body))
        if self.delay:
            await asyncio.sleep(self.delay)

        for route_method, prefix, responses in reversed(self.routes):
            if route_method == method and endpoint.startswith(prefix):
                response = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    response = response(endpoint, body)
                    if asyncio.iscoroutine(response):
                        response = await response
                return response

        if method == "GET":
            return {"data": []}
        return {}


@pytest.fixture
def fake_client():
    return FakeERPClient()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
