"""Pytest fixtures for the election registry tests.

This module provides shared fixtures: well-known addresses, a fresh registry
per test with an attached event log, a pre-populated election, and an
httpx client bound to the FastAPI app in-process.
"""

from typing import AsyncGenerator, Callable, Dict, List

import httpx
import pytest

from election_registry.registry_api.event_log import EventLog
from election_registry.shared import ElectionRegistry, RegistryEvent

OWNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
VOTER_ADDRESSES = [
    "0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
    "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
    "0x90F79bf6EB2c4f870365E785982E1f101E93b906",
]
OUTSIDER_ADDRESS = "0x15d34AAf54267DB7D7c367839AAf71A00a2C6A65"

ELECTION_DESCRIPTION = "Test Election"
CANDIDATE_NAMES = ["John Doe", "Jane Doe"]


@pytest.fixture
def owner() -> str:
    """Address of the registry owner."""
    return OWNER_ADDRESS


@pytest.fixture
def voters() -> List[str]:
    """Three addresses that tests may register as voters."""
    return list(VOTER_ADDRESSES)


@pytest.fixture
def outsider() -> str:
    """An address that is neither the owner nor a registered voter."""
    return OUTSIDER_ADDRESS


@pytest.fixture
def event_log() -> EventLog:
    return EventLog(max_size=100)


@pytest.fixture
def registry(owner: str, event_log: EventLog) -> ElectionRegistry:
    """Fresh registry with the event log attached."""
    registry = ElectionRegistry(owner=owner)
    registry.add_listener(event_log)
    return registry


@pytest.fixture
def events(registry: ElectionRegistry) -> List[RegistryEvent]:
    """List that collects every event emitted after the fixture is requested."""
    collected: List[RegistryEvent] = []
    registry.add_listener(collected.append)
    return collected


@pytest.fixture
def election_id(registry: ElectionRegistry, owner: str) -> int:
    """Active election "Test Election" with candidates John Doe (0) and Jane Doe (1)."""
    election_id = registry.create_election(owner, ELECTION_DESCRIPTION)
    for name in CANDIDATE_NAMES:
        registry.add_candidate(owner, election_id, name)
    return election_id


@pytest.fixture
def registered_voters(registry: ElectionRegistry, owner: str, voters: List[str]) -> List[str]:
    """Register all three voter addresses."""
    for address in voters:
        registry.register_voter(owner, address)
    return voters


@pytest.fixture
def as_caller() -> Callable[[str], Dict[str, str]]:
    """Helper returning the request headers that identify a caller."""
    def _headers(address: str) -> Dict[str, str]:
        return {"X-Caller-Address": address}

    return _headers


@pytest.fixture
async def api_client(
    registry: ElectionRegistry,
    event_log: EventLog
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client bound to the API app, serving this test's registry."""
    from election_registry.registry_api.main import app

    saved = (app.state.registry, app.state.event_log)
    app.state.registry = registry
    app.state.event_log = event_log

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.state.registry, app.state.event_log = saved


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "api: mark test as exercising the HTTP surface"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as starting a separate service process"
    )
