"""Pytest fixtures for porty tests."""

import pytest

from porty.models import Kind, PortEntry


@pytest.fixture
def sample_entries() -> list[PortEntry]:
    """A mixed listener snapshot covering every kind."""
    return [
        PortEntry(port=631, pid=120, process="cupsd", kind=Kind.SYSTEM),
        PortEntry(port=3000, pid=4242, process="node", exec_path="/usr/local/bin/node", kind=Kind.DEV),
        PortEntry(port=5432, pid=900, process="postgres", kind=Kind.DATABASE),
        PortEntry(port=6379, pid=777, process="redis (container)", kind=Kind.CONTAINER),
        PortEntry(port=7000, pid=555, process="mystery", kind=Kind.UNKNOWN),
    ]
