"""Pytest configuration and fixtures for api-courier tests.

Transport helpers live in tests/transport_fixtures.py so test modules can
import them directly; this file only wires them into fixtures.
"""

from __future__ import annotations

from typing import Iterable

import pytest

from api_courier.transport import TransportConnector
from tests.transport_fixtures import Reply, ScriptedTransport


@pytest.fixture
def connector_for():
    """Build a TransportConnector over a ScriptedTransport.

    Returns a factory so each test states its own replies:
        connector, transport = connector_for([(200, "<a/>", {})])
    """

    def factory(
        replies: Iterable[Reply], repeat_last: bool = False
    ) -> tuple[TransportConnector, ScriptedTransport]:
        transport = ScriptedTransport(replies, repeat_last=repeat_last)
        return TransportConnector(transport=transport), transport

    return factory
