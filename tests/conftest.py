"""Shared fixtures."""

from __future__ import annotations

import pytest

from fakes import ScriptedGateway
from orchestrator.router import AgentOrchestrator


@pytest.fixture
def make_agent():
    """Build an orchestrator over a ScriptedGateway with the default tools."""

    def _make(*replies) -> AgentOrchestrator:
        return AgentOrchestrator(ScriptedGateway(replies))

    return _make


@pytest.fixture
def progress_log():
    return []
