"""Shared pytest fixtures for the pipeline lifecycle test suite."""

from __future__ import annotations

import pytest

from pipeline_lifecycle.orchestrators.poller import Poller
from tests.fakes import FakeClock, ScriptedClient


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def client() -> ScriptedClient:
    return ScriptedClient()


@pytest.fixture()
def poller(client: ScriptedClient, clock: FakeClock) -> Poller:
    """Poller with a 10 s interval, no jitter and a fake clock."""
    return Poller(
        client,
        poll_interval=10.0,
        jitter=0.0,
        retry_base=2.0,
        max_backoff=8.0,
        clock=clock,
        sleep=clock.sleep,
    )
