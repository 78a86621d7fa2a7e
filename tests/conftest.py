"""Shared fixtures for election tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from election.engine.workflow import WorkflowEngine
from election.identity.authority import StaticAuthority
from election.models.election import Phase
from election.models.policy import ElectionPolicy, RemovalMode
from election.persistence.event_log import EventLog


ADMIN = "admin"

STRICT = ElectionPolicy()

PERMISSIVE = ElectionPolicy(
    name="permissive",
    require_unique_winner=False,
    require_votes_to_close=False,
    reset_only_after_tally=False,
    removal_mode=RemovalMode.LAST_ONLY,
    reject_empty_proposals=False,
)


def fixed_clock() -> datetime:
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_engine(
    policy: ElectionPolicy = STRICT,
    log: EventLog | None = None,
) -> WorkflowEngine:
    return WorkflowEngine(
        StaticAuthority(ADMIN),
        policy=policy,
        event_sink=log if log is not None else EventLog(),
        clock=fixed_clock,
    )


def drive_to(
    engine: WorkflowEngine,
    target: Phase,
    voters: tuple[str, ...] = ("X", "Y"),
    proposals: tuple[str, ...] = ("Cats", "Dogs"),
) -> None:
    """Advance a fresh engine to `target` with voters and proposals in place."""
    if engine.current_phase() == target:
        return
    for v in voters:
        engine.register_voter(ADMIN, v)
    engine.advance_phase(ADMIN)
    if target == Phase.PROPOSALS_REGISTRATION_OPEN:
        return
    for i, description in enumerate(proposals):
        engine.add_proposal(voters[i % len(voters)], description)
    while engine.current_phase() != target:
        engine.advance_phase(ADMIN)


@pytest.fixture
def log() -> EventLog:
    return EventLog()


@pytest.fixture
def engine(log: EventLog) -> WorkflowEngine:
    return make_engine(STRICT, log)


@pytest.fixture
def permissive_engine(log: EventLog) -> WorkflowEngine:
    return make_engine(PERMISSIVE, log)
