"""Workflow engine — owns one election and enforces its lifecycle.

The engine is the only writer of its ElectionState. Each public method
is one of three kinds:

- administrator operations (register_voter, advance_phase,
  remove_proposal, reset_election), gated by the injected Authority;
- voter operations (add_proposal, cast_vote), gated by the registry;
- read-only queries, which may be called at any time.

Every mutating call is all-or-nothing. Guards run before any mutation,
and the events a call produces are only handed to the sink once the
mutation is complete. If the sink rejects an event, the state is
restored from the pre-call snapshot and EventLogError is raised. Events
the sink accepted before the failure stay in it, and their ids are not
reused.

Calls are serialized on a re-entrant lock, so queries never observe a
half-applied transition.
"""

from __future__ import annotations

import contextlib
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

from election.engine.state_machine import PhaseStateMachine
from election.engine.tally import TallyCalculator, TallyResult
from election.errors import (
    AlreadyRegisteredError,
    AlreadyVotedError,
    ElectionError,
    EmptyProposalError,
    EventLogError,
    InvalidPhaseError,
    InvalidProposalIdError,
    NotRegisteredError,
    NoVoteError,
    ProposalNotFoundError,
    TieDetectedError,
    UnauthorizedError,
)
from election.identity.authority import Authority
from election.log import get_logger
from election.models.election import ElectionState, Phase, Proposal, Voter
from election.models.policy import ElectionPolicy, RemovalMode
from election.persistence.event_log import EventKind, EventRecord, EventSink


logger = get_logger(__name__)


class WorkflowEngine:
    """Single-election state machine with voter and proposal bookkeeping.

    Usage:
        engine = WorkflowEngine(StaticAuthority("admin"), event_sink=EventLog())
        engine.register_voter("admin", "alice")
        engine.advance_phase("admin")
        engine.add_proposal("alice", "Cats")
        ...
        engine.advance_phase("admin")   # VOTING_CLOSED → TALLIED
        engine.get_winner()
    """

    def __init__(
        self,
        authority: Authority,
        policy: Optional[ElectionPolicy] = None,
        event_sink: Optional[EventSink] = None,
        state: Optional[ElectionState] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._authority = authority
        self._policy = policy or ElectionPolicy()
        self._state_machine = PhaseStateMachine(self._policy)
        self._event_sink = event_sink
        self._state = state if state is not None else ElectionState()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.RLock()
        self._pending: list[EventRecord] = []
        # Continue numbering after whatever the sink already holds
        self._event_counter: int = getattr(event_sink, "count", 0)

    @property
    def policy(self) -> ElectionPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Administrator operations
    # ------------------------------------------------------------------

    def register_voter(self, caller: str, identity: str) -> Voter:
        """Admit an identity to the voter registry."""
        with self._transaction():
            self._require_admin(caller, "register voters")
            self._require_phase(Phase.REGISTERING_VOTERS, "register voters")
            if not isinstance(identity, str) or not identity.strip():
                raise ValueError("Voter identity cannot be empty")
            if identity in self._state.voters:
                raise AlreadyRegisteredError(f"Voter already registered: {identity}")

            voter = Voter(identity=identity)
            self._state.voters[identity] = voter
            self._emit(EventKind.VOTER_REGISTERED, caller, {"identity": identity})

        logger.info("voter registered", identity=identity)
        return self.get_voter(identity)

    def advance_phase(self, caller: str) -> str:
        """Move the election to its next phase.

        Returns a human-readable status message. Closing out a voting
        session (VOTING_CLOSED → TALLIED) runs the tally first.

        Raises:
            UnauthorizedError: caller is not an administrator.
            InvalidPhaseError: the election is already tallied.
            NoQuorumError: no voters / no proposals / no votes yet.
            TieDetectedError: strict policy and the tally has several leaders.
        """
        with self._transaction():
            self._require_admin(caller, "advance the phase")
            old = self._state.phase
            target = self._state_machine.validate_advance(self._state)

            result: Optional[TallyResult] = None
            if target == Phase.TALLIED:
                result = TallyCalculator.tally(self._state.proposals.values())
                if result.is_tie and self._policy.require_unique_winner:
                    raise TieDetectedError(result.leaders, result.winning_vote_count)
                self._state.winning_proposal_id = result.winning_proposal_id

            self._state.phase = target
            self._emit(
                EventKind.PHASE_CHANGED,
                caller,
                {"old": old.value, "new": target.value},
            )

            message = f"Phase changed: {old.label} -> {target.label}"
            if result is not None:
                winner = self._state.proposals[result.winning_proposal_id]
                self._emit(
                    EventKind.WINNER_ANNOUNCED,
                    caller,
                    {
                        "proposal_id": winner.proposal_id,
                        "description": winner.description,
                        "vote_count": winner.vote_count,
                    },
                )
                message = (
                    f"{message}. Winner: proposal {winner.proposal_id} "
                    f"({winner.description!r}) with {winner.vote_count} votes"
                )

        logger.info("phase advanced", old=old.value, new=target.value)
        return message

    def remove_proposal(
        self, caller: str, proposal_id: Optional[int] = None
    ) -> Proposal:
        """Withdraw a proposal during the proposals phase.

        With no proposal_id the most recent live proposal is removed.
        An explicit id is honoured only under RemovalMode.BY_ID, or when
        it names the most recent live proposal. Removed ids are not
        reassigned.
        """
        with self._transaction():
            self._require_admin(caller, "remove proposals")
            self._require_phase(Phase.PROPOSALS_REGISTRATION_OPEN, "remove proposals")

            live_ids = sorted(self._state.proposals)
            if not live_ids:
                raise ProposalNotFoundError("No proposals to remove")

            if proposal_id is None:
                target_id = live_ids[-1]
            else:
                self._require_assigned_id(proposal_id)
                if proposal_id not in self._state.proposals:
                    raise ProposalNotFoundError(
                        f"Proposal {proposal_id} was already removed"
                    )
                if (
                    self._policy.removal_mode == RemovalMode.LAST_ONLY
                    and proposal_id != live_ids[-1]
                ):
                    raise InvalidProposalIdError(
                        f"Only the most recent proposal (id {live_ids[-1]}) "
                        f"can be removed, got {proposal_id}"
                    )
                target_id = proposal_id

            removed = self._state.proposals.pop(target_id)
            self._emit(EventKind.PROPOSAL_REMOVED, caller, {"proposal_id": target_id})

        logger.info("proposal removed", proposal_id=target_id)
        return removed

    def reset_election(self, caller: str, now: Optional[datetime] = None) -> datetime:
        """Clear all election data and return to REGISTERING_VOTERS.

        Returns the reset timestamp carried by the ELECTION_RESET event.
        """
        with self._transaction():
            self._require_admin(caller, "reset the election")
            self._state_machine.validate_reset(self._state)

            timestamp = now or self._clock()
            previous = self._state.phase
            self._state.clear()
            self._emit(
                EventKind.ELECTION_RESET,
                caller,
                {
                    "timestamp": timestamp.isoformat(),
                    "previous_phase": previous.value,
                    "cycle": self._state.cycle,
                },
                timestamp=timestamp,
            )

        logger.info("election reset", previous_phase=previous.value, cycle=self._state.cycle)
        return timestamp

    # ------------------------------------------------------------------
    # Voter operations
    # ------------------------------------------------------------------

    def add_proposal(self, caller: str, description: str) -> Proposal:
        """Register a proposal on behalf of a registered voter."""
        with self._transaction():
            self._require_voter(caller)
            self._require_phase(Phase.PROPOSALS_REGISTRATION_OPEN, "add proposals")
            if self._policy.reject_empty_proposals and not (description or "").strip():
                raise EmptyProposalError("Proposal description cannot be empty")

            proposal_id = self._state.last_proposal_id + 1
            proposal = Proposal(
                proposal_id=proposal_id,
                description=description,
                proposer=caller,
            )
            self._state.proposals[proposal_id] = proposal
            self._state.last_proposal_id = proposal_id
            self._emit(
                EventKind.PROPOSAL_REGISTERED, caller, {"proposal_id": proposal_id}
            )

        logger.info("proposal registered", proposal_id=proposal_id, proposer=caller)
        return self.get_proposal(proposal_id)

    def cast_vote(self, caller: str, proposal_id: int) -> None:
        """Record the caller's single ballot for a proposal.

        The id range is checked before anything else, so an id outside
        1..last_proposal_id is always reported as InvalidProposalIdError.
        """
        with self._transaction():
            self._require_assigned_id(proposal_id)
            voter = self._require_voter(caller)
            self._require_phase(Phase.VOTING_OPEN, "vote")
            if voter.has_voted:
                raise AlreadyVotedError(
                    f"Voter {caller} already voted for proposal {voter.voted_proposal_id}"
                )
            proposal = self._state.proposals.get(proposal_id)
            if proposal is None:
                raise ProposalNotFoundError(f"Proposal {proposal_id} was removed")

            voter.has_voted = True
            voter.voted_proposal_id = proposal_id
            proposal.vote_count += 1
            self._emit(
                EventKind.VOTED,
                caller,
                {"identity": caller, "proposal_id": proposal_id},
            )

        logger.info("vote cast", identity=caller, proposal_id=proposal_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_phase(self) -> Phase:
        with self._lock:
            return self._state.phase

    def list_proposals(self) -> list[Proposal]:
        """Live proposals in id order. Removed ids are absent."""
        with self._lock:
            return [
                Proposal(p.proposal_id, p.description, p.vote_count, p.proposer)
                for p in self._state.ordered_proposals()
            ]

    def get_proposal(self, proposal_id: int) -> Optional[Proposal]:
        with self._lock:
            p = self._state.proposals.get(proposal_id)
            if p is None:
                return None
            return Proposal(p.proposal_id, p.description, p.vote_count, p.proposer)

    def get_voter(self, identity: str) -> Optional[Voter]:
        with self._lock:
            v = self._state.voters.get(identity)
            if v is None:
                return None
            return Voter(v.identity, v.is_registered, v.has_voted, v.voted_proposal_id)

    def show_vote(self, identity: str) -> str:
        """Description of the proposal an identity voted for (after tally)."""
        with self._lock:
            self._require_phase(Phase.TALLIED, "show votes")
            voter = self._state.voters.get(identity)
            if voter is None:
                raise NotRegisteredError(f"Not a registered voter: {identity}")
            if not voter.has_voted or voter.voted_proposal_id is None:
                raise NoVoteError(f"Voter {identity} did not vote")
            return self._state.proposals[voter.voted_proposal_id].description

    def winning_proposal_id(self) -> int:
        with self._lock:
            self._require_phase(Phase.TALLIED, "read the winner")
            return self._state.winning_proposal_id  # set on entry to TALLIED

    def get_winner(self) -> str:
        """Description of the winning proposal (after tally)."""
        with self._lock:
            return self._state.proposals[self.winning_proposal_id()].description

    def status(self) -> dict[str, Any]:
        """Consistent summary of the election."""
        with self._lock:
            state = self._state
            winner = None
            if state.winning_proposal_id is not None:
                winner = state.proposals[state.winning_proposal_id].description
            return {
                "phase": state.phase.value,
                "phase_label": state.phase.label,
                "policy": self._policy.name,
                "cycle": state.cycle,
                "voters": len(state.voters),
                "votes_cast": state.vote_total,
                "last_proposal_id": state.last_proposal_id,
                "proposals": [
                    {
                        "proposal_id": p.proposal_id,
                        "description": p.description,
                        "vote_count": p.vote_count,
                    }
                    for p in state.ordered_proposals()
                ],
                "winning_proposal_id": state.winning_proposal_id,
                "winner": winner,
            }

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_admin(self, caller: str, action: str) -> None:
        if not self._authority.is_administrator(caller):
            raise UnauthorizedError(f"Only the administrator can {action}: {caller}")

    def _require_voter(self, caller: str) -> Voter:
        voter = self._state.voters.get(caller)
        if voter is None or not voter.is_registered:
            raise NotRegisteredError(f"Not a registered voter: {caller}")
        return voter

    def _require_phase(self, phase: Phase, action: str) -> None:
        if self._state.phase != phase:
            raise InvalidPhaseError(
                f"Cannot {action} in phase {self._state.phase.value}; "
                f"requires {phase.value}"
            )

    def _require_assigned_id(self, proposal_id: int) -> None:
        if not 1 <= proposal_id <= self._state.last_proposal_id:
            raise InvalidProposalIdError(
                f"Proposal id {proposal_id} out of range "
                f"1..{self._state.last_proposal_id}"
            )

    # ------------------------------------------------------------------
    # Events and atomicity
    # ------------------------------------------------------------------

    def _next_event_id(self) -> str:
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _emit(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp: Optional[datetime] = None,
    ) -> None:
        """Queue an event; it reaches the sink when the transaction commits."""
        self._pending.append(
            EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
                timestamp_utc=timestamp or self._clock(),
            )
        )

    @contextlib.contextmanager
    def _transaction(self) -> Iterator[None]:
        """Run one mutating call atomically.

        A guard failure inside the block restores the pre-call state and
        discards queued events. A sink failure after the block does the
        same and surfaces as EventLogError.
        """
        with self._lock:
            snapshot = self._state.snapshot()
            counter = self._event_counter
            self._pending = []
            try:
                yield
            except ElectionError as e:
                self._rollback(snapshot, counter)
                logger.debug("operation rejected", code=e.code, reason=str(e))
                raise
            except Exception:
                self._rollback(snapshot, counter)
                raise

            delivered = 0
            try:
                if self._event_sink is not None:
                    for event in self._pending:
                        self._event_sink.append(event)
                        delivered += 1
            except Exception as e:
                # Ids already accepted by the sink are never issued again
                self._rollback(snapshot, counter + delivered)
                logger.warning("event sink failed", delivered=delivered, reason=str(e))
                raise EventLogError(f"Event log failure: {e}") from e
            finally:
                self._pending = []

    def _rollback(self, snapshot: ElectionState, counter: int) -> None:
        self._state.restore(snapshot)
        self._event_counter = counter
        self._pending = []
