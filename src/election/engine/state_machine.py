"""Election phase state machine — the legal edges and their preconditions.

    REGISTERING_VOTERS → PROPOSALS_REGISTRATION_OPEN
        → PROPOSALS_REGISTRATION_CLOSED → VOTING_OPEN → VOTING_CLOSED
        → TALLIED

TALLIED has no forward edge; only a reset leaves it. Fail-closed: any
edge not listed here is rejected.

Pure computation: validates against an ElectionState and a policy but
never mutates. The tally precondition on VOTING_CLOSED → TALLIED is
checked by the engine, which owns the tally.
"""

from __future__ import annotations

from typing import Optional

from election.errors import InvalidPhaseError, NoQuorumError
from election.models.election import ElectionState, Phase
from election.models.policy import ElectionPolicy


# Forward edges: {from_phase: to_phase}
_TRANSITIONS: dict[Phase, Phase] = {
    Phase.REGISTERING_VOTERS: Phase.PROPOSALS_REGISTRATION_OPEN,
    Phase.PROPOSALS_REGISTRATION_OPEN: Phase.PROPOSALS_REGISTRATION_CLOSED,
    Phase.PROPOSALS_REGISTRATION_CLOSED: Phase.VOTING_OPEN,
    Phase.VOTING_OPEN: Phase.VOTING_CLOSED,
    Phase.VOTING_CLOSED: Phase.TALLIED,
}


class PhaseStateMachine:
    """Validates election phase transitions under a policy."""

    def __init__(self, policy: ElectionPolicy) -> None:
        self._policy = policy

    @staticmethod
    def next_phase(phase: Phase) -> Optional[Phase]:
        """Forward successor of a phase, or None from TALLIED."""
        return _TRANSITIONS.get(phase)

    @staticmethod
    def is_legal(source: Phase, target: Phase) -> bool:
        """True for forward edges and the TALLIED → REGISTERING_VOTERS reset edge."""
        if _TRANSITIONS.get(source) == target:
            return True
        return source == Phase.TALLIED and target == Phase.REGISTERING_VOTERS

    def validate_advance(self, state: ElectionState) -> Phase:
        """Return the target phase of an advance from the current phase.

        Raises:
            InvalidPhaseError: no forward edge exists (TALLIED).
            NoQuorumError: the edge's precondition is unmet.
        """
        target = self.next_phase(state.phase)
        if target is None:
            raise InvalidPhaseError(
                f"Cannot advance from {state.phase.value}: "
                f"election already tallied, reset to start a new cycle"
            )

        if state.phase == Phase.REGISTERING_VOTERS:
            if not state.voters:
                raise NoQuorumError(
                    "Cannot open proposals registration: no registered voters"
                )
        elif state.phase == Phase.PROPOSALS_REGISTRATION_OPEN:
            if not state.proposals:
                raise NoQuorumError(
                    "Cannot close proposals registration: no proposals registered"
                )
        elif state.phase == Phase.VOTING_OPEN:
            if self._policy.require_votes_to_close and state.vote_total == 0:
                raise NoQuorumError(
                    "Cannot close voting session: no votes cast"
                )

        return target

    def validate_reset(self, state: ElectionState) -> None:
        """Raise InvalidPhaseError if the policy forbids a reset now."""
        if self._policy.reset_only_after_tally and state.phase != Phase.TALLIED:
            raise InvalidPhaseError(
                f"Reset requires phase {Phase.TALLIED.value}, "
                f"current phase is {state.phase.value}"
            )
