"""Election data models — phases, voters, proposals, and the election state.

The lifecycle is a strict forward sequence with a single back-edge:

    REGISTERING_VOTERS → PROPOSALS_REGISTRATION_OPEN
        → PROPOSALS_REGISTRATION_CLOSED → VOTING_OPEN → VOTING_CLOSED
        → TALLIED → (reset) → REGISTERING_VOTERS

ElectionState is a plain value owned by one WorkflowEngine. Nothing here
enforces the lifecycle; the engine does.
"""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from typing import Optional


class Phase(str, enum.Enum):
    """Election lifecycle phases, in order."""
    REGISTERING_VOTERS = "registering_voters"
    PROPOSALS_REGISTRATION_OPEN = "proposals_registration_open"
    PROPOSALS_REGISTRATION_CLOSED = "proposals_registration_closed"
    VOTING_OPEN = "voting_open"
    VOTING_CLOSED = "voting_closed"
    TALLIED = "tallied"

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]

    @property
    def ordinal(self) -> int:
        return _PHASE_ORDER.index(self)


_PHASE_ORDER: list[Phase] = list(Phase)

_PHASE_LABELS: dict[Phase, str] = {
    Phase.REGISTERING_VOTERS: "Registering voters",
    Phase.PROPOSALS_REGISTRATION_OPEN: "Proposals registration open",
    Phase.PROPOSALS_REGISTRATION_CLOSED: "Proposals registration closed",
    Phase.VOTING_OPEN: "Voting session open",
    Phase.VOTING_CLOSED: "Voting session closed",
    Phase.TALLIED: "Votes tallied",
}


@dataclass
class Voter:
    """A registered voter.

    Created on registration. Mutated exactly once, when the voter casts
    a ballot. Destroyed on reset.
    """
    identity: str
    is_registered: bool = True
    has_voted: bool = False
    voted_proposal_id: Optional[int] = None


@dataclass
class Proposal:
    """A proposal submitted during the proposals phase."""
    proposal_id: int
    description: str
    vote_count: int = 0
    proposer: Optional[str] = None

    def __post_init__(self) -> None:
        if self.proposal_id < 1:
            raise ValueError(f"proposal_id must be >= 1, got {self.proposal_id}")
        if self.vote_count < 0:
            raise ValueError(f"vote_count cannot be negative, got {self.vote_count}")


@dataclass
class ElectionState:
    """Complete mutable state of one election.

    Proposals are keyed by id. A removed proposal is simply absent from
    the mapping; ids are never reassigned until reset.
    """
    phase: Phase = Phase.REGISTERING_VOTERS
    voters: dict[str, Voter] = field(default_factory=dict)
    proposals: dict[int, Proposal] = field(default_factory=dict)
    last_proposal_id: int = 0
    winning_proposal_id: Optional[int] = None
    cycle: int = 0

    @property
    def vote_total(self) -> int:
        return sum(1 for v in self.voters.values() if v.has_voted)

    def ordered_proposals(self) -> list[Proposal]:
        """Live proposals in id (insertion) order."""
        return [self.proposals[pid] for pid in sorted(self.proposals)]

    def snapshot(self) -> ElectionState:
        """Deep copy used for rollback and consistent reads."""
        return copy.deepcopy(self)

    def restore(self, other: ElectionState) -> None:
        self.phase = other.phase
        self.voters = other.voters
        self.proposals = other.proposals
        self.last_proposal_id = other.last_proposal_id
        self.winning_proposal_id = other.winning_proposal_id
        self.cycle = other.cycle

    def clear(self) -> None:
        """Drop all cycle data and return to the first phase."""
        self.phase = Phase.REGISTERING_VOTERS
        self.voters = {}
        self.proposals = {}
        self.last_proposal_id = 0
        self.winning_proposal_id = None
        self.cycle += 1
