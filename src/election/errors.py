"""Election error hierarchy.

Every guard failure in the workflow raises one of these. Errors are
synchronous and non-retryable: the requested operation did not happen and
the engine state is exactly what it was before the call.
"""

from __future__ import annotations

from typing import Sequence


class ElectionError(Exception):
    """Base class for all election workflow errors."""
    code = "election_error"


class UnauthorizedError(ElectionError):
    """Caller lacks the required role (administrator or registered voter)."""
    code = "unauthorized"


class InvalidPhaseError(ElectionError):
    """Operation attempted outside the phase that permits it."""
    code = "invalid_phase"


class AlreadyRegisteredError(ElectionError):
    """Identity is already in the voter registry."""
    code = "already_registered"


class NotRegisteredError(ElectionError):
    """Identity is not in the voter registry."""
    code = "not_registered"


class InvalidProposalIdError(ElectionError):
    """Proposal id outside the assigned range."""
    code = "invalid_proposal_id"


class ProposalNotFoundError(InvalidProposalIdError):
    """Proposal id was assigned but the proposal has been removed."""
    code = "proposal_not_found"


class EmptyProposalError(ElectionError):
    """Proposal description is empty or whitespace-only."""
    code = "empty_proposal"


class AlreadyVotedError(ElectionError):
    """Voter has already cast a ballot this cycle."""
    code = "already_voted"


class NoVoteError(ElectionError):
    """Voter has not cast a ballot, so there is no vote to show."""
    code = "no_vote"


class NoQuorumError(ElectionError):
    """A phase-advance precondition (voters, proposals, votes) is unmet."""
    code = "no_quorum"


class TieDetectedError(ElectionError):
    """Close-out tally found more than one proposal with the top score.

    The phase does not advance. Resolution happens out-of-band.
    """
    code = "tie_detected"

    def __init__(self, leaders: Sequence[int], vote_count: int) -> None:
        self.leaders = list(leaders)
        self.winner_count = len(self.leaders)
        self.vote_count = vote_count
        super().__init__(
            f"Multiple winners: {self.winner_count} proposals "
            f"({', '.join(str(p) for p in self.leaders)}) tied at {vote_count} votes"
        )


class EventLogError(ElectionError):
    """The event sink failed to record an event; the call was rolled back."""
    code = "event_log_failure"


class PolicyError(ElectionError):
    """Election policy configuration is missing or malformed."""
    code = "policy_error"
