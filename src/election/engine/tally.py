"""Tally calculator — deterministic winner selection.

Scan proposals in id order and keep the first proposal whose vote count
strictly exceeds the best seen so far. Equal counts never displace an
earlier leader, so among tied maxima the lowest id is recorded. A second
pass collects every proposal at the maximum so callers can detect ties.

Read-only: proposals are never modified here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from election.errors import NoQuorumError
from election.models.election import Proposal


@dataclass(frozen=True)
class TallyResult:
    """Outcome of a tally pass."""
    winning_proposal_id: int
    winning_vote_count: int
    leaders: tuple[int, ...]

    @property
    def is_tie(self) -> bool:
        return len(self.leaders) > 1


class TallyCalculator:
    """Computes the winner from accumulated vote counts."""

    @staticmethod
    def tally(proposals: Iterable[Proposal]) -> TallyResult:
        ordered = sorted(proposals, key=lambda p: p.proposal_id)
        if not ordered:
            raise NoQuorumError("Cannot tally: no proposals")

        winner = ordered[0]
        for proposal in ordered[1:]:
            if proposal.vote_count > winner.vote_count:
                winner = proposal

        leaders = tuple(
            p.proposal_id for p in ordered if p.vote_count == winner.vote_count
        )
        return TallyResult(
            winning_proposal_id=winner.proposal_id,
            winning_vote_count=winner.vote_count,
            leaders=leaders,
        )
