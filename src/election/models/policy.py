"""Election policy — the explicit rule set an engine runs under.

Two behaviour sets exist and they are never mixed implicitly: a policy
is always one resolved value, chosen by preset name (see
election.policy.resolver).
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from typing import Any


class RemovalMode(str, enum.Enum):
    """How proposals may be withdrawn during the proposals phase."""
    LAST_ONLY = "last_only"  # stack-pop of the most recent proposal
    BY_ID = "by_id"          # any live proposal, leaves a gap in the ids


@dataclass(frozen=True)
class ElectionPolicy:
    """Resolved election rules.

    require_unique_winner: close-out fails on a tie instead of taking
        the first proposal to reach the maximum.
    require_votes_to_close: the voting session cannot close with zero ballots.
    reset_only_after_tally: reset is refused before TALLIED.
    removal_mode: see RemovalMode.
    reject_empty_proposals: blank descriptions are refused.
    """
    name: str = "strict"
    require_unique_winner: bool = True
    require_votes_to_close: bool = True
    reset_only_after_tally: bool = True
    removal_mode: RemovalMode = RemovalMode.BY_ID
    reject_empty_proposals: bool = True

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> ElectionPolicy:
        """Build a policy from config rules.

        Raises:
            ValueError: a flag is not a JSON boolean or removal_mode is unknown.
        """
        return cls(
            name=name,
            require_unique_winner=_flag(data, "require_unique_winner"),
            require_votes_to_close=_flag(data, "require_votes_to_close"),
            reset_only_after_tally=_flag(data, "reset_only_after_tally"),
            removal_mode=RemovalMode(data["removal_mode"]),
            reject_empty_proposals=_flag(data, "reject_empty_proposals"),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["removal_mode"] = self.removal_mode.value
        return data


def _flag(data: dict[str, Any], key: str) -> bool:
    value = data[key]
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be true or false, got {value!r}")
    return value
