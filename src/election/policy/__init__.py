"""Election policy resolution."""

from election.policy.resolver import PolicyResolver

__all__ = ["PolicyResolver"]
