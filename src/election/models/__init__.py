"""Core data models for the election workflow."""

from election.models.election import ElectionState, Phase, Proposal, Voter
from election.models.policy import ElectionPolicy, RemovalMode

__all__ = [
    "ElectionState",
    "Phase",
    "Proposal",
    "Voter",
    "ElectionPolicy",
    "RemovalMode",
]
