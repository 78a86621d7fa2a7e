"""Caller identity and role checks."""

from election.identity.authority import Authority, StaticAuthority

__all__ = ["Authority", "StaticAuthority"]
