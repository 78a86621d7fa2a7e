"""Administrator authority — who may run the election.

The engine never manages credentials. It asks an injected Authority
whether a caller identity holds the administrator role, and treats the
caller identity itself as an opaque, already-authenticated key.
"""

from __future__ import annotations

from typing import Iterable, Protocol


class Authority(Protocol):
    """Answers role questions about caller identities."""

    def is_administrator(self, identity: str) -> bool:
        ...


class StaticAuthority:
    """Fixed set of administrator identities.

    The common case is a single administrator, the deployer of the
    election.
    """

    def __init__(self, administrators: str | Iterable[str]) -> None:
        if isinstance(administrators, str):
            administrators = [administrators]
        admins = {a.strip() for a in administrators if a and a.strip()}
        if not admins:
            raise ValueError("At least one administrator identity is required")
        self._administrators = frozenset(admins)

    @property
    def administrators(self) -> frozenset[str]:
        return self._administrators

    def is_administrator(self, identity: str) -> bool:
        return identity in self._administrators
