"""Election service — result-returning facade over the workflow engine.

The engine raises typed errors. Adapters (the CLI, a future HTTP layer)
would rather branch on a result object, so every operation here returns
a ServiceResult: success flag, error messages, a stable error code and
a data payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from election.engine.workflow import WorkflowEngine
from election.errors import ElectionError
from election.identity.authority import StaticAuthority
from election.models.election import Phase
from election.persistence.event_log import EventLog
from election.policy.resolver import PolicyResolver


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def code(self) -> Optional[str]:
        return self.data.get("code")


class ElectionService:
    """Unified election facade.

    Usage:
        service = ElectionService(PolicyResolver.default(), admin_id="admin")
        service.register_voter("admin", "alice")
        service.advance_phase("admin")
        service.add_proposal("alice", "Cats")
        ...
        service.status()
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        admin_id: str,
        event_log: Optional[EventLog] = None,
        preset: Optional[str] = None,
    ) -> None:
        self._policy = resolver.resolve(preset)
        self._event_log = event_log if event_log is not None else EventLog()
        self._engine = WorkflowEngine(
            StaticAuthority(admin_id),
            policy=self._policy,
            event_sink=self._event_log,
        )

    @property
    def engine(self) -> WorkflowEngine:
        return self._engine

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register_voter(self, caller: str, identity: str) -> ServiceResult:
        return self._run(
            lambda: {"identity": self._engine.register_voter(caller, identity).identity}
        )

    def advance_phase(self, caller: str) -> ServiceResult:
        def _advance() -> dict[str, Any]:
            message = self._engine.advance_phase(caller)
            return {"phase": self._engine.current_phase().value, "message": message}
        return self._run(_advance)

    def add_proposal(self, caller: str, description: str) -> ServiceResult:
        def _add() -> dict[str, Any]:
            proposal = self._engine.add_proposal(caller, description)
            return {"proposal_id": proposal.proposal_id}
        return self._run(_add)

    def remove_proposal(
        self, caller: str, proposal_id: Optional[int] = None
    ) -> ServiceResult:
        def _remove() -> dict[str, Any]:
            proposal = self._engine.remove_proposal(caller, proposal_id)
            return {"proposal_id": proposal.proposal_id}
        return self._run(_remove)

    def cast_vote(self, caller: str, proposal_id: int) -> ServiceResult:
        def _vote() -> dict[str, Any]:
            self._engine.cast_vote(caller, proposal_id)
            return {"identity": caller, "proposal_id": proposal_id}
        return self._run(_vote)

    def reset_election(self, caller: str) -> ServiceResult:
        return self._run(
            lambda: {"reset_utc": self._engine.reset_election(caller).isoformat()}
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def current_phase(self) -> Phase:
        return self._engine.current_phase()

    def show_vote(self, identity: str) -> ServiceResult:
        return self._run(lambda: {"description": self._engine.show_vote(identity)})

    def get_winner(self) -> ServiceResult:
        def _winner() -> dict[str, Any]:
            return {
                "proposal_id": self._engine.winning_proposal_id(),
                "description": self._engine.get_winner(),
            }
        return self._run(_winner)

    def status(self) -> dict[str, Any]:
        status = self._engine.status()
        status["events"] = self._event_log.count
        return status

    def _run(self, operation: Callable[[], dict[str, Any]]) -> ServiceResult:
        try:
            return ServiceResult(success=True, data=operation())
        except ElectionError as e:
            return ServiceResult(success=False, errors=[str(e)], data={"code": e.code})
        except ValueError as e:
            return ServiceResult(success=False, errors=[str(e)], data={"code": "invalid_input"})
