"""Single-election voting workflow."""

from election.engine.workflow import WorkflowEngine
from election.identity.authority import StaticAuthority
from election.models.election import Phase
from election.persistence.event_log import EventLog

__all__ = ["WorkflowEngine", "StaticAuthority", "Phase", "EventLog"]

__version__ = "0.1.0"
