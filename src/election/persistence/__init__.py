"""Event log for election notifications and audit."""

from election.persistence.event_log import EventKind, EventLog, EventRecord, EventSink

__all__ = ["EventKind", "EventLog", "EventRecord", "EventSink"]
