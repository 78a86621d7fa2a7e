"""Election engine — phase state machine, tally, and workflow."""

from election.engine.state_machine import PhaseStateMachine
from election.engine.tally import TallyCalculator, TallyResult
from election.engine.workflow import WorkflowEngine

__all__ = ["PhaseStateMachine", "TallyCalculator", "TallyResult", "WorkflowEngine"]
