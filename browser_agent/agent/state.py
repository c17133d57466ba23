"""
Agent State Management
======================

Tracks the progress of one instruction through the action loop.

Maintains:
- Instruction text and position in the run
- Response id chain and round count
- Executed actions and operator messages
- Final status and error
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Optional


class InstructionStatus(Enum):
    """Status of an instruction."""

    PENDING = auto()
    RUNNING = auto()
    COMPLETED = auto()
    FAILED = auto()


@dataclass
class ActionRecord:
    """
    Record of a single executed computer call.

    Attributes:
        round_number: Response round the call belonged to (0 = first response).
        call_id: Identifier of the computer call.
        action_type: Wire tag of the action.
        params: Action parameters as received.
        success: Whether the environment executed the action.
        error: Error message if failed.
        duration_ms: How long the action and its snapshot took.
    """

    round_number: int
    call_id: str
    action_type: str
    params: dict[str, Any]
    success: bool
    error: Optional[str] = None
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "round_number": self.round_number,
            "call_id": self.call_id,
            "action_type": self.action_type,
            "params": self.params,
            "success": self.success,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


@dataclass
class InstructionState:
    """
    State of one instruction during execution.

    Attributes:
        index: Position of the instruction in the run.
        instruction: The instruction text.
        status: Current status.
        rounds: Follow-up requests sent after the first response.
        response_ids: Ids of every response received, in order.
        actions: Executed computer calls.
        messages: Text messages the model addressed to the operator.
        error: Error message if failed.
        started_at: When the instruction started.
        completed_at: When the instruction finished.
    """

    index: int
    instruction: str
    status: InstructionStatus = InstructionStatus.PENDING
    rounds: int = 0
    response_ids: list[str] = field(default_factory=list)
    actions: list[ActionRecord] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def start(self) -> None:
        """Mark the instruction as running."""
        self.status = InstructionStatus.RUNNING
        self.started_at = datetime.now()

    def record_response(self, response_id: str) -> None:
        """Append a response id to the chain."""
        self.response_ids.append(response_id)

    def record_action(
        self,
        call_id: str,
        action_type: str,
        params: dict[str, Any],
        success: bool,
        error: Optional[str] = None,
        duration_ms: int = 0,
    ) -> ActionRecord:
        """
        Record an executed computer call.

        Returns:
            The created ActionRecord.
        """
        record = ActionRecord(
            round_number=self.rounds,
            call_id=call_id,
            action_type=action_type,
            params=params,
            success=success,
            error=error,
            duration_ms=duration_ms,
        )
        self.actions.append(record)
        return record

    def complete(self) -> None:
        """Mark the instruction as completed."""
        self.status = InstructionStatus.COMPLETED
        self.completed_at = datetime.now()

    def fail(self, error: str) -> None:
        """
        Mark the instruction as failed.

        Args:
            error: The error message.
        """
        self.status = InstructionStatus.FAILED
        self.error = error
        self.completed_at = datetime.now()

    @property
    def is_finished(self) -> bool:
        """Check if the instruction reached a final status."""
        return self.status in (InstructionStatus.COMPLETED, InstructionStatus.FAILED)

    @property
    def last_response_id(self) -> Optional[str]:
        """Id of the most recent response, if any."""
        return self.response_ids[-1] if self.response_ids else None

    @property
    def duration_seconds(self) -> float:
        """Time spent on the instruction so far."""
        if not self.started_at:
            return 0.0
        end = self.completed_at or datetime.now()
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert state to dictionary."""
        return {
            "index": self.index,
            "instruction": self.instruction,
            "status": self.status.name,
            "rounds": self.rounds,
            "response_ids": self.response_ids,
            "actions": [action.to_dict() for action in self.actions],
            "messages": self.messages,
            "error": self.error,
            "duration_seconds": self.duration_seconds,
        }
