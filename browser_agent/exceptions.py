"""
Exceptions
==========

Error types shared across the agent.

Reasoning service failures are fatal to a run by default, environment
failures only abort the instruction being processed.
"""

from typing import Any, Optional


class AgentError(Exception):
    """Base class for browser agent errors."""


class ReasoningServiceError(AgentError):
    """
    Raised when the reasoning service cannot produce a usable response.

    Covers exhausted transient retries, non-retryable HTTP statuses and
    malformed response bodies.

    Attributes:
        status: HTTP status code, if a response was received.
        body: Parsed (or raw) error body returned by the service.
        attempts: Number of transport attempts made.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Any = None,
        attempts: int = 1,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
        self.attempts = attempts


class EnvironmentActionError(AgentError):
    """Raised when the environment fails to execute a primitive action."""

    def __init__(self, message: str, action_type: str = "") -> None:
        super().__init__(message)
        self.action_type = action_type


class RoundLimitExceeded(AgentError):
    """Raised when an instruction needs more response rounds than allowed."""

    def __init__(self, max_rounds: int) -> None:
        super().__init__(f"Instruction exceeded the limit of {max_rounds} response rounds")
        self.max_rounds = max_rounds


class FatalRunError(AgentError):
    """Raised out of a run when a reasoning failure aborts all remaining work."""

    def __init__(self, message: str, instruction_index: int) -> None:
        super().__init__(message)
        self.instruction_index = instruction_index


class InstructionFileError(AgentError):
    """Raised when an instruction file cannot be read or has the wrong shape."""
