"""
Agent Module
============

Computer-use agent loop for browser automation.

This package contains:
    - loop: Instruction loop and turn resolution
    - state: Per-instruction state tracking
    - prompts: System context for the reasoning service
"""

from browser_agent.agent.loop import (
    AgentConfig,
    AgentEvent,
    ComputerUseAgent,
    InstructionResult,
    RunResult,
)
from browser_agent.agent.prompts import build_system_prompt
from browser_agent.agent.state import ActionRecord, InstructionState, InstructionStatus

__all__ = [
    "ComputerUseAgent",
    "AgentConfig",
    "AgentEvent",
    "InstructionResult",
    "RunResult",
    "InstructionState",
    "InstructionStatus",
    "ActionRecord",
    "build_system_prompt",
]
