"""
Environment Interface
=====================

Capability interface for anything the agent can act on.

The agent loop only needs two operations, executing one primitive action
and capturing a snapshot of the current state. Session setup and teardown
belong to whoever owns the environment for the duration of a run.

Usage:
    async with BrowserEnvironment(start_url="https://example.com") as env:
        await env.execute(action)
        png = await env.snapshot()
"""

import platform
from typing import Protocol, runtime_checkable

from browser_agent.environment.actions import Action


@runtime_checkable
class Environment(Protocol):
    """
    Interface for an interactive surface driven by computer actions.

    Implementations dispatch each action by its type and raise
    ``EnvironmentActionError`` when the action cannot be performed.
    """

    display_width: int
    display_height: int

    @property
    def os_name(self) -> str:
        """Operating system name shown to the model."""
        ...

    async def start(self) -> None:
        """Acquire session resources."""
        ...

    async def stop(self) -> None:
        """Release session resources."""
        ...

    async def execute(self, action: Action) -> None:
        """Execute a single primitive action."""
        ...

    async def snapshot(self) -> bytes:
        """Capture the current state as PNG bytes."""
        ...


def get_os_name() -> str:
    """
    Get a display name for the host operating system.

    Returns:
        "macOS", "Windows" or "Linux".
    """
    system = platform.system()
    if system == "Darwin":
        return "macOS"
    if system == "Windows":
        return "Windows"
    return "Linux"
