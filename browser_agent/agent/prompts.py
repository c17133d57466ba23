"""
Agent System Prompts
====================

System context sent ahead of every instruction.

The prompt tells the model where it is running and which browser actions
the environment understands.
"""

from browser_agent.environment.actions import ActionType

SYSTEM_PROMPT_TEMPLATE = """You are a browser agent in a controlled environment on {os_name}.
In the current tab, execute the user's requested actions.
Perform each action immediately without confirmation, stop when the task is complete, and avoid redundant or ineffective actions.
Available browser actions: {actions}."""


def available_actions() -> list[str]:
    """Wire names of every action the environment can execute."""
    return [action.value for action in ActionType if action is not ActionType.UNKNOWN]


def build_system_prompt(os_name: str) -> str:
    """
    Build the system prompt for the given host.

    Args:
        os_name: Operating system name, e.g. "macOS".

    Returns:
        Formatted system prompt.
    """
    return SYSTEM_PROMPT_TEMPLATE.format(
        os_name=os_name,
        actions=", ".join(available_actions()),
    )
