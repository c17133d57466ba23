"""
Shared Test Fixtures
====================

Pytest fixtures used across all test modules.
Provides a mocked Playwright page, a scripted reasoning service and an
in-memory environment for driving the agent loop.
"""

import os

# Credentials expected by the settings and CLI tests
os.environ.setdefault("AZURE_OPENAI_ENDPOINT", "https://test-resource.openai.azure.com")
os.environ.setdefault("AZURE_OPENAI_API_KEY", "test-azure-key-for-testing")

import pytest
from typing import Any, Optional, Sequence, Union
from unittest.mock import AsyncMock, MagicMock

from browser_agent.environment.actions import Action
from browser_agent.environment.browser import BrowserEnvironment
from browser_agent.exceptions import EnvironmentActionError
from browser_agent.llm.models import ConversationTurn, ReasoningResponse
from browser_agent.llm.usage import UsageTracker

# A 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c63000100000500010d0a2db40000000049454e44ae426082"
)


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------


def computer_call(call_id: str, action: dict[str, Any], **extra: Any) -> dict[str, Any]:
    """Raw ``computer_call`` output item."""
    return {"type": "computer_call", "call_id": call_id, "action": action, **extra}


def reasoning(*texts: str) -> dict[str, Any]:
    return {"type": "reasoning", "summary": [{"type": "summary_text", "text": t} for t in texts]}


def message(*texts: str) -> dict[str, Any]:
    return {
        "type": "message",
        "role": "assistant",
        "content": [{"type": "output_text", "text": t} for t in texts],
    }


def make_response(
    response_id: str,
    *items: dict[str, Any],
    usage: Optional[tuple[int, int]] = None,
) -> ReasoningResponse:
    """Build a parsed response from raw output items."""
    data: dict[str, Any] = {"id": response_id, "output": list(items)}
    if usage is not None:
        data["usage"] = {"input_tokens": usage[0], "output_tokens": usage[1]}
    return ReasoningResponse.from_dict(data)


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class ScriptedReasoningService:
    """
    Reasoning service that replays a script of responses.

    Script entries are returned in order; an exception entry is raised
    instead. Once the script runs out, empty responses are returned.
    """

    def __init__(
        self,
        script: Sequence[Union[ReasoningResponse, Exception]] = (),
        usage: Optional[UsageTracker] = None,
    ) -> None:
        self.script = list(script)
        self.usage = usage
        self.calls: list[tuple[list[ConversationTurn], Optional[str]]] = []

    async def send(
        self,
        turns: Sequence[ConversationTurn],
        previous_response_id: Optional[str] = None,
    ) -> ReasoningResponse:
        self.calls.append((list(turns), previous_response_id))
        if not self.script:
            return make_response(f"resp-auto-{len(self.calls)}")
        entry = self.script.pop(0)
        if isinstance(entry, Exception):
            raise entry
        if self.usage is not None and entry.usage is not None:
            self.usage.record(entry.usage.input_tokens, entry.usage.output_tokens)
        return entry


class FakeEnvironment:
    """In-memory environment that records executed actions."""

    def __init__(self, fail_on: Sequence[str] = ()) -> None:
        self.display_width = 800
        self.display_height = 600
        self.fail_on = set(fail_on)
        self.executed: list[Action] = []
        self.snapshots = 0

    @property
    def os_name(self) -> str:
        return "Linux"

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def execute(self, action: Action) -> None:
        if action.tag in self.fail_on:
            raise EnvironmentActionError(f"{action.tag} failed: boom", action.tag)
        self.executed.append(action)

    async def snapshot(self) -> bytes:
        self.snapshots += 1
        return PNG_BYTES


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_page() -> MagicMock:
    """Create a mock Playwright page with async mouse and keyboard."""
    page = MagicMock()

    page.mouse = MagicMock()
    page.mouse.click = AsyncMock()
    page.mouse.dblclick = AsyncMock()
    page.mouse.move = AsyncMock()
    page.mouse.down = AsyncMock()
    page.mouse.up = AsyncMock()
    page.mouse.wheel = AsyncMock()

    page.keyboard = MagicMock()
    page.keyboard.type = AsyncMock()
    page.keyboard.press = AsyncMock()
    page.keyboard.down = AsyncMock()
    page.keyboard.up = AsyncMock()

    page.goto = AsyncMock()
    page.go_back = AsyncMock()
    page.go_forward = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.screenshot = AsyncMock(return_value=PNG_BYTES)
    return page


@pytest.fixture
def browser_env(mock_page: MagicMock) -> BrowserEnvironment:
    """Browser environment wired to the mock page without launching Chromium."""
    env = BrowserEnvironment(start_url="https://example.com", headless=True)
    env.page = mock_page
    return env


@pytest.fixture
def usage_tracker() -> UsageTracker:
    return UsageTracker()


@pytest.fixture
def fake_environment() -> FakeEnvironment:
    return FakeEnvironment()
