"""
Responses API Models
====================

Data classes for the reasoning service wire format.

Outbound:
    - ResponsesConfig: endpoint, credentials and retry policy
    - MessageTurn: a ``system`` or ``user`` text turn
    - ComputerCallOutput: screenshot reply to a ``computer_call``

Inbound:
    - ReasoningResponse: id, usage and ordered output items
    - ReasoningItem / MessageItem / ComputerCallItem / OtherItem
"""

import base64
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from browser_agent.environment.actions import Action, parse_action

API_STYLES = ("azure", "openai")


@dataclass
class ResponsesConfig:
    """
    Configuration for the Responses API client.

    Attributes:
        endpoint: Base URL of the service (no trailing slash).
        api_key: Key sent with every request.
        deployment: Deployment / model name.
        api_version: Azure ``api-version`` query parameter.
        api_style: "azure" (``/openai/responses`` + ``api-key`` header) or
            "openai" (``/v1/responses`` + bearer token).
        timeout: Request timeout in seconds.
        max_attempts: Attempts per request on transient failures.
        backoff_base: Delay before the first retry; doubles each retry.
    """

    endpoint: str
    api_key: str
    deployment: str = "computer-use-preview"
    api_version: str = "2025-04-01-preview"
    api_style: str = "azure"
    timeout: float = 120.0
    max_attempts: int = 3
    backoff_base: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.endpoint:
            raise ValueError("Reasoning service endpoint is required")
        if not self.api_key:
            raise ValueError("Reasoning service API key is required")
        if self.api_style not in API_STYLES:
            raise ValueError(f"api_style must be one of {API_STYLES}")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.backoff_base < 0:
            raise ValueError("backoff_base must not be negative")
        self.endpoint = self.endpoint.rstrip("/")

    @property
    def url(self) -> str:
        """Full URL of the responses endpoint."""
        if self.api_style == "openai":
            return f"{self.endpoint}/v1/responses"
        return f"{self.endpoint}/openai/responses?api-version={self.api_version}"

    def headers(self) -> dict[str, str]:
        """Request headers including authentication."""
        headers = {"Content-Type": "application/json"}
        if self.api_style == "openai":
            headers["Authorization"] = f"Bearer {self.api_key}"
        else:
            headers["api-key"] = self.api_key
        return headers


# ---------------------------------------------------------------------------
# Conversation turns
# ---------------------------------------------------------------------------


@dataclass
class MessageTurn:
    """
    A text turn in the conversation.

    Attributes:
        role: "system" or "user".
        content: The text.
    """

    role: str
    content: str

    def to_api_format(self) -> dict[str, Any]:
        """Convert to Responses API input format."""
        return {"role": self.role, "content": self.content}


@dataclass
class ComputerCallOutput:
    """
    The result of one computer call, carrying a screenshot.

    Attributes:
        call_id: Identifier of the originating ``computer_call``.
        screenshot: PNG bytes captured after the action.
        acknowledged_safety_checks: Safety checks echoed back to the service.
        status: Always "completed"; failures abort the instruction instead.
    """

    call_id: str
    screenshot: bytes
    acknowledged_safety_checks: list[dict[str, Any]] = field(default_factory=list)
    status: str = "completed"

    @property
    def image_url(self) -> str:
        """Screenshot encoded as a PNG data URL."""
        encoded = base64.b64encode(self.screenshot).decode("utf-8")
        return f"data:image/png;base64,{encoded}"

    def to_api_format(self) -> dict[str, Any]:
        """Convert to Responses API input format."""
        data: dict[str, Any] = {
            "type": "computer_call_output",
            "call_id": self.call_id,
            "status": self.status,
            "output": {
                "type": "computer_screenshot",
                "image_url": self.image_url,
            },
        }
        if self.acknowledged_safety_checks:
            data["acknowledged_safety_checks"] = self.acknowledged_safety_checks
        return data


ConversationTurn = Union[MessageTurn, ComputerCallOutput]


def system_turn(text: str) -> MessageTurn:
    """Build a system turn."""
    return MessageTurn(role="system", content=text)


def user_turn(text: str) -> MessageTurn:
    """Build a user turn."""
    return MessageTurn(role="user", content=text)


# ---------------------------------------------------------------------------
# Response items
# ---------------------------------------------------------------------------


@dataclass
class ReasoningItem:
    """Model reasoning summary; logged only."""

    summary: list[str] = field(default_factory=list)
    type: str = "reasoning"


@dataclass
class MessageItem:
    """Natural-language message for the operator."""

    text: list[str] = field(default_factory=list)
    role: str = "assistant"
    type: str = "message"


@dataclass
class ComputerCallItem:
    """A request to execute one action and report back."""

    call_id: str
    action: Action
    pending_safety_checks: list[dict[str, Any]] = field(default_factory=list)
    type: str = "computer_call"


@dataclass
class OtherItem:
    """Any item type the agent does not act on."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)


ResponseItem = Union[ReasoningItem, MessageItem, ComputerCallItem, OtherItem]


@dataclass
class Usage:
    """Token usage reported for one response."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def _texts(parts: Any) -> list[str]:
    if not isinstance(parts, list):
        return []
    return [str(part["text"]) for part in parts if isinstance(part, dict) and part.get("text")]


def parse_item(data: Any) -> ResponseItem:
    """
    Parse one output item.

    Args:
        data: Raw item from the response ``output`` list.

    Returns:
        The typed item.

    Raises:
        ValueError: If the item is not an object or a computer call has no id.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Output item must be an object, got {type(data).__name__}")

    item_type = data.get("type", "")
    if item_type == "reasoning":
        return ReasoningItem(summary=_texts(data.get("summary")))
    if item_type == "message":
        return MessageItem(text=_texts(data.get("content")), role=data.get("role", "assistant"))
    if item_type == "computer_call":
        call_id = data.get("call_id")
        if not call_id:
            raise ValueError("computer_call item without call_id")
        checks = data.get("pending_safety_checks") or []
        return ComputerCallItem(
            call_id=str(call_id),
            action=parse_action(data.get("action")),
            pending_safety_checks=[check for check in checks if isinstance(check, dict)],
        )
    return OtherItem(type=str(item_type), data=data)


@dataclass
class ReasoningResponse:
    """
    Response from the reasoning service.

    Attributes:
        id: Response identifier, used to chain the next request.
        output: Ordered output items.
        usage: Token usage, if the service reported it.
        raw: The decoded response body.
    """

    id: str
    output: list[ResponseItem] = field(default_factory=list)
    usage: Optional[Usage] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def computer_calls(self) -> list[ComputerCallItem]:
        """The computer calls in this response, in order."""
        return [item for item in self.output if isinstance(item, ComputerCallItem)]

    @classmethod
    def from_dict(cls, data: Any) -> "ReasoningResponse":
        """
        Parse a decoded response body.

        Args:
            data: JSON-decoded body.

        Returns:
            ReasoningResponse.

        Raises:
            ValueError: If the body does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ValueError("Response body must be a JSON object")
        response_id = data.get("id")
        if not response_id or not isinstance(response_id, str):
            raise ValueError("Response body has no id")
        output = data.get("output") or []
        if not isinstance(output, list):
            raise ValueError("Response output must be a list")

        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            input_tokens = raw_usage.get("input_tokens")
            output_tokens = raw_usage.get("output_tokens")
            if isinstance(input_tokens, int) and isinstance(output_tokens, int):
                usage = Usage(input_tokens=input_tokens, output_tokens=output_tokens)

        return cls(
            id=response_id,
            output=[parse_item(item) for item in output],
            usage=usage,
            raw=data,
        )
