"""
Computer Actions
================

Primitive UI actions requested by the reasoning service.

Each ``computer_call`` item carries one action object such as:

    {"type": "click", "x": 120, "y": 310, "button": "left"}
    {"type": "drag", "path": [{"x": 10, "y": 10}, {"x": 200, "y": 40}]}
    {"type": "keypress", "keys": ["CTRL", "L"]}

Supported action types:
    click, double_click, move, drag, scroll, type, keypress,
    wait, goto, back, forward, screenshot

Anything else parses to ``ActionType.UNKNOWN``; the environment logs it and
skips it without interrupting the loop.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from browser_agent.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_WAIT_MS = 1000


class ActionType(Enum):
    """Types of actions the environment can perform, keyed by wire tag."""

    CLICK = "click"
    DOUBLE_CLICK = "double_click"
    MOVE = "move"
    DRAG = "drag"
    SCROLL = "scroll"
    TYPE = "type"
    KEYPRESS = "keypress"
    WAIT = "wait"
    GOTO = "goto"
    BACK = "back"
    FORWARD = "forward"
    SCREENSHOT = "screenshot"
    UNKNOWN = "unknown"

    @classmethod
    def from_tag(cls, tag: Any) -> "ActionType":
        """Map a wire tag to an ActionType, UNKNOWN if unrecognised."""
        if isinstance(tag, str):
            for member in cls:
                if member.value == tag and member is not cls.UNKNOWN:
                    return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class Point:
    """A viewport coordinate."""

    x: int
    y: int


@dataclass
class Action:
    """
    A single primitive action.

    Attributes:
        action_type: The kind of action.
        params: Action-specific parameters, already coerced to Python types.
        raw_type: The tag exactly as received (useful for UNKNOWN actions).
    """

    action_type: ActionType
    params: dict[str, Any] = field(default_factory=dict)
    raw_type: str = ""

    @property
    def tag(self) -> str:
        """The wire tag, or the raw tag for unknown actions."""
        if self.action_type is ActionType.UNKNOWN:
            return self.raw_type or ActionType.UNKNOWN.value
        return self.action_type.value

    @property
    def is_known(self) -> bool:
        return self.action_type is not ActionType.UNKNOWN

    @property
    def x(self) -> Optional[int]:
        return self.params.get("x")

    @property
    def y(self) -> Optional[int]:
        return self.params.get("y")

    @property
    def button(self) -> str:
        return self.params.get("button") or "left"

    @property
    def path(self) -> list[Point]:
        return self.params.get("path", [])

    @property
    def scroll_x(self) -> int:
        return self.params.get("scroll_x", 0)

    @property
    def scroll_y(self) -> int:
        return self.params.get("scroll_y", 0)

    @property
    def text(self) -> str:
        return self.params.get("text", "")

    @property
    def keys(self) -> list[str]:
        return self.params.get("keys", [])

    @property
    def url(self) -> str:
        return self.params.get("url", "")

    @property
    def wait_ms(self) -> int:
        return self.params.get("ms", DEFAULT_WAIT_MS)


def _coerce_int(value: Any) -> Optional[int]:
    """Coerce numeric values (int, whole float, numeric string) to int."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, float):
        # NaN and infinity have no integer value
        try:
            return int(round(value))
        except (ValueError, OverflowError):
            return None
    return None


def _coerce_path(value: Any) -> list[Point]:
    points: list[Point] = []
    if not isinstance(value, list):
        return points
    for item in value:
        if isinstance(item, dict):
            x, y = _coerce_int(item.get("x")), _coerce_int(item.get("y"))
        elif isinstance(item, (list, tuple)) and len(item) == 2:
            x, y = _coerce_int(item[0]), _coerce_int(item[1])
        else:
            x = y = None
        if x is None or y is None:
            logger.warning("Dropping malformed drag point", point=item)
            continue
        points.append(Point(x, y))
    return points


def parse_action(data: Any) -> Action:
    """
    Parse an action object from a ``computer_call`` item.

    Args:
        data: The ``action`` field of the item.

    Returns:
        Action with coerced parameters. Unrecognised or malformed input
        yields an UNKNOWN action rather than raising.
    """
    if not isinstance(data, dict):
        return Action(action_type=ActionType.UNKNOWN, raw_type=str(data))

    raw_type = str(data.get("type", ""))
    action_type = ActionType.from_tag(raw_type)
    params: dict[str, Any] = {}

    for key in ("x", "y", "scroll_x", "scroll_y", "ms"):
        if key in data:
            coerced = _coerce_int(data[key])
            if coerced is not None:
                params[key] = coerced

    if data.get("button"):
        params["button"] = str(data["button"])
    if "path" in data:
        params["path"] = _coerce_path(data["path"])
    if "text" in data and data["text"] is not None:
        params["text"] = str(data["text"])
    if "keys" in data and isinstance(data["keys"], list):
        params["keys"] = [str(key) for key in data["keys"]]
    if data.get("url"):
        params["url"] = str(data["url"])

    return Action(action_type=action_type, params=params, raw_type=raw_type)


def format_action_for_log(action: Action) -> str:
    """
    Format an action for logging.

    Args:
        action: The action to format.

    Returns:
        Compact human-readable description.
    """
    if action.action_type in (ActionType.CLICK, ActionType.DOUBLE_CLICK):
        return f"{action.tag}({action.x}, {action.y}, button={action.button})"
    if action.action_type is ActionType.MOVE:
        return f"move({action.x}, {action.y})"
    if action.action_type is ActionType.DRAG:
        points = " -> ".join(f"({p.x}, {p.y})" for p in action.path)
        return f"drag[{points}]"
    if action.action_type is ActionType.SCROLL:
        return f"scroll({action.scroll_x}, {action.scroll_y})"
    if action.action_type is ActionType.TYPE:
        return f"type({action.text!r})"
    if action.action_type is ActionType.KEYPRESS:
        return f"keypress({'+'.join(action.keys)})"
    if action.action_type is ActionType.WAIT:
        return f"wait({action.wait_ms}ms)"
    if action.action_type is ActionType.GOTO:
        return f"goto({action.url})"
    return action.tag
