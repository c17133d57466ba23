"""
Keyboard Mapping
================

Maps the key names used by the reasoning service ("CTRL", "ENTER", "CMD")
to Playwright key names, and plans how a key combination is pressed.

A keypress is split into modifiers, which are held down for the whole
combination, and ordinary keys, which are pressed one after another while
the modifiers are held.
"""

from dataclasses import dataclass, field

# Service key names (upper-cased) -> Playwright key names
KEY_MAP: dict[str, str] = {
    "ENTER": "Enter",
    "RETURN": "Enter",
    "ARROWLEFT": "ArrowLeft",
    "ARROWRIGHT": "ArrowRight",
    "ARROWUP": "ArrowUp",
    "ARROWDOWN": "ArrowDown",
    "LEFT": "ArrowLeft",
    "RIGHT": "ArrowRight",
    "UP": "ArrowUp",
    "DOWN": "ArrowDown",
    "ALT": "Alt",
    "OPTION": "Alt",
    "CTRL": "Control",
    "CONTROL": "Control",
    "SHIFT": "Shift",
    "CMD": "Meta",  # macOS Command key
    "META": "Meta",
    "SUPER": "Meta",
    "WIN": "Meta",
    "ESC": "Escape",
    "ESCAPE": "Escape",
    "TAB": "Tab",
    "BACKSPACE": "Backspace",
    "DELETE": "Delete",
    "SPACE": " ",
    "HOME": "Home",
    "END": "End",
    "PAGEUP": "PageUp",
    "PAGEDOWN": "PageDown",
}

MODIFIER_KEYS = frozenset({"Control", "Shift", "Alt", "Meta"})

# Two-key shortcuts that mean "browser back"; they navigate instead of typing.
BACK_SHORTCUTS: tuple[tuple[str, str], ...] = (
    ("Meta", "["),
    ("Alt", "ArrowLeft"),
)


def map_key(key: str) -> str:
    """
    Map a service key name to a Playwright key name.

    Lookup is case-insensitive; unknown names pass through unchanged.

    Args:
        key: Key name as sent by the service.

    Returns:
        Playwright key name.
    """
    return KEY_MAP.get(key.upper(), key)


def _unique(keys: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for key in keys:
        if key not in seen:
            seen.add(key)
            result.append(key)
    return result


@dataclass
class KeyPlan:
    """
    How to perform a keypress action.

    Attributes:
        go_back: The combination is a back shortcut; navigate back instead.
        modifiers: Modifiers to hold, in press order (no duplicates).
        keys: Non-modifier keys to press while holding, in order.
    """

    go_back: bool = False
    modifiers: list[str] = field(default_factory=list)
    keys: list[str] = field(default_factory=list)

    @property
    def release_order(self) -> list[str]:
        """Modifiers in the order they are released."""
        return list(reversed(self.modifiers))


def plan_keypress(keys: list[str]) -> KeyPlan:
    """
    Plan the key events for a keypress action.

    Args:
        keys: Key names as sent by the service, e.g. ["CTRL", "a"].

    Returns:
        KeyPlan describing modifiers to hold and keys to press.
    """
    mapped = [map_key(key) for key in keys]

    if len(mapped) >= 2 and (mapped[0], mapped[1]) in BACK_SHORTCUTS:
        return KeyPlan(go_back=True)

    return KeyPlan(
        modifiers=_unique([key for key in mapped if key in MODIFIER_KEYS]),
        keys=[key for key in mapped if key not in MODIFIER_KEYS],
    )
