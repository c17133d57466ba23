"""
Environment Module
==================

Interactive surfaces the agent acts on.

This package contains:
    - actions: Primitive action model and parser
    - base: Environment capability interface
    - keys: Key-name mapping and keypress planning
    - browser: Playwright-backed Chromium environment
"""

from browser_agent.environment.actions import Action, ActionType, Point, parse_action
from browser_agent.environment.base import Environment, get_os_name
from browser_agent.environment.browser import BrowserEnvironment
from browser_agent.environment.keys import KeyPlan, map_key, plan_keypress

__all__ = [
    "Action",
    "ActionType",
    "Point",
    "parse_action",
    "Environment",
    "BrowserEnvironment",
    "KeyPlan",
    "get_os_name",
    "map_key",
    "plan_keypress",
]
