"""
Reasoning Service Module
========================

Client and wire models for the remote reasoning service.

This package contains:
    - client: Responses API client with retry and logging
    - models: Conversation turns, response items and client configuration
    - usage: Token usage accumulation and cost estimate
"""

from browser_agent.llm.client import ReasoningService, ResponsesClient
from browser_agent.llm.models import (
    ComputerCallItem,
    ComputerCallOutput,
    ConversationTurn,
    MessageItem,
    MessageTurn,
    OtherItem,
    ReasoningItem,
    ReasoningResponse,
    ResponsesConfig,
    Usage,
    system_turn,
    user_turn,
)
from browser_agent.llm.usage import UsageTracker

__all__ = [
    "ReasoningService",
    "ResponsesClient",
    "ResponsesConfig",
    "ConversationTurn",
    "MessageTurn",
    "ComputerCallOutput",
    "ReasoningResponse",
    "ReasoningItem",
    "MessageItem",
    "ComputerCallItem",
    "OtherItem",
    "Usage",
    "UsageTracker",
    "system_turn",
    "user_turn",
]
