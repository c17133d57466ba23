"""
Browser Agent
=============

Computer-use agent that drives a Playwright browser on behalf of a remote
reasoning service.

Natural-language instructions are sent to the model, the primitive UI
actions it returns (click, type, scroll, navigate, ...) are executed in a
live browser page, and screenshots are fed back until the model stops
asking for actions.

Modules:
    - agent: Turn-resolution loop, per-instruction state and system prompt
    - environment: Action model, browser environment and keyboard mapping
    - llm: Reasoning service client, wire models and usage accounting
    - instructions: Instruction file loading
    - utils: Logging and log redaction helpers
"""

__version__ = "1.0.0"
__author__ = "Browser Agent Team"
