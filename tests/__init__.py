"""
Test Package
============

Unit tests for the browser agent.

Test organization:
    - test_loop.py: Agent loop, turn resolution and error policies
    - test_client.py: Responses API client, retries and logging
    - test_browser.py: Playwright environment dispatch
    - test_keys.py / test_actions.py: Keypress planning and action parsing

Run tests with:
    pytest tests/ -v
"""
