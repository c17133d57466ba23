"""
Tests for the Responses API Client
==================================

Covers:
- Request body construction and endpoint URLs
- Retry with exponential backoff on transport errors and 5xx
- Non-retryable statuses and malformed bodies
- Usage recording and per-response logging
- Data URL truncation in debug logs
- Session handling
"""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from structlog.testing import capture_logs

from browser_agent.exceptions import ReasoningServiceError
from browser_agent.llm.client import ReasoningService, ResponsesClient
from browser_agent.llm.models import ComputerCallOutput, ResponsesConfig, user_turn
from browser_agent.llm.usage import UsageTracker
from tests.conftest import PNG_BYTES


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_config(**overrides) -> ResponsesConfig:
    values = {
        "endpoint": "https://test-resource.openai.azure.com/",
        "api_key": "test-key-123",
    }
    values.update(overrides)
    return ResponsesConfig(**values)


def _ok(response_id: str = "resp_1", usage: tuple = (10, 5), output: list = None) -> tuple[int, str]:
    body = {
        "id": response_id,
        "output": output or [],
        "usage": {"input_tokens": usage[0], "output_tokens": usage[1]},
    }
    return 200, json.dumps(body)


@pytest.fixture
def client() -> ResponsesClient:
    return ResponsesClient(_make_config(), display_width=1024, display_height=768, usage=UsageTracker())


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestResponsesConfig:
    def test_azure_url_and_headers(self):
        config = _make_config()
        assert config.url == (
            "https://test-resource.openai.azure.com/openai/responses?api-version=2025-04-01-preview"
        )
        assert config.headers()["api-key"] == "test-key-123"
        assert "Authorization" not in config.headers()

    def test_openai_style(self):
        config = _make_config(endpoint="https://api.openai.com", api_style="openai")
        assert config.url == "https://api.openai.com/v1/responses"
        assert config.headers()["Authorization"] == "Bearer test-key-123"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"endpoint": ""},
            {"api_key": ""},
            {"api_style": "bedrock"},
            {"max_attempts": 0},
            {"backoff_base": -1},
        ],
    )
    def test_invalid_config(self, overrides):
        with pytest.raises(ValueError):
            _make_config(**overrides)


# ---------------------------------------------------------------------------
# Request body
# ---------------------------------------------------------------------------


class TestBuildBody:
    def test_first_request(self, client):
        body = client._build_body([user_turn("Open the menu")])

        assert body["model"] == "computer-use-preview"
        assert body["tools"] == [
            {
                "type": "computer_use_preview",
                "environment": "browser",
                "display_width": 1024,
                "display_height": 768,
            }
        ]
        assert body["input"] == [{"role": "user", "content": "Open the menu"}]
        assert body["store"] is True
        assert body["reasoning"] == {"generate_summary": "concise"}
        assert body["truncation"] == "auto"
        assert "previous_response_id" not in body

    def test_follow_up_request(self, client):
        output = ComputerCallOutput(call_id="call_1", screenshot=PNG_BYTES)
        body = client._build_body([output], previous_response_id="resp_1")

        assert body["previous_response_id"] == "resp_1"
        item = body["input"][0]
        assert item["type"] == "computer_call_output"
        assert item["call_id"] == "call_1"
        assert item["output"]["image_url"].startswith("data:image/png;base64,")

    def test_implements_reasoning_service(self, client):
        assert isinstance(client, ReasoningService)


# ---------------------------------------------------------------------------
# Retry behaviour
# ---------------------------------------------------------------------------


class TestRetry:
    @pytest.mark.asyncio
    async def test_transport_errors_then_success(self, client):
        post = AsyncMock(side_effect=[
            aiohttp.ClientConnectionError("connection reset"),
            asyncio.TimeoutError(),
            _ok("resp_ok"),
        ])
        with patch.object(client, "_post", post), \
                patch("browser_agent.llm.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            response = await client.send([user_turn("hi")])

        assert response.id == "resp_ok"
        assert post.await_count == 3
        assert client.api_call_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_server_errors_exhaust_attempts(self, client):
        post = AsyncMock(return_value=(503, "service unavailable"))
        with patch.object(client, "_post", post), \
                patch("browser_agent.llm.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ReasoningServiceError) as exc_info:
                await client.send([user_turn("hi")])

        assert post.await_count == 3
        assert sleep.await_count == 2
        assert exc_info.value.status == 503
        assert exc_info.value.attempts == 3
        assert exc_info.value.body == "service unavailable"

    @pytest.mark.asyncio
    async def test_transport_errors_exhaust_attempts(self, client):
        post = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
        with patch.object(client, "_post", post), \
                patch("browser_agent.llm.client.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(ReasoningServiceError) as exc_info:
                await client.send([user_turn("hi")])

        assert exc_info.value.status is None
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.__cause__, aiohttp.ClientConnectionError)

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, client):
        error_body = {"error": {"code": "invalid_request", "message": "bad input"}}
        post = AsyncMock(return_value=(400, json.dumps(error_body)))
        with patch.object(client, "_post", post), \
                patch("browser_agent.llm.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with capture_logs() as logs:
                with pytest.raises(ReasoningServiceError) as exc_info:
                    await client.send([user_turn("hi")])

        assert post.await_count == 1
        sleep.assert_not_awaited()
        assert exc_info.value.status == 400
        assert exc_info.value.body == error_body

        errors = [entry for entry in logs if entry["log_level"] == "error"]
        assert errors[-1]["body"] == error_body

    @pytest.mark.asyncio
    async def test_custom_backoff_base(self):
        client = ResponsesClient(_make_config(backoff_base=0.5, max_attempts=4))
        post = AsyncMock(side_effect=[(500, "")] * 3 + [_ok()])
        with patch.object(client, "_post", post), \
                patch("browser_agent.llm.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await client.send([user_turn("hi")])

        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0, 2.0]

    @pytest.mark.asyncio
    async def test_truncated_body_is_retried(self, client):
        post = AsyncMock(side_effect=[aiohttp.ClientPayloadError("truncated body"), _ok("resp_ok")])
        with patch.object(client, "_post", post), \
                patch("browser_agent.llm.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            response = await client.send([user_turn("hi")])

        assert response.id == "resp_ok"
        assert sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_other_client_errors_are_wrapped(self, client):
        post = AsyncMock(side_effect=aiohttp.InvalidURL("not a url"))
        with patch.object(client, "_post", post), \
                patch("browser_agent.llm.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ReasoningServiceError) as exc_info:
                await client.send([user_turn("hi")])

        assert post.await_count == 1
        sleep.assert_not_awaited()
        assert isinstance(exc_info.value.__cause__, aiohttp.InvalidURL)


# ---------------------------------------------------------------------------
# Response handling
# ---------------------------------------------------------------------------


class TestResponseHandling:
    @pytest.mark.asyncio
    async def test_body_that_is_not_json(self, client):
        with patch.object(client, "_post", AsyncMock(return_value=(200, "<html>oops</html>"))):
            with pytest.raises(ReasoningServiceError, match="not valid JSON"):
                await client.send([user_turn("hi")])

    @pytest.mark.asyncio
    async def test_body_without_id(self, client):
        with patch.object(client, "_post", AsyncMock(return_value=(200, json.dumps({"output": []})))):
            with pytest.raises(ReasoningServiceError, match="Malformed response"):
                await client.send([user_turn("hi")])

    @pytest.mark.asyncio
    async def test_out_of_range_coordinates_do_not_escape(self, client):
        text = (
            '{"id": "resp_big", "output": [{"type": "computer_call", "call_id": "c1",'
            ' "action": {"type": "click", "x": 1e400, "y": 5}}]}'
        )
        with patch.object(client, "_post", AsyncMock(return_value=(200, text))):
            response = await client.send([user_turn("hi")])

        action = response.computer_calls[0].action
        assert action.x is None
        assert action.y == 5

    @pytest.mark.asyncio
    async def test_parses_output_items(self, client):
        output = [
            {"type": "reasoning", "summary": [{"type": "summary_text", "text": "Looking"}]},
            {"type": "computer_call", "call_id": "call_9", "action": {"type": "click", "x": 4, "y": 2}},
        ]
        with patch.object(client, "_post", AsyncMock(return_value=_ok(output=output))):
            response = await client.send([user_turn("hi")])

        assert [call.call_id for call in response.computer_calls] == ["call_9"]
        assert response.computer_calls[0].action.x == 4

    @pytest.mark.asyncio
    async def test_usage_is_recorded(self, client):
        with patch.object(client, "_post", AsyncMock(side_effect=[_ok(usage=(3, 7)), _ok(usage=(5, 2))])):
            with capture_logs() as logs:
                await client.send([user_turn("a")])
                await client.send([user_turn("b")])

        assert client.usage.input_tokens == 8
        assert client.usage.output_tokens == 9
        usage_logs = [entry for entry in logs if entry["event"] == "Response usage"]
        assert [entry["input_tokens"] for entry in usage_logs] == [3, 5]
        assert usage_logs[0]["cost_usd"] == pytest.approx(3 * 3e-6 + 7 * 12e-6)

    @pytest.mark.asyncio
    async def test_missing_usage_is_not_recorded(self, client):
        body = json.dumps({"id": "resp_1", "output": []})
        with patch.object(client, "_post", AsyncMock(return_value=(200, body))):
            await client.send([user_turn("a")])

        assert client.usage.input_tokens == 0
        assert client.usage.responses == 0

    @pytest.mark.asyncio
    async def test_debug_log_truncates_screenshots(self, client):
        output = ComputerCallOutput(call_id="call_1", screenshot=PNG_BYTES * 50)
        with patch.object(client, "_post", AsyncMock(return_value=_ok())):
            with capture_logs() as logs:
                await client.send([output], previous_response_id="resp_0")

        request = next(entry for entry in logs if entry["event"] == "Reasoning request")
        image_url = request["body"]["input"][0]["output"]["image_url"]
        assert image_url.endswith("...")
        assert len(image_url) == 103
        assert image_url.startswith("data:image/png;base64,")


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


class TestSession:
    @pytest.mark.asyncio
    async def test_owned_session_is_closed(self):
        async with ResponsesClient(_make_config()) as client:
            session = await client._get_session()
            assert not session.closed
        assert session.closed

    @pytest.mark.asyncio
    async def test_shared_session_is_left_open(self):
        session = MagicMock()
        session.closed = False
        session.close = AsyncMock()

        client = ResponsesClient(_make_config(), session=session)
        assert await client._get_session() is session
        await client.close()

        session.close.assert_not_awaited()
