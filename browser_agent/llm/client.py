"""
Responses API Client
====================

Async client for an OpenAI / Azure OpenAI "Responses" endpoint exposing
the ``computer_use_preview`` tool.

Each call sends a batch of conversation turns, optionally chained to a
previous response id, and returns the parsed response. Transient failures
(connection errors, truncated bodies, timeouts, HTTP 5xx) are retried with
exponential backoff; anything else raises :class:`ReasoningServiceError`
straight away.

Usage:
    from browser_agent.llm.client import ResponsesClient
    from browser_agent.llm.models import ResponsesConfig, user_turn

    config = ResponsesConfig(endpoint="https://my-resource.openai.azure.com", api_key="...")
    async with ResponsesClient(config, display_width=800, display_height=600) as client:
        response = await client.send([user_turn("Open the pricing page")])
"""

import asyncio
import json
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

import aiohttp

from browser_agent.exceptions import ReasoningServiceError
from browser_agent.llm.models import ConversationTurn, ReasoningResponse, ResponsesConfig
from browser_agent.llm.usage import UsageTracker
from browser_agent.utils.logger import get_logger
from browser_agent.utils.security import truncate_data_urls

logger = get_logger(__name__)

# Statuses at or above this value are retried
_RETRY_STATUS_MIN = 500
_CLIENT_ERROR_MIN = 400


@runtime_checkable
class ReasoningService(Protocol):
    """Anything that can turn a batch of turns into a reasoning response."""

    async def send(
        self,
        turns: Sequence[ConversationTurn],
        previous_response_id: Optional[str] = None,
    ) -> ReasoningResponse:
        """Send turns and return the service's response."""
        ...


def _decode_body(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


class ResponsesClient:
    """
    Async Responses API client with retries, usage accounting and
    structured logging.
    """

    def __init__(
        self,
        config: ResponsesConfig,
        display_width: int = 800,
        display_height: int = 600,
        usage: Optional[UsageTracker] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Endpoint, credentials and retry policy.
            display_width: Width of the controlled display, sent with the tool.
            display_height: Height of the controlled display, sent with the tool.
            usage: Tracker that receives the token usage of every response.
            session: Existing HTTP session to reuse. The client closes only
                sessions it created itself.
        """
        self.config = config
        self.display_width = display_width
        self.display_height = display_height
        self.usage = usage if usage is not None else UsageTracker()

        self._session = session
        self._owns_session = session is None

        # Counter for HTTP attempts, retries included
        self.api_call_count = 0

        logger.info(
            "Responses client initialized",
            deployment=config.deployment,
            api_style=config.api_style,
            max_attempts=config.max_attempts,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            )
            self._owns_session = True
        return self._session

    def _build_body(
        self,
        turns: Sequence[ConversationTurn],
        previous_response_id: Optional[str] = None,
    ) -> dict[str, Any]:
        """Build the request body for one call."""
        body: dict[str, Any] = {
            "model": self.config.deployment,
            "tools": [
                {
                    "type": "computer_use_preview",
                    "environment": "browser",
                    "display_width": self.display_width,
                    "display_height": self.display_height,
                }
            ],
            "input": [turn.to_api_format() for turn in turns],
            "store": True,
            "reasoning": {"generate_summary": "concise"},
            "truncation": "auto",
        }
        if previous_response_id:
            body["previous_response_id"] = previous_response_id
        return body

    def _backoff_delay(self, attempt: int) -> float:
        """Delay before retrying after the given (1-based) failed attempt."""
        return self.config.backoff_base * (2 ** (attempt - 1))

    async def _post(self, body: dict[str, Any]) -> tuple[int, str]:
        """POST the body and return the status code and raw response text."""
        session = await self._get_session()
        async with session.post(
            self.config.url,
            json=body,
            headers=self.config.headers(),
        ) as response:
            return response.status, await response.text()

    async def _call_api(self, body: dict[str, Any]) -> tuple[dict[str, Any], int]:
        """
        Execute the request with retry logic.

        Args:
            body: Request body.

        Returns:
            The decoded response body and the number of attempts made.

        Raises:
            ReasoningServiceError: On a non-retryable status, a body that is
                not JSON, or after exhausting all attempts.
        """
        max_attempts = self.config.max_attempts
        for attempt in range(1, max_attempts + 1):
            self.api_call_count += 1
            try:
                status, text = await self._post(body)
            except (aiohttp.ClientConnectionError, aiohttp.ClientPayloadError, asyncio.TimeoutError) as e:
                logger.warning(
                    "Transport error calling reasoning service",
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error=str(e) or type(e).__name__,
                )
                if attempt < max_attempts:
                    await asyncio.sleep(self._backoff_delay(attempt))
                    continue
                raise ReasoningServiceError(
                    f"Request failed after {attempt} attempts: {str(e) or type(e).__name__}",
                    attempts=attempt,
                ) from e
            except aiohttp.ClientError as e:
                raise ReasoningServiceError(
                    f"Request failed: {str(e) or type(e).__name__}",
                    attempts=attempt,
                ) from e

            if status >= _RETRY_STATUS_MIN:
                logger.warning(
                    "Reasoning service returned a server error",
                    attempt=attempt,
                    max_attempts=max_attempts,
                    status=status,
                )
                if attempt < max_attempts:
                    await asyncio.sleep(self._backoff_delay(attempt))
                    continue
                raise ReasoningServiceError(
                    f"Reasoning service returned HTTP {status} after {attempt} attempts",
                    status=status,
                    body=_decode_body(text),
                    attempts=attempt,
                )

            if status >= _CLIENT_ERROR_MIN:
                raise ReasoningServiceError(
                    f"Reasoning service returned HTTP {status}",
                    status=status,
                    body=_decode_body(text),
                    attempts=attempt,
                )

            try:
                return json.loads(text), attempt
            except ValueError as e:
                raise ReasoningServiceError(
                    f"Response body is not valid JSON: {e}",
                    status=status,
                    body=text,
                    attempts=attempt,
                ) from e

        # Unreachable: max_attempts is validated to be at least 1
        raise ReasoningServiceError(f"Failed after {max_attempts} attempts", attempts=max_attempts)

    def _record_usage(self, response: ReasoningResponse) -> None:
        if response.usage is None:
            logger.debug("Response carried no usage", response_id=response.id)
            return
        self.usage.record(response.usage.input_tokens, response.usage.output_tokens)
        cost = self.usage.cost_of(response.usage.input_tokens, response.usage.output_tokens)
        logger.info(
            "Response usage",
            response_id=response.id,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            cost_usd=round(cost, 6),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def send(
        self,
        turns: Sequence[ConversationTurn],
        previous_response_id: Optional[str] = None,
    ) -> ReasoningResponse:
        """
        Send a batch of turns to the reasoning service.

        Args:
            turns: Turns to send, in order.
            previous_response_id: Id of the response this batch continues.

        Returns:
            The parsed response.

        Raises:
            ReasoningServiceError: If no usable response could be obtained.
        """
        body = self._build_body(turns, previous_response_id)
        logger.debug("Reasoning request", body=truncate_data_urls(body))

        try:
            data, attempts = await self._call_api(body)
            try:
                response = ReasoningResponse.from_dict(data)
            except (ValueError, TypeError, OverflowError) as e:
                raise ReasoningServiceError(
                    f"Malformed response body: {e}",
                    body=data,
                    attempts=attempts,
                ) from e
        except ReasoningServiceError as e:
            logger.error(
                "Reasoning request failed",
                error=str(e),
                status=e.status,
                body=e.body,
                attempts=e.attempts,
            )
            raise

        logger.debug("Reasoning response", body=truncate_data_urls(data))
        self._record_usage(response)
        return response

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "ResponsesClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
