"""
Agent Loop
==========

Drives instructions through the reasoning service and the environment.

For every instruction the agent:
1. Sends the system context and the instruction as a new conversation
2. Executes each computer call in the response, in order, capturing a
   snapshot after every action
3. Sends all snapshots back in one batch, chained to the last response id
4. Repeats until a response asks for no further actions

Usage:
    from browser_agent.agent import ComputerUseAgent, AgentConfig

    agent = ComputerUseAgent(
        reasoning=client,
        environment=browser,
        usage=tracker,
        config=AgentConfig(max_rounds=50),
    )

    result = await agent.run(["Search for 'slot machine'", "Open the first result"])
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from browser_agent.agent.prompts import build_system_prompt
from browser_agent.agent.state import InstructionState, InstructionStatus
from browser_agent.environment.actions import format_action_for_log
from browser_agent.environment.base import Environment
from browser_agent.exceptions import (
    EnvironmentActionError,
    FatalRunError,
    ReasoningServiceError,
    RoundLimitExceeded,
)
from browser_agent.llm.client import ReasoningService
from browser_agent.llm.models import (
    ComputerCallItem,
    ComputerCallOutput,
    MessageItem,
    ReasoningItem,
    ReasoningResponse,
    system_turn,
    user_turn,
)
from browser_agent.llm.usage import UsageTracker
from browser_agent.utils.logger import LogContext, get_logger

logger = get_logger(__name__)

REASONING_ERROR_POLICIES = ("abort", "skip")


@dataclass
class AgentConfig:
    """
    Configuration for the agent loop.

    Attributes:
        max_rounds: Follow-up requests allowed per instruction (0 = unlimited).
        on_reasoning_error: "abort" stops the run when the reasoning service
            fails; "skip" marks the instruction failed and moves on.
        carry_context: Chain each instruction's first request to the
            previous instruction's last response.
    """

    max_rounds: int = 50
    on_reasoning_error: str = "abort"
    carry_context: bool = False

    def __post_init__(self) -> None:
        if self.max_rounds < 0:
            raise ValueError("max_rounds must not be negative")
        if self.on_reasoning_error not in REASONING_ERROR_POLICIES:
            raise ValueError(f"on_reasoning_error must be one of {REASONING_ERROR_POLICIES}")


@dataclass
class AgentEvent:
    """
    Narration event emitted while the agent works.

    Attributes:
        kind: "instruction_started", "reasoning", "message", "action" or
            "instruction_finished".
        instruction_index: Index of the instruction being processed.
        data: Event payload.
    """

    kind: str
    instruction_index: int
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class InstructionResult:
    """
    Outcome of one instruction.

    Attributes:
        index: Position of the instruction in the run.
        instruction: The instruction text.
        success: Whether the instruction completed.
        rounds: Follow-up requests sent.
        actions_executed: Computer calls executed successfully.
        response_ids: Ids of every response received.
        messages: Text messages from the model.
        error: Error message if failed.
        duration_seconds: Time spent on the instruction.
    """

    index: int
    instruction: str
    success: bool
    rounds: int = 0
    actions_executed: int = 0
    response_ids: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @classmethod
    def from_state(cls, state: InstructionState) -> "InstructionResult":
        return cls(
            index=state.index,
            instruction=state.instruction,
            success=state.status == InstructionStatus.COMPLETED,
            rounds=state.rounds,
            actions_executed=sum(1 for action in state.actions if action.success),
            response_ids=list(state.response_ids),
            messages=list(state.messages),
            error=state.error,
            duration_seconds=state.duration_seconds,
        )


@dataclass
class RunResult:
    """
    Final result of a run.

    Attributes:
        instructions: Per-instruction results, in order.
        input_tokens: Input tokens used by the run.
        output_tokens: Output tokens used by the run.
        cost_usd: Estimated cost of the run.
    """

    instructions: list[InstructionResult] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0

    @property
    def success(self) -> bool:
        """Whether every instruction completed."""
        return all(result.success for result in self.instructions)

    @property
    def failed(self) -> list[InstructionResult]:
        return [result for result in self.instructions if not result.success]


class ComputerUseAgent:
    """
    Computer-use agent loop.

    Connects a reasoning service to an environment: the service decides
    which primitive actions to take, the environment performs them and
    reports back with snapshots.
    """

    def __init__(
        self,
        reasoning: ReasoningService,
        environment: Environment,
        usage: Optional[UsageTracker] = None,
        config: Optional[AgentConfig] = None,
        system_prompt: Optional[str] = None,
        on_event: Optional[Callable[[AgentEvent], None]] = None,
    ) -> None:
        """
        Initialize the agent.

        Args:
            reasoning: Service that decides the next actions.
            environment: Surface the actions are executed on.
            usage: Usage tracker shared with the reasoning client; only read
                here for the final summary.
            config: Agent configuration.
            system_prompt: System context; built from the environment's OS
                name when omitted.
            on_event: Callback for narration events.
        """
        self.reasoning = reasoning
        self.environment = environment
        self.usage = usage if usage is not None else UsageTracker()
        self.config = config or AgentConfig()
        self.system_prompt = system_prompt or build_system_prompt(environment.os_name)
        self.on_event = on_event

        logger.info(
            "ComputerUseAgent initialized",
            max_rounds=self.config.max_rounds,
            on_reasoning_error=self.config.on_reasoning_error,
            carry_context=self.config.carry_context,
        )

    def _emit(self, kind: str, index: int, **data: Any) -> None:
        if self.on_event:
            self.on_event(AgentEvent(kind=kind, instruction_index=index, data=data))

    async def run(self, instructions: Sequence[str]) -> RunResult:
        """
        Execute instructions in order.

        Args:
            instructions: Instruction texts.

        Returns:
            RunResult with per-instruction outcomes and usage totals.

        Raises:
            FatalRunError: If the reasoning service fails and the policy is
                "abort".
        """
        logger.info("Starting run", instructions=len(instructions))
        logger.info("System prompt", prompt=self.system_prompt)

        results: list[InstructionResult] = []
        previous_response_id: Optional[str] = None

        try:
            for index, instruction in enumerate(instructions):
                state = InstructionState(index=index, instruction=instruction)
                with LogContext(instruction=index):
                    try:
                        await self._run_instruction(state, previous_response_id)
                    finally:
                        if not state.is_finished:
                            state.fail("Instruction interrupted")
                        logger.debug("Instruction record", record=state.to_dict())
                        results.append(InstructionResult.from_state(state))
                        self._emit(
                            "instruction_finished",
                            index,
                            success=state.status == InstructionStatus.COMPLETED,
                            error=state.error,
                        )

                # A failed instruction can leave computer calls without outputs
                if self.config.carry_context and state.status == InstructionStatus.COMPLETED:
                    previous_response_id = state.last_response_id
                else:
                    previous_response_id = None
        finally:
            summary = self.usage.summary()
            logger.info(
                "Run finished",
                completed=sum(1 for result in results if result.success),
                failed=sum(1 for result in results if not result.success),
                **summary,
            )

        return RunResult(
            instructions=results,
            input_tokens=self.usage.input_tokens,
            output_tokens=self.usage.output_tokens,
            cost_usd=self.usage.estimated_cost(),
        )

    async def _run_instruction(
        self,
        state: InstructionState,
        previous_response_id: Optional[str] = None,
    ) -> None:
        """Run one instruction to completion or failure."""
        state.start()
        logger.info("User instruction", instruction=state.instruction)
        self._emit("instruction_started", state.index, instruction=state.instruction)

        try:
            response = await self.reasoning.send(
                [system_turn(self.system_prompt), user_turn(state.instruction)],
                previous_response_id=previous_response_id,
            )
            state.record_response(response.id)
            await self._resolve(state, response)

        except EnvironmentActionError as e:
            logger.error("Action failed, abandoning instruction", error=str(e))
            state.fail(str(e))
            return

        except RoundLimitExceeded as e:
            logger.error("Round limit reached, abandoning instruction", max_rounds=e.max_rounds)
            state.fail(str(e))
            return

        except ReasoningServiceError as e:
            state.fail(str(e))
            if self.config.on_reasoning_error == "abort":
                logger.error("Reasoning service failed, aborting run", error=str(e))
                raise FatalRunError(
                    f"Reasoning service failed on instruction {state.index}: {e}",
                    instruction_index=state.index,
                ) from e
            logger.error("Reasoning service failed, skipping instruction", error=str(e))
            return

        state.complete()
        logger.info("Instruction completed", rounds=state.rounds, actions=len(state.actions))

    async def _resolve(self, state: InstructionState, response: ReasoningResponse) -> None:
        """
        Follow a response until it requests no further actions.

        Each round executes the response's computer calls and sends their
        outputs back as one batch.

        Raises:
            EnvironmentActionError: If an action or snapshot fails.
            ReasoningServiceError: If a follow-up request fails.
            RoundLimitExceeded: If more than ``max_rounds`` follow-ups are needed.
        """
        while True:
            outputs = await self._process_output(state, response)
            if not outputs:
                return

            max_rounds = self.config.max_rounds
            if max_rounds and state.rounds >= max_rounds:
                raise RoundLimitExceeded(max_rounds)

            state.rounds += 1
            response = await self.reasoning.send(outputs, previous_response_id=response.id)
            state.record_response(response.id)
            logger.debug(
                "Responded to computer calls",
                call_ids=[output.call_id for output in outputs],
                round=state.rounds,
            )

    async def _process_output(
        self,
        state: InstructionState,
        response: ReasoningResponse,
    ) -> list[ComputerCallOutput]:
        """Handle every item of a response and collect computer call outputs."""
        if not response.output:
            logger.warning("No actions to perform in the response", response_id=response.id)
            return []

        outputs: list[ComputerCallOutput] = []
        for item in response.output:
            if isinstance(item, ReasoningItem):
                for text in item.summary:
                    logger.info("Reasoning", text=text)
                    self._emit("reasoning", state.index, text=text)
            elif isinstance(item, MessageItem):
                for text in item.text:
                    logger.info("Message", text=text)
                    state.messages.append(text)
                    self._emit("message", state.index, text=text)
            elif isinstance(item, ComputerCallItem):
                outputs.append(await self._execute_call(state, item))
            else:
                logger.debug("Ignoring output item", item_type=item.type)
        return outputs

    async def _execute_call(
        self,
        state: InstructionState,
        item: ComputerCallItem,
    ) -> ComputerCallOutput:
        """Execute one computer call and capture the resulting snapshot."""
        action = item.action
        logger.debug("Executing computer call", action_type=action.tag, call_id=item.call_id)
        self._emit("action", state.index, action=format_action_for_log(action), call_id=item.call_id)

        start_time = time.time()
        try:
            await self.environment.execute(action)
            screenshot = await self.environment.snapshot()
        except EnvironmentActionError as e:
            state.record_action(
                call_id=item.call_id,
                action_type=action.tag,
                params=action.params,
                success=False,
                error=str(e),
                duration_ms=int((time.time() - start_time) * 1000),
            )
            raise

        state.record_action(
            call_id=item.call_id,
            action_type=action.tag,
            params=action.params,
            success=True,
            duration_ms=int((time.time() - start_time) * 1000),
        )

        if item.pending_safety_checks:
            logger.warning(
                "Acknowledging safety checks",
                codes=[check.get("code") for check in item.pending_safety_checks],
            )

        return ComputerCallOutput(
            call_id=item.call_id,
            screenshot=screenshot,
            acknowledged_safety_checks=list(item.pending_safety_checks),
        )
