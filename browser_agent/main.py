"""
Browser Agent - Command Line Entry Point
========================================

Runs the instructions of a YAML file against a local Chromium browser,
letting the remote reasoning service decide every action.

Each run writes its log file, screenshots, HAR file and video into
``<OUTPUT_DIR>/cua-test-<timestamp>/``.

Usage:
    browser-agent --instructions-file ./instructions/slotmachine.yaml

    # Without a browser window, verbose console
    browser-agent --instructions-file ./instructions/checkout.yaml --headless --log-level DEBUG
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from pydantic import ValidationError

from browser_agent import __version__
from browser_agent.agent.loop import AgentConfig, AgentEvent, ComputerUseAgent, RunResult
from browser_agent.config import Settings, get_settings
from browser_agent.environment.browser import BrowserEnvironment
from browser_agent.exceptions import FatalRunError, InstructionFileError
from browser_agent.instructions import DEFAULT_INSTRUCTIONS_FILE, InstructionSet, load_instructions
from browser_agent.llm.client import ResponsesClient
from browser_agent.llm.models import ResponsesConfig
from browser_agent.llm.usage import UsageTracker
from browser_agent.utils.logger import RunLog, get_logger, setup_logging
from browser_agent.utils.security import sanitize_for_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="browser-agent",
        description="Drive a browser with a computer-use model, one instruction at a time.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Setup:
  1. Set AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY in .env
  2. (Optional) AZURE_OPENAI_DEPLOYMENT, AZURE_OPENAI_API_VERSION
  3. Install the browser once: playwright install chromium
        """,
    )
    parser.add_argument(
        "--instructions-file",
        default=DEFAULT_INSTRUCTIONS_FILE,
        help=f"YAML file with startUrl and instructions (default: {DEFAULT_INSTRUCTIONS_FILE})",
    )
    parser.add_argument("--headless", action="store_true", help="Run Chromium without a window")
    parser.add_argument(
        "--max-rounds",
        type=int,
        default=None,
        help="Follow-up rounds allowed per instruction (0 = unlimited)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Console log level (default: LOG_LEVEL setting)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _print_event(event: AgentEvent) -> None:
    """Narrate agent progress on the console."""
    if event.kind == "instruction_started":
        print(f"\n📋 Instruction {event.instruction_index + 1}: {event.data['instruction']}")
        print("─" * 50)
    elif event.kind == "reasoning":
        print(f"   💭 {event.data['text']}")
    elif event.kind == "message":
        print(f"   💬 {event.data['text']}")
    elif event.kind == "action":
        print(f"   ▶ {event.data['action']}")
    elif event.kind == "instruction_finished":
        if event.data.get("success"):
            print("   ✓ Done")
        else:
            print(f"   ✗ Failed: {event.data.get('error')}")


def _print_summary(result: RunResult, run_log: RunLog) -> None:
    completed = len(result.instructions) - len(result.failed)
    print("\n" + "=" * 50)
    if result.success:
        print("✅ ALL INSTRUCTIONS COMPLETED")
    else:
        print(f"⚠️  {completed}/{len(result.instructions)} INSTRUCTIONS COMPLETED")
        for failed in result.failed:
            print(f"   ✗ [{failed.index + 1}] {failed.instruction}: {failed.error}")
    print(f"   Tokens: {result.input_tokens} input, {result.output_tokens} output")
    print(f"   Estimated cost: ${result.cost_usd:.6f}")
    print(f"   Outputs: {run_log.path}")
    print("=" * 50)


def build_responses_config(settings: Settings) -> ResponsesConfig:
    """
    Build the reasoning client configuration from settings.

    Raises:
        ValueError: If the endpoint or key is missing.
    """
    reasoning = settings.reasoning
    return ResponsesConfig(
        endpoint=reasoning.azure_openai_endpoint,
        api_key=reasoning.azure_openai_api_key,
        deployment=reasoning.azure_openai_deployment,
        api_version=reasoning.azure_openai_api_version,
        api_style=reasoning.reasoning_api_style,
        timeout=reasoning.reasoning_timeout,
        max_attempts=reasoning.reasoning_max_attempts,
        backoff_base=reasoning.reasoning_backoff_base,
    )


def build_environment(
    settings: Settings,
    instruction_set: InstructionSet,
    run_log: RunLog,
    headless: bool = False,
) -> BrowserEnvironment:
    """Create the browser environment; instruction file values win over settings."""
    browser = settings.browser
    if not headless:
        headless = (
            instruction_set.headless
            if instruction_set.headless is not None
            else browser.browser_headless
        )
    return BrowserEnvironment(
        start_url=instruction_set.start_url or browser.start_url,
        headless=headless,
        display_width=instruction_set.display_width or browser.display_width,
        display_height=instruction_set.display_height or browser.display_height,
        run_log=run_log,
        drag_mode=browser.drag_mode,
        record_har=browser.record_har,
        record_video=browser.record_video,
    )


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """
    Execute one run.

    Returns:
        Process exit code.
    """
    try:
        instruction_set = load_instructions(args.instructions_file)
        responses_config = build_responses_config(settings)
        agent_config = AgentConfig(
            max_rounds=args.max_rounds if args.max_rounds is not None else settings.agent.max_rounds,
            on_reasoning_error=settings.agent.on_reasoning_error,
            carry_context=settings.agent.carry_context,
        )
    except InstructionFileError as e:
        print(f"❌ {e}")
        return EXIT_FAILURE
    except ValueError as e:
        print(f"❌ Configuration error: {e}")
        print("\n💡 Make sure AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY are set in .env")
        return EXIT_FAILURE

    if not instruction_set.instructions:
        print("⚠️  Instructions file contains no instructions, nothing to do")
        return EXIT_OK

    usage = UsageTracker.per_million(
        settings.reasoning.price_per_million_input,
        settings.reasoning.price_per_million_output,
    )

    with RunLog.create(settings.logging.output_dir) as run_log:
        logger.info("Run started", run_dir=str(run_log.path), name=instruction_set.name)
        logger.debug("Reasoning settings", **sanitize_for_logging(settings.reasoning.model_dump()))
        environment = build_environment(settings, instruction_set, run_log, headless=args.headless)

        try:
            async with environment:
                async with ResponsesClient(
                    responses_config,
                    display_width=environment.display_width,
                    display_height=environment.display_height,
                    usage=usage,
                ) as client:
                    agent = ComputerUseAgent(
                        reasoning=client,
                        environment=environment,
                        usage=usage,
                        config=agent_config,
                        on_event=_print_event,
                    )
                    result = await agent.run(instruction_set.instructions)

        except FatalRunError as e:
            logger.error("Run aborted", error=str(e), instruction=e.instruction_index)
            print(f"\n❌ Run aborted: {e}")
            print(f"   Details: {run_log.log_file}")
            return EXIT_FAILURE

        except PlaywrightError as e:
            logger.error("Browser error", error=str(e))
            print(f"\n❌ Browser error: {e}")
            print("\n💡 Install the browser with: playwright install chromium")
            return EXIT_FAILURE

        _print_summary(result, run_log)
        return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"❌ Configuration error: {e}")
        return EXIT_FAILURE

    setup_logging(
        level=args.log_level or settings.logging.log_level,
        json_logs=settings.logging.log_json,
    )

    try:
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user.")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
