"""
Tests for the Command Line Entry Point
======================================
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from browser_agent.agent.loop import InstructionResult, RunResult
from browser_agent.config import Settings
from browser_agent.exceptions import FatalRunError
from browser_agent.instructions import DEFAULT_INSTRUCTIONS_FILE, InstructionSet
from browser_agent.main import (
    EXIT_FAILURE,
    EXIT_OK,
    build_environment,
    build_parser,
    build_responses_config,
    run,
)
from tests.conftest import FakeEnvironment


class ManagedFakeEnvironment(FakeEnvironment):
    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


@pytest.fixture
def settings(monkeypatch, tmp_path) -> Settings:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://test-resource.openai.azure.com")
    monkeypatch.setenv("AZURE_OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "outputs"))
    for name in ("BROWSER_HEADLESS", "DISPLAY_WIDTH", "DISPLAY_HEIGHT", "START_URL"):
        monkeypatch.delenv(name, raising=False)
    return Settings()


@pytest.fixture
def instructions_file(tmp_path):
    path = tmp_path / "task.yaml"
    path.write_text("startUrl: https://example.com\ninstructions:\n  - Click spin\n", encoding="utf-8")
    return path


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.instructions_file == DEFAULT_INSTRUCTIONS_FILE
        assert args.headless is False
        assert args.max_rounds is None
        assert args.log_level is None

    def test_flags(self):
        args = build_parser().parse_args(
            ["--instructions-file", "x.yaml", "--headless", "--max-rounds", "5", "--log-level", "DEBUG"]
        )
        assert args.instructions_file == "x.yaml"
        assert args.headless is True
        assert args.max_rounds == 5
        assert args.log_level == "DEBUG"


class TestBuilders:
    def test_instruction_file_overrides_settings(self, settings, tmp_path):
        instruction_set = InstructionSet(
            startUrl="https://example.com", instructions=["go"], headless=True, displayWidth=1280
        )
        env = build_environment(settings, instruction_set, run_log=MagicMock(path=tmp_path))

        assert env.start_url == "https://example.com"
        assert env.headless is True
        assert env.display_width == 1280
        assert env.display_height == 600

    def test_settings_used_when_file_is_silent(self, settings, tmp_path):
        env = build_environment(settings, InstructionSet(instructions=["go"]), run_log=MagicMock(path=tmp_path))

        assert env.start_url == "https://google.com"
        assert env.headless is False

    def test_headless_flag_wins(self, settings, tmp_path):
        instruction_set = InstructionSet(instructions=["go"], headless=False)
        env = build_environment(settings, instruction_set, run_log=MagicMock(path=tmp_path), headless=True)
        assert env.headless is True

    def test_responses_config(self, settings):
        config = build_responses_config(settings)
        assert config.endpoint == "https://test-resource.openai.azure.com"
        assert config.api_key == "test-key"

    def test_missing_key_is_a_configuration_error(self, settings):
        settings.reasoning.azure_openai_api_key = ""
        with pytest.raises(ValueError):
            build_responses_config(settings)


class TestRun:
    @pytest.mark.asyncio
    async def test_missing_instruction_file(self, settings, tmp_path):
        args = build_parser().parse_args(["--instructions-file", str(tmp_path / "missing.yaml")])
        assert await run(args, settings) == EXIT_FAILURE

    @pytest.mark.asyncio
    async def test_successful_run(self, settings, instructions_file):
        args = build_parser().parse_args(["--instructions-file", str(instructions_file)])
        result = RunResult(instructions=[InstructionResult(index=0, instruction="Click spin", success=True)])
        agent = MagicMock()
        agent.run = AsyncMock(return_value=result)

        with patch("browser_agent.main.build_environment", return_value=ManagedFakeEnvironment()), \
                patch("browser_agent.main.ComputerUseAgent", return_value=agent):
            assert await run(args, settings) == EXIT_OK

        agent.run.assert_awaited_once_with(["Click spin"])

    @pytest.mark.asyncio
    async def test_fatal_error_exits_with_failure(self, settings, instructions_file):
        args = build_parser().parse_args(["--instructions-file", str(instructions_file)])
        agent = MagicMock()
        agent.run = AsyncMock(side_effect=FatalRunError("service down", instruction_index=0))

        with patch("browser_agent.main.build_environment", return_value=ManagedFakeEnvironment()), \
                patch("browser_agent.main.ComputerUseAgent", return_value=agent):
            assert await run(args, settings) == EXIT_FAILURE
