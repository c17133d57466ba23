"""
Configuration Management
========================

Centralized configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Shared config that all settings classes use to load .env
_shared_config = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    env_prefix="",
    extra="ignore",
)


class ReasoningSettings(BaseSettings):
    """Remote reasoning service (Responses API) settings."""

    model_config = _shared_config

    azure_openai_endpoint: str = Field(
        default="",
        description="Base URL of the Azure OpenAI resource (or OpenAI API base when api style is 'openai')",
    )
    azure_openai_api_key: str = Field(default="", description="API key sent with every request")
    azure_openai_deployment: str = Field(
        default="computer-use-preview",
        description="Deployment / model name that serves the computer-use tool",
    )
    azure_openai_api_version: str = Field(
        default="2025-04-01-preview",
        description="Azure OpenAI API version query parameter",
    )
    reasoning_api_style: Literal["azure", "openai"] = Field(
        default="azure",
        description="URL layout and auth header flavour of the endpoint",
    )
    reasoning_timeout: float = Field(default=120.0, description="Request timeout in seconds")
    reasoning_max_attempts: int = Field(default=3, description="Attempts per request on transient errors")
    reasoning_backoff_base: float = Field(
        default=1.0,
        description="Initial retry delay in seconds, doubled after each failed attempt",
    )
    price_per_million_input: float = Field(default=3.00, description="USD per million input tokens")
    price_per_million_output: float = Field(default=12.00, description="USD per million output tokens")

    @field_validator("azure_openai_endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoint is joined with paths, so keep it slash-free."""
        return v.rstrip("/")


class BrowserSettings(BaseSettings):
    """Browser environment settings."""

    model_config = _shared_config

    browser_headless: bool = Field(default=False, description="Run Chromium without a window")
    display_width: int = Field(default=800, description="Viewport width in pixels")
    display_height: int = Field(default=600, description="Viewport height in pixels")
    start_url: str = Field(default="https://google.com", description="Page opened when the browser starts")
    drag_mode: Literal["continuous", "taps"] = Field(
        default="continuous",
        description="'continuous' presses once along the whole path; 'taps' presses per segment",
    )
    record_har: bool = Field(default=True, description="Record a HAR file into the run directory")
    record_video: bool = Field(default=True, description="Record a video into the run directory")


class AgentSettings(BaseSettings):
    """Agent loop settings."""

    model_config = _shared_config

    max_rounds: int = Field(
        default=50,
        description="Follow-up rounds allowed per instruction (0 = unlimited)",
    )
    on_reasoning_error: Literal["abort", "skip"] = Field(
        default="abort",
        description="'abort' stops the run on a reasoning service failure; 'skip' moves to the next instruction",
    )
    carry_context: bool = Field(
        default=False,
        description="Link each instruction to the previous instruction's last response",
    )


class LoggingSettings(BaseSettings):
    """Logging and output settings."""

    model_config = _shared_config

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Console log level (the run log file always records DEBUG)",
    )
    log_json: bool = Field(default=False, description="Emit JSON log lines on the console")
    output_dir: str = Field(default="./outputs", description="Parent directory for run outputs")


class Settings(BaseSettings):
    """
    Main settings class combining all configuration sections.

    Usage:
        from browser_agent.config import get_settings
        settings = get_settings()
        print(settings.reasoning.azure_openai_deployment)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Nested settings
    reasoning: ReasoningSettings = Field(default_factory=ReasoningSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def __init__(self, **kwargs):
        """Initialize settings with nested configuration."""
        super().__init__(**kwargs)
        # Re-initialize nested settings to pick up env vars
        self.reasoning = ReasoningSettings()
        self.browser = BrowserSettings()
        self.agent = AgentSettings()
        self.logging = LoggingSettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings loaded from environment.
    """
    return Settings()
