"""Configuration settings for the Paper Demo Generator."""

from datetime import timezone, datetime
from typing import List, Literal, Optional, Dict, Any
from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field, SecretStr


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Groups the model, sandbox, storage and dispatch knobs used by the
    ingestion and generation pipelines.
    """

    # API Settings
    app_name: str = "Paper Demo Generator"
    app_version: str = "1.0.0"
    debug: bool = False

    # Claude Agent SDK Settings
    analysis_model: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Model used to read uploaded papers"
    )
    generation_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model used to write demo code"
    )
    analysis_max_turns: int = Field(
        default=4,
        description="Maximum turns for the analysis call (Read tool + answer)"
    )
    generation_max_turns: int = Field(
        default=1,
        description="Maximum turns for the generation call"
    )
    analysis_allowed_tools: List[str] = Field(
        default=["Read"],
        description="Tools allowed while analysing a paper"
    )
    generation_allowed_tools: List[str] = Field(
        default=[],
        description="Tools allowed while generating demo code"
    )
    max_output_tokens: int = Field(
        default=8000,
        description="Output token bound for both model calls"
    )

    # Generation constraints
    max_demo_size_kb: int = Field(default=100, description="Size bound stated in the prompt")
    document_sentinel: str = Field(
        default="<!DOCTYPE html>",
        description="Token generated code must start with"
    )

    # Persistence
    database_path: str = Field(
        default="./data/paperdemo.db",
        description="SQLite database file"
    )
    storage_dir: str = Field(
        default="./data/blobs",
        description="Directory for stored blobs"
    )
    public_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL blobs are served from"
    )
    scratch_dir: str = Field(
        default="./data/scratch",
        description="Working directory for downloaded papers"
    )

    # Sandbox Settings
    daytona_api_key: Optional[SecretStr] = Field(default=None, description="Daytona API key")
    daytona_api_url: str = Field(default="https://app.daytona.io/api", description="Daytona API URL")
    daytona_target: str = Field(default="us", description="Daytona target region")
    sandbox_language: str = Field(default="python", description="Runtime of the sandbox image")
    sandbox_workdir: str = Field(default="/home/daytona/demo", description="Directory served in the sandbox")
    sandbox_port: int = Field(default=8080, description="Port of the static server")
    sandbox_file_name: str = Field(default="demo.html", description="File the code is written to")
    sandbox_settle_seconds: float = Field(
        default=3.0,
        description="Wait after starting the server before the first probe"
    )
    sandbox_probe_strategy: Literal["fixed_delay", "poll"] = Field(
        default="poll",
        description="'fixed_delay' probes once; 'poll' retries with backoff"
    )
    sandbox_probe_attempts: int = Field(default=5, description="Probe attempts in poll mode")
    sandbox_probe_backoff: float = Field(default=0.5, description="Initial poll backoff in seconds")
    sandbox_probe_max_backoff: float = Field(default=4.0, description="Backoff cap in seconds")
    sandbox_fetch_timeout: float = Field(default=30.0, description="HTTP timeout for the probe")

    # Dispatch Settings
    dispatcher_backend: Literal["asyncio", "celery"] = Field(
        default="asyncio",
        description="'asyncio' runs stages in-process, 'celery' on workers"
    )
    dispatcher_workers: int = Field(default=4, description="Worker coroutines for the asyncio backend")
    celery_broker_url: str = Field(default="redis://localhost:6379/0", description="Celery broker")
    celery_result_backend: str = Field(default="redis://localhost:6379/1", description="Celery results")
    task_time_limit: int = Field(default=600, description="Hard task limit in seconds")
    task_soft_time_limit: int = Field(default=540, description="Soft task limit in seconds")

    # CORS Settings
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    def get_agent_options(self, call_type: str) -> Dict[str, Any]:
        """Get Claude Agent SDK options for a model call.

        Args:
            call_type: One of 'analysis', 'generation'

        Returns:
            Dictionary of options for ClaudeAgentOptions
        """
        if call_type == "analysis":
            return {
                "model": self.analysis_model,
                "max_turns": self.analysis_max_turns,
                "allowed_tools": list(self.analysis_allowed_tools),
            }
        if call_type == "generation":
            return {
                "model": self.generation_model,
                "max_turns": self.generation_max_turns,
                "allowed_tools": list(self.generation_allowed_tools),
            }
        raise ValueError(f"Unknown call type: {call_type}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
