"""
Configuration settings for the workflow engine.
"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="detailed",
        description="Log format style: simple, detailed or json"
    )
    log_file: Optional[str] = Field(
        default=None,
        description="Optional file that receives a copy of every log line"
    )

    # Execution settings
    concurrent_branches: bool = Field(
        default=True,
        description="Run fan-out branches concurrently (interpreter) and emit a concurrent join (compiler)"
    )
    credential_source: str = Field(
        default="system",
        description="Where step secrets come from: 'system' (environment) or 'user' (per-run bundle)"
    )
    step_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP timeout used by the built-in integration steps"
    )

    # Code generation settings
    generated_function_name: str = Field(
        default="run_workflow",
        description="Default name of the generated orchestrator function"
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Create global settings instance
settings = Settings()
