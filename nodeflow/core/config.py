"""Environment-driven configuration with Pydantic v2."""

from typing import List, Literal, Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="127.0.0.1", env="HOST")
    port: int = Field(default=3020, env="PORT", ge=1024, le=65535)
    debug: bool = Field(default=False, env="DEBUG")
    cors_origins: List[str] = Field(default=["http://localhost:5173"], env="CORS_ORIGINS")

    # Action execution
    http_timeout: float = Field(default=30.0, env="HTTP_TIMEOUT", ge=1.0, le=300.0)
    # JAVASCRIPT_CODE is run as restricted Python unless this is "node"
    script_engine: Literal["python", "node", "disabled"] = Field(
        default="python", env="SCRIPT_ENGINE",
        description="Runtime for Run Code nodes: python (sandbox), node (JavaScript) or disabled",
    )
    script_timeout: int = Field(default=30, env="SCRIPT_TIMEOUT", ge=1, le=600)
    node_binary: str = Field(default="node", env="NODE_BINARY")

    # Schedule triggers
    schedule_immediate_threshold_ms: int = Field(default=1000, env="SCHEDULE_IMMEDIATE_THRESHOLD_MS", ge=0)
    scheduler_timezone: Optional[str] = Field(default=None, env="SCHEDULER_TIMEZONE")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="console", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, env="LOG_FILE")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
