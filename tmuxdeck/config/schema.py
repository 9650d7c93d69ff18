from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tmuxdeck.constants import (
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_RESIZE_AMOUNT,
    DEFAULT_SERVER_URL,
    DEFAULT_TMUX_CONFIG_FILE,
)


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    url: str = DEFAULT_SERVER_URL  # Backend base URL; /api/events is appended

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid server url: {v}. Expected http:// or https://")
        return v.rstrip("/")


class TmuxConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    binary: str = "tmux"
    config_file: str = DEFAULT_TMUX_CONFIG_FILE
    resize_amount: int = Field(default=DEFAULT_RESIZE_AMOUNT, ge=1)


class EventsConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    connect_timeout_s: float = Field(default=DEFAULT_CONNECT_TIMEOUT_S, gt=0)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


class GlobalConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    server: ServerConfig = ServerConfig()
    tmux: TmuxConfig = TmuxConfig()
    events: EventsConfig = EventsConfig()
    logging: LoggingConfig = LoggingConfig()
