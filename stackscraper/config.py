import os
from typing import List
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from .errors import SettingsError
from .user_agents import DEFAULT_USER_AGENTS

load_dotenv()


class ScraperSettings(BaseModel):
    """Runtime settings, read from the environment or a .env file."""
    user_agents: List[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    request_timeout: float = Field(30.0, gt=0)
    log_level: str = "WARNING"

    @field_validator("log_level")
    @classmethod
    def upper_level(cls, v):
        return v.upper()

    @classmethod
    def from_env(cls) -> "ScraperSettings":
        data = {}
        agents = os.getenv("STACKSCRAPER_USER_AGENTS")
        if agents is not None:
            data["user_agents"] = [a.strip() for a in agents.split("|") if a.strip()]
        timeout = os.getenv("STACKSCRAPER_TIMEOUT")
        if timeout:
            data["request_timeout"] = timeout
        level = os.getenv("STACKSCRAPER_LOG_LEVEL")
        if level:
            data["log_level"] = level
        try:
            return cls(**data)
        except ValidationError as e:
            raise SettingsError(f"Invalid STACKSCRAPER_* settings: {e}") from e
