import random
from typing import Iterable, List, Optional
from .errors import UserAgentError


DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
]


class UserAgentPool:
    """User agents to pick from when fetching pages."""

    def __init__(self, user_agents: Optional[Iterable[str]] = None, rng: Optional[random.Random] = None):
        self._user_agents: List[str] = list(DEFAULT_USER_AGENTS if user_agents is None else user_agents)
        self._rng = rng or random.Random()

    @property
    def user_agents(self) -> List[str]:
        return list(self._user_agents)

    @user_agents.setter
    def user_agents(self, value: Iterable[str]) -> None:
        self._user_agents = list(value)

    def get(self) -> str:
        """Pick a random agent."""
        if not self._user_agents:
            raise UserAgentError("No user agents configured")
        return self._rng.choice(self._user_agents)
