"""
Learns reusable scraping rules from example values and replays them on similar pages.
"""

from .models import GroupBy, MatchResult, PathSegment, RuleSetFile, Stack
from .core import AutoScraper
from .rules import RuleStore
from .matcher import RuleMatcher, extract_value
from .path_builder import build_stack
from .fuzzy import text_match, url_join
from .fetcher import PageFetcher
from .user_agents import UserAgentPool
from .config import ScraperSettings
from .errors import FetchError, InvalidURLError, RuleFileError, ScraperError, SettingsError, UserAgentError

__version__ = "0.1.0"

__all__ = [
    "GroupBy",
    "MatchResult",
    "PathSegment",
    "RuleSetFile",
    "Stack",
    "AutoScraper",
    "RuleStore",
    "RuleMatcher",
    "extract_value",
    "build_stack",
    "text_match",
    "url_join",
    "PageFetcher",
    "UserAgentPool",
    "ScraperSettings",
    "FetchError",
    "InvalidURLError",
    "RuleFileError",
    "ScraperError",
    "SettingsError",
    "UserAgentError",
]
