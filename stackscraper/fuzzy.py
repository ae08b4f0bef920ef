"""
Text comparison helpers shared by rule building and rule replay.
"""

import re
from difflib import SequenceMatcher
from typing import Dict, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field


_WHITESPACE = re.compile(r"\s+")


def normalize(text: Optional[str]) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", text).strip()


def similarity(a: str, b: str) -> float:
    """Characters covered by the recursive longest common blocks over the longer length."""
    if not a and not b:
        return 1.0
    blocks = SequenceMatcher(None, a, b, autojunk=False).get_matching_blocks()
    matched = sum(block.size for block in blocks)
    return matched / max(len(a), len(b))


def text_match(a: str, b: str, ratio: float = 1.0) -> bool:
    """True when ``a`` and ``b`` are equal, or at least ``ratio`` similar."""
    if ratio >= 1.0:
        return a == b
    return similarity(a, b) >= ratio


def url_join(base: str, url: str) -> str:
    """Resolve ``url`` against ``base``; absolute URLs pass through untouched."""
    if urlparse(url).scheme:
        return url
    return base.rstrip("/") + "/" + url.lstrip("/")


class Exact(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str

    def matches(self, candidate: Optional[str]) -> bool:
        return candidate == self.value


class Fuzzy(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    ratio: float = Field(..., ge=0.0, le=1.0)

    def matches(self, candidate: Optional[str]) -> bool:
        if candidate is None:
            return False
        return text_match(self.value, candidate, self.ratio)


AttributeMatch = Union[Exact, Fuzzy]


def attribute_matches(matcher: AttributeMatch, candidate: Optional[str]) -> bool:
    return matcher.matches(candidate)


def fingerprint_matchers(attrs: Dict[str, str], ratio: float = 1.0) -> Dict[str, AttributeMatch]:
    """Wrap each non-empty fingerprint value; empty values constrain nothing."""
    matchers: Dict[str, AttributeMatch] = {}
    for key, value in attrs.items():
        if not value:
            continue
        if ratio < 1.0:
            matchers[key] = Fuzzy(value=value, ratio=ratio)
        else:
            matchers[key] = Exact(value=value)
    return matchers
