import hashlib
import json
import random
import string
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer, model_validator


class GroupBy(str, Enum):
    """How extraction results are bucketed."""
    NONE = "none"
    RULE = "rule"
    ALIAS = "alias"


class PathSegment(BaseModel):
    """One level of a stack: tag, attribute fingerprint and sibling index.

    Serialized as ``[tag, attrs]`` for the root and ``[tag, attrs, index]``
    for every other level.
    """
    model_config = ConfigDict(frozen=True)

    tag: str
    attrs: Dict[str, str] = Field(default_factory=dict)
    index: Optional[int] = None

    @model_validator(mode="before")
    @classmethod
    def from_sequence(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            if not 2 <= len(value) <= 3:
                raise ValueError("path segment must have 2 or 3 items")
            data = {"tag": value[0], "attrs": value[1]}
            if len(value) == 3:
                data["index"] = value[2]
            return data
        return value

    @field_validator("attrs", mode="before")
    @classmethod
    def blank_missing(cls, v):
        if v is None:
            return {}
        return {key: "" if val is None else val for key, val in dict(v).items()}

    @field_validator("index")
    @classmethod
    def non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("sibling index must be >= 0")
        return v

    @model_serializer
    def to_sequence(self) -> List[Any]:
        if self.index is None:
            return [self.tag, dict(self.attrs)]
        return [self.tag, dict(self.attrs), self.index]


class Stack(BaseModel):
    """A learned rule: how to find a node again and what to read from it."""
    model_config = ConfigDict(populate_by_name=True)

    content: List[PathSegment]
    wanted_attr: Optional[str] = None
    is_full_url: bool = False
    is_non_rec_text: bool = False
    source_url: str = Field("", alias="url")
    hash: str = ""
    stack_id: str = ""
    alias: str = ""

    @field_validator("content")
    @classmethod
    def not_empty(cls, v):
        if not v:
            raise ValueError("stack content needs at least one segment")
        return v

    @field_validator("source_url", mode="before")
    @classmethod
    def url_or_blank(cls, v):
        return v or ""

    @field_validator("alias", mode="before")
    @classmethod
    def alias_or_blank(cls, v):
        return v or ""

    @model_validator(mode="after")
    def fill_hash(self) -> "Stack":
        if not self.hash:
            self.hash = self.compute_hash()
        return self

    def structural_fields(self) -> Dict[str, Any]:
        return {
            "content": [segment.model_dump() for segment in self.content],
            "wanted_attr": self.wanted_attr,
            "is_full_url": self.is_full_url,
            "is_non_rec_text": self.is_non_rec_text,
            "url": self.source_url,
        }

    def compute_hash(self) -> str:
        """SHA-256 over the structural fields, independent of id and alias."""
        payload = json.dumps(self.structural_fields(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class RuleSetFile(BaseModel):
    """On-disk form of a rule set."""
    stack_list: List[Stack] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def accept_bare_list(cls, value: Any) -> Any:
        # older files are a bare array of stacks
        if isinstance(value, list):
            return {"stack_list": value}
        return value


class MatchResult(BaseModel):
    """A value read from one matched node, with its document position."""
    text: Optional[str] = None
    index: int = 0


_ID_ALPHABET = string.ascii_letters + string.digits


def new_stack_id(length: int = 4) -> str:
    return "rule_" + "".join(random.choices(_ID_ALPHABET, k=length))
