import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

from pydantic import ValidationError

from .errors import RuleFileError
from .models import RuleSetFile, Stack, new_stack_id
from .parser import build_attribute_selector


logger = logging.getLogger(__name__)


class RuleStore:
    """Ordered collection of stacks learned by the scraper."""

    def __init__(self, stacks: Optional[Iterable[Union[Stack, Dict[str, Any]]]] = None):
        self._stacks: List[Stack] = []
        for stack in stacks or []:
            self.add(stack)

    @property
    def stacks(self) -> List[Stack]:
        return list(self._stacks)

    @stacks.setter
    def stacks(self, value: Iterable[Union[Stack, Dict[str, Any]]]) -> None:
        self.clear()
        for stack in value:
            self.add(stack)

    def __iter__(self) -> Iterator[Stack]:
        return iter(list(self._stacks))

    def __len__(self) -> int:
        return len(self._stacks)

    def add(self, stack: Union[Stack, Dict[str, Any]]) -> Stack:
        """Append a stack, giving it a fresh id if it has none or the id is taken."""
        if not isinstance(stack, Stack):
            stack = Stack.model_validate(stack)
        taken = {s.stack_id for s in self._stacks}
        if not stack.stack_id or stack.stack_id in taken:
            stack_id = new_stack_id()
            while stack_id in taken:
                stack_id = new_stack_id()
            stack = stack.model_copy(update={"stack_id": stack_id})
        self._stacks.append(stack)
        return stack

    def clear(self) -> None:
        self._stacks = []

    def get(self, stack_id: str) -> Optional[Stack]:
        for stack in self._stacks:
            if stack.stack_id == stack_id:
                return stack
        return None

    def dedup(self) -> None:
        """Drop stacks whose hash was already seen; the first occurrence wins."""
        seen = set()
        unique = []
        for stack in self._stacks:
            if stack.hash in seen:
                continue
            seen.add(stack.hash)
            unique.append(stack)
        if len(unique) != len(self._stacks):
            logger.debug("Removed %d duplicate rules", len(self._stacks) - len(unique))
        self._stacks = unique

    def remove_rules(self, rule_ids: Iterable[str]) -> None:
        rule_ids = set(rule_ids)
        self._stacks = [s for s in self._stacks if s.stack_id not in rule_ids]

    def keep_rules(self, rule_ids: Iterable[str]) -> None:
        rule_ids = set(rule_ids)
        self._stacks = [s for s in self._stacks if s.stack_id in rule_ids]

    def set_rule_aliases(self, rule_aliases: Dict[str, str]) -> None:
        self._stacks = [
            s.model_copy(update={"alias": rule_aliases[s.stack_id]}) if s.stack_id in rule_aliases else s
            for s in self._stacks
        ]

    def css_selector(self) -> str:
        """All rules as one comma-separated selector group."""
        selectors = []
        for stack in self._stacks:
            parts = [segment.tag + build_attribute_selector(segment.attrs) for segment in stack.content]
            selectors.append(" > ".join(parts))
        return ", ".join(selectors)

    def to_dict(self) -> Dict[str, Any]:
        return {"stack_list": [stack.to_record() for stack in self._stacks]}

    @classmethod
    def from_data(cls, data: Any) -> "RuleStore":
        """Build a store from decoded JSON, either ``{"stack_list": [...]}`` or a bare list."""
        if isinstance(data, list):
            logger.warning("Rule set is a bare list; re-save it to upgrade the format")
        try:
            rule_set = RuleSetFile.model_validate(data)
        except ValidationError as e:
            raise RuleFileError(f"Invalid rule set: {e}") from e
        store = cls()
        # stored ids are kept as they are
        store._stacks = list(rule_set.stack_list)
        return store

    def save(self, file_path: Union[str, Path]) -> None:
        path = Path(file_path)
        try:
            path.write_text(json.dumps(self.to_dict(), indent=4), encoding="utf-8")
        except OSError as e:
            raise RuleFileError(f"Cannot write rule file {path}: {e}") from e
        logger.info("Saved %d rules to %s", len(self), path)

    @classmethod
    def load(cls, file_path: Union[str, Path]) -> "RuleStore":
        path = Path(file_path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise RuleFileError(f"Cannot read rule file {path}: {e}") from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise RuleFileError(f"Rule file {path} is not valid JSON: {e}") from e
        store = cls.from_data(data)
        logger.info("Loaded %d rules from %s", len(store), path)
        return store
