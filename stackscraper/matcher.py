"""
Replays stored stacks against a parsed document.

Two strategies are available. Selector-based replay widens a CSS-like query
level by level and tolerates extra siblings; index-based replay walks direct
children by recorded position and tolerates drift in the surrounding markup.
"""

import logging
from typing import Dict, List, Optional
from selectolax.parser import Node
from .fuzzy import url_join
from .models import MatchResult, PathSegment, Stack
from .parser import Selector, Tree, node_attribute, node_key, node_text, non_recursive_text, top_element


logger = logging.getLogger(__name__)


def extract_value(
    node: Node,
    wanted_attr: Optional[str] = None,
    is_full_url: bool = False,
    url: str = "",
    is_non_rec_text: bool = False,
) -> Optional[str]:
    """Read the text or attribute a rule asks for. A missing attribute gives None."""
    if wanted_attr is None:
        if is_non_rec_text:
            return non_recursive_text(node)
        return node_text(node)

    value = node_attribute(node, wanted_attr)
    if value is None:
        return None
    if is_full_url:
        return url_join(url or "", value)
    return value


def _clamp(index: Optional[int], count: int) -> int:
    return min(count - 1, index or 0)


def _unique_nodes(nodes: List[Node]) -> List[Node]:
    seen = set()
    result = []
    for node in nodes:
        key = node_key(node)
        if key not in seen:
            seen.add(key)
            result.append(node)
    return result


class RuleMatcher:
    """Applies stacks to one document.

    ``positions`` maps node identity to document order and is used for
    result indexes when callers need order-preserving output.
    """

    def __init__(
        self,
        attr_fuzz_ratio: float = 1.0,
        keep_blank: bool = False,
        positions: Optional[Dict[int, int]] = None,
    ):
        self.attr_fuzz_ratio = attr_fuzz_ratio
        self.keep_blank = keep_blank
        self.positions = positions

    def selector_for(self, segment: PathSegment) -> Selector:
        return Selector(segment.tag, segment.attrs, self.attr_fuzz_ratio)

    def similar(
        self,
        stack: Stack,
        tree: Tree,
        url: str = "",
        contain_sibling_leaves: bool = False,
    ) -> List[MatchResult]:
        """Selector-based replay."""
        parents: List[Tree] = [tree]
        last = len(stack.content) - 1

        for i, segment in enumerate(stack.content):
            selector = self.selector_for(segment)
            children: List[Node] = []
            for parent in parents:
                found = selector.select(parent)
                if not found:
                    continue
                if i == last and not contain_sibling_leaves:
                    found = [found[_clamp(segment.index, len(found))]]
                children.extend(found)

            parents = _unique_nodes(children)
            if not parents:
                logger.debug("%s: no match for %s", stack.stack_id, selector)
                return []

        return self._results(stack, parents, url)

    def exact(self, stack: Stack, tree: Tree, url: str = "") -> List[MatchResult]:
        """Index-based replay; yields at most one result."""
        node = top_element(tree)
        if node is None:
            return []

        for segment in stack.content[1:]:
            found = self.selector_for(segment).select_children(node)
            if not found:
                logger.debug("%s: index descent stopped at %s", stack.stack_id, segment.tag)
                return []
            node = found[_clamp(segment.index, len(found))]

        return self._results(stack, [node], url)

    def match(self, stack: Stack, tree: Tree, url: str = "") -> List[MatchResult]:
        """Selector-based replay, falling back to index-based when it finds nothing."""
        results = self.similar(stack, tree, url)
        if not results:
            results = self.exact(stack, tree, url)
        return results

    def _results(self, stack: Stack, nodes: List[Node], url: str) -> List[MatchResult]:
        results = []
        for i, node in enumerate(nodes):
            text = extract_value(
                node,
                stack.wanted_attr,
                stack.is_full_url,
                url,
                stack.is_non_rec_text,
            )
            if text or self.keep_blank:
                index = self.positions.get(node_key(node), i) if self.positions else i
                results.append(MatchResult(text=text, index=index))
        return results
