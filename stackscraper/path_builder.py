"""
Turns a matched node into a stack describing how to find it again.
"""

import logging
from typing import Dict, List, Optional
from selectolax.parser import Node
from .models import PathSegment, Stack, new_stack_id
from .parser import Selector, node_attribute, node_key, parent_element


logger = logging.getLogger(__name__)

# stable and discriminating without pinning ids or inline data
FINGERPRINT_ATTRS = ("class", "style")


def fingerprint(node: Node) -> Dict[str, str]:
    return {attr: node_attribute(node, attr) or "" for attr in FINGERPRINT_ATTRS}


def sibling_index(node: Node, parent: Node) -> int:
    """Position of ``node`` among the parent's children sharing its tag and fingerprint."""
    selector = Selector(node.tag, fingerprint(node))
    own = node_key(node)
    for i, sibling in enumerate(selector.select_children(parent)):
        if node_key(sibling) == own:
            return i
    return 0


def build_content(node: Node) -> List[PathSegment]:
    """Path segments from the top-level element down to ``node``."""
    segments: List[PathSegment] = []
    current = node
    while True:
        parent = parent_element(current)
        if parent is None:
            segments.append(PathSegment(tag=current.tag, attrs=fingerprint(current)))
            break
        segments.append(
            PathSegment(
                tag=current.tag,
                attrs=fingerprint(current),
                index=sibling_index(current, parent),
            )
        )
        current = parent
    segments.reverse()
    return segments


def build_stack(
    node: Node,
    url: Optional[str] = None,
    wanted_attr: Optional[str] = None,
    is_full_url: bool = False,
    is_non_rec_text: bool = False,
    alias: str = "",
) -> Stack:
    """
    Build the rule that re-locates ``node``.

    Args:
        node: Element the wanted value was found on
        url: Page URL; kept on the rule only when it extracts a full URL
        wanted_attr: Attribute holding the value, or None for text
        is_full_url: Resolve the attribute value against the URL on replay
        is_non_rec_text: Read only the node's direct text
        alias: Label shared by rules for the same field

    Returns:
        A new stack with a fresh ``stack_id``
    """
    stack = Stack(
        content=build_content(node),
        wanted_attr=wanted_attr,
        is_full_url=is_full_url,
        is_non_rec_text=is_non_rec_text,
        source_url=(url or "") if is_full_url else "",
        stack_id=new_stack_id(),
        alias=alias,
    )
    logger.debug("Built %s with %d segments", stack.stack_id, len(stack.content))
    return stack
