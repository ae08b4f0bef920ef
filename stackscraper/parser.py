from html import unescape
from typing import Dict, List, Optional, Union
from selectolax.parser import HTMLParser, Node
from .fuzzy import Fuzzy, attribute_matches, fingerprint_matchers, normalize


Tree = Union[HTMLParser, Node]

# text, comment, doctype and document nodes carry one of these tag prefixes
_NON_ELEMENT_PREFIXES = ("-", "#", "_", "!")


def prepare_markup(html: str) -> str:
    """Decode entities and collapse whitespace before parsing."""
    return normalize(unescape(html))


def parse_html(html: str) -> HTMLParser:
    """Parse markup into a queryable tree."""
    return HTMLParser(prepare_markup(html))


def is_element(node: Optional[Node]) -> bool:
    if node is None:
        return False
    tag = node.tag
    return bool(tag) and not tag.startswith(_NON_ELEMENT_PREFIXES)


def node_key(node: Node) -> int:
    """Identity of a node inside its tree; wrapper objects are not stable."""
    return node.mem_id


def top_element(tree: Tree) -> Optional[Node]:
    """The document's single top-level element (``html``)."""
    if isinstance(tree, HTMLParser):
        return tree.root
    return tree


def parent_element(node: Node) -> Optional[Node]:
    parent = node.parent
    return parent if is_element(parent) else None


def ancestors(node: Node) -> List[Node]:
    """Element ancestors, nearest first. The document node is not included."""
    chain = []
    parent = parent_element(node)
    while parent is not None:
        chain.append(parent)
        parent = parent_element(parent)
    return chain


def element_children(node: Node) -> List[Node]:
    return [child for child in node.iter(include_text=False) if is_element(child)]


def descendants(tree: Tree) -> List[Node]:
    """Elements below ``tree`` in document order.

    A parsed document yields every element, starting with ``html``; a node
    yields its descendants only.
    """
    if isinstance(tree, HTMLParser):
        root = tree.root
        if root is None:
            return []
        return [root] + descendants(root)
    own = node_key(tree)
    return [node for node in tree.css("*") if is_element(node) and node_key(node) != own]


def node_attributes(node: Node) -> Dict[str, str]:
    return {key: "" if value is None else value for key, value in node.attributes.items()}


def node_attribute(node: Node, name: str) -> Optional[str]:
    attributes = node.attributes
    if name not in attributes:
        return None
    value = attributes[name]
    return "" if value is None else value


def node_text(node: Node) -> str:
    """Whole-subtree text, whitespace collapsed."""
    return normalize(node.text(deep=True))


def non_recursive_text(node: Node) -> str:
    """Concatenated direct text-node children, trimmed."""
    return node.text(deep=False).strip()


def build_attribute_selector(attrs: Dict[str, str]) -> str:
    """Render ``[attr="value"]`` for every non-empty fingerprint entry."""
    parts = []
    for key, value in attrs.items():
        if value:
            escaped = value.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'[{key}="{escaped}"]')
    return "".join(parts)


class Selector:
    """Tag plus attribute matchers, rendered as a CSS compound selector."""

    def __init__(self, tag: str, attrs: Dict[str, str], ratio: float = 1.0):
        self.tag = tag
        self.attrs = attrs
        self.matchers = fingerprint_matchers(attrs, ratio)

    def css(self) -> str:
        return self.tag + build_attribute_selector(self.attrs)

    def matches(self, node: Node) -> bool:
        if node.tag != self.tag:
            return False
        for key, matcher in self.matchers.items():
            if not attribute_matches(matcher, node_attribute(node, key)):
                return False
        return True

    @property
    def is_fuzzy(self) -> bool:
        return any(isinstance(matcher, Fuzzy) for matcher in self.matchers.values())

    def select(self, tree: Tree) -> List[Node]:
        """Matching descendants of ``tree`` in document order."""
        if self.is_fuzzy:
            return [node for node in descendants(tree) if self.matches(node)]
        found = tree.css(self.css())
        if isinstance(tree, HTMLParser):
            return found
        # a node's own css() may include the node itself
        own = node_key(tree)
        return [node for node in found if node_key(node) != own]

    def select_children(self, node: Node) -> List[Node]:
        """Matching direct children of ``node``."""
        return [child for child in element_children(node) if self.matches(child)]

    def __repr__(self) -> str:
        return f"Selector({self.css()!r})"


def document_positions(tree: Tree) -> Dict[int, int]:
    """Side table of node identity to document order, built once per extraction."""
    return {node_key(node): i for i, node in enumerate(descendants(tree))}
