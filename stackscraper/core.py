import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from pydantic import BaseModel
from selectolax.parser import HTMLParser, Node
from .config import ScraperSettings
from .errors import InvalidURLError
from .fetcher import PageFetcher
from .fuzzy import normalize, text_match, url_join
from .matcher import RuleMatcher
from .models import GroupBy, MatchResult, Stack
from .parser import (
    Tree,
    ancestors,
    descendants,
    document_positions,
    node_attributes,
    node_key,
    node_text,
    non_recursive_text,
    parent_element,
    parse_html,
)
from .path_builder import build_stack
from .rules import RuleStore
from .user_agents import UserAgentPool


logger = logging.getLogger(__name__)

Result = Union[List[Optional[str]], Dict[str, List[Optional[str]]]]
Strategy = Callable[[RuleMatcher, Stack, Tree, str], List[MatchResult]]

URL_ATTRS = ("href", "src")


def unique_hashable(items: List) -> List:
    """Drop repeated items, keeping the first occurrence."""
    seen = set()
    result = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        result.append(item)
    return result


class CandidateMatch(BaseModel):
    """How a wanted value was found on a node during one build call."""
    wanted_attr: Optional[str] = None
    is_full_url: bool = False
    is_non_rec_text: bool = False


class AutoScraper:
    """Learns extraction rules from example values and replays them on similar pages."""

    def __init__(
        self,
        stack_list: Optional[List[Union[Stack, Dict[str, Any]]]] = None,
        user_agent: Optional[str] = None,
        settings: Optional[ScraperSettings] = None,
        fetcher: Optional[PageFetcher] = None,
    ):
        self.settings = settings or ScraperSettings.from_env()
        self.rules = RuleStore(stack_list)
        self.fetcher = fetcher or PageFetcher(
            user_agents=UserAgentPool(self.settings.user_agents),
            user_agent=user_agent,
            timeout=self.settings.request_timeout,
        )

    @property
    def stack_list(self) -> List[Stack]:
        return self.rules.stacks

    @stack_list.setter
    def stack_list(self, value: List[Union[Stack, Dict[str, Any]]]) -> None:
        self.rules.stacks = value

    def save(self, file_path: Union[str, Path]) -> None:
        self.rules.save(file_path)

    def load(self, file_path: Union[str, Path]) -> None:
        self.rules = RuleStore.load(file_path)

    def get_css_selector(self) -> str:
        return self.rules.css_selector()

    def remove_rules(self, rule_ids: List[str]) -> None:
        self.rules.remove_rules(rule_ids)

    def keep_rules(self, rule_ids: List[str]) -> None:
        self.rules.keep_rules(rule_ids)

    def set_rule_aliases(self, rule_aliases: Dict[str, str]) -> None:
        self.rules.set_rule_aliases(rule_aliases)

    def get_tree(
        self,
        url: Optional[str] = None,
        html: Optional[str] = None,
        request_args: Optional[Dict[str, Any]] = None,
    ) -> HTMLParser:
        """Parse ``html`` if given, otherwise fetch and parse ``url``."""
        if html:
            return parse_html(html)
        if not url:
            raise InvalidURLError("Either url or html is required")
        return parse_html(self.fetcher.fetch(url, request_args))

    def child_has_text(
        self,
        node: Node,
        text: str,
        url: Optional[str] = None,
        text_fuzz_ratio: float = 1.0,
    ) -> Optional[CandidateMatch]:
        """Check whether ``node`` carries ``text`` in its text, direct text or an attribute."""
        child_text = node_text(node)
        if text_match(text, child_text, text_fuzz_ratio):
            parent = parent_element(node)
            if parent is not None:
                parent_text = node_text(parent)
                # same text as the parent: the parent is the candidate
                if child_text == parent_text and len(ancestors(node)) > 1:
                    return None
            return CandidateMatch()

        if text_match(text, non_recursive_text(node), text_fuzz_ratio):
            return CandidateMatch(is_non_rec_text=True)

        for key, value in node_attributes(node).items():
            value = value.strip()
            if text_match(text, value, text_fuzz_ratio):
                return CandidateMatch(wanted_attr=key)

            if key in URL_ATTRS and url:
                full_url = url_join(url, value)
                if text_match(text, full_url, text_fuzz_ratio):
                    return CandidateMatch(wanted_attr=key, is_full_url=True)

        return None

    def find_candidates(
        self,
        tree: Tree,
        text: str,
        url: Optional[str] = None,
        text_fuzz_ratio: float = 1.0,
    ) -> List[Tuple[Node, CandidateMatch]]:
        """Nodes carrying ``text``, deepest first."""
        found: Dict[int, CandidateMatch] = {}
        nodes: List[Node] = []
        for node in descendants(tree):
            match = self.child_has_text(node, text, url, text_fuzz_ratio)
            if match is not None:
                found[node_key(node)] = match
                nodes.append(node)

        nodes.reverse()
        return [(node, found[node_key(node)]) for node in nodes]

    def build(
        self,
        url: Optional[str] = None,
        wanted_list: Optional[List[str]] = None,
        wanted_dict: Optional[Dict[str, List[str]]] = None,
        html: Optional[str] = None,
        request_args: Optional[Dict[str, Any]] = None,
        update: bool = False,
        text_fuzz_ratio: float = 1.0,
    ) -> List[Optional[str]]:
        """
        Learn rules for the wanted values and return what they extract.

        Args:
            url: Page to fetch, and base for resolving relative links
            wanted_list: Example values, learned under the empty alias
            wanted_dict: Alias -> example values
            html: Markup to use instead of fetching ``url``
            request_args: ``headers`` plus query parameters for the fetch
            update: Keep the existing rules and append to them
            text_fuzz_ratio: Similarity needed for a node to count as a match

        Returns:
            Extracted values, duplicates removed, in first-seen order
        """
        tree = self.get_tree(url, html, request_args)

        if not update:
            self.rules.clear()

        if wanted_list:
            wanted_dict = {"": wanted_list}

        matcher = RuleMatcher()
        result_list: List[MatchResult] = []

        for alias, wanted_items in (wanted_dict or {}).items():
            for wanted in (normalize(w) for w in wanted_items):
                # blank text would match every empty element
                if not wanted:
                    logger.debug("Skipping blank wanted value for alias %r", alias)
                    continue
                candidates = self.find_candidates(tree, wanted, url, text_fuzz_ratio)
                logger.debug("%d candidate nodes for %r", len(candidates), wanted)
                for node, match in candidates:
                    stack = build_stack(
                        node,
                        url,
                        wanted_attr=match.wanted_attr,
                        is_full_url=match.is_full_url,
                        is_non_rec_text=match.is_non_rec_text,
                        alias=alias,
                    )
                    result_list.extend(matcher.match(stack, tree, url or ""))
                    self.rules.add(stack)

        self.rules.dedup()
        values = unique_hashable([item.text for item in result_list])
        logger.info("Built %d rules, %d values", len(self.rules), len(values))
        return values

    def get_result_similar(
        self,
        url: Optional[str] = None,
        html: Optional[str] = None,
        tree: Optional[Tree] = None,
        request_args: Optional[Dict[str, Any]] = None,
        group_by: Union[GroupBy, str] = GroupBy.NONE,
        unique: Optional[bool] = None,
        attr_fuzz_ratio: float = 1.0,
        keep_blank: bool = False,
        keep_order: bool = False,
        contain_sibling_leaves: bool = False,
    ) -> Result:
        """Replay every rule with selector-based matching."""

        def strategy(matcher: RuleMatcher, stack: Stack, doc: Tree, stack_url: str) -> List[MatchResult]:
            return matcher.similar(stack, doc, stack_url, contain_sibling_leaves=contain_sibling_leaves)

        return self._get_result_by_func(
            strategy,
            url=url,
            html=html,
            tree=tree,
            request_args=request_args,
            group_by=group_by,
            unique=unique,
            attr_fuzz_ratio=attr_fuzz_ratio,
            keep_blank=keep_blank,
            keep_order=keep_order,
        )

    def get_result_exact(
        self,
        url: Optional[str] = None,
        html: Optional[str] = None,
        tree: Optional[Tree] = None,
        request_args: Optional[Dict[str, Any]] = None,
        group_by: Union[GroupBy, str] = GroupBy.NONE,
        unique: Optional[bool] = None,
        attr_fuzz_ratio: float = 1.0,
        keep_blank: bool = False,
    ) -> Result:
        """Replay every rule with index-based matching."""

        def strategy(matcher: RuleMatcher, stack: Stack, doc: Tree, stack_url: str) -> List[MatchResult]:
            return matcher.exact(stack, doc, stack_url)

        return self._get_result_by_func(
            strategy,
            url=url,
            html=html,
            tree=tree,
            request_args=request_args,
            group_by=group_by,
            unique=unique,
            attr_fuzz_ratio=attr_fuzz_ratio,
            keep_blank=keep_blank,
        )

    def get_result(
        self,
        url: Optional[str] = None,
        html: Optional[str] = None,
        request_args: Optional[Dict[str, Any]] = None,
        group_by: Union[GroupBy, str] = GroupBy.NONE,
        unique: Optional[bool] = None,
        attr_fuzz_ratio: float = 1.0,
    ) -> Tuple[Result, Result]:
        """Both strategies over a single fetch: ``(similar, exact)``."""
        tree = self.get_tree(url, html, request_args)
        args = dict(
            url=url,
            tree=tree,
            group_by=group_by,
            unique=unique,
            attr_fuzz_ratio=attr_fuzz_ratio,
        )
        similar = self.get_result_similar(**args)
        exact = self.get_result_exact(**args)
        return similar, exact

    def _get_result_by_func(
        self,
        strategy: Strategy,
        url: Optional[str] = None,
        html: Optional[str] = None,
        tree: Optional[Tree] = None,
        request_args: Optional[Dict[str, Any]] = None,
        group_by: Union[GroupBy, str] = GroupBy.NONE,
        unique: Optional[bool] = None,
        attr_fuzz_ratio: float = 1.0,
        keep_blank: bool = False,
        keep_order: bool = False,
    ) -> Result:
        if tree is None:
            tree = self.get_tree(url, html, request_args)
        group_by = GroupBy(group_by)

        positions = None
        if group_by is GroupBy.ALIAS or keep_order:
            positions = document_positions(tree)

        matcher = RuleMatcher(attr_fuzz_ratio=attr_fuzz_ratio, keep_blank=keep_blank, positions=positions)
        result_list: List[MatchResult] = []
        grouped: Dict[str, List[MatchResult]] = {}

        for stack in self.rules:
            results = strategy(matcher, stack, tree, url or stack.source_url)
            if group_by is GroupBy.NONE:
                result_list.extend(results)
                continue
            group_id = stack.alias if group_by is GroupBy.ALIAS else stack.stack_id
            grouped.setdefault(group_id, []).extend(results)

        logger.info("Replayed %d rules", len(self.rules))
        return self._clean_result(result_list, grouped, group_by, unique, keep_order)

    @staticmethod
    def _clean_result(
        result_list: List[MatchResult],
        grouped: Dict[str, List[MatchResult]],
        group_by: GroupBy,
        unique: Optional[bool],
        keep_order: bool,
    ) -> Result:
        if group_by is GroupBy.NONE:
            if unique is None:
                unique = True
            if keep_order:
                result_list = sorted(result_list, key=lambda item: item.index)
            values = [item.text for item in result_list]
            return unique_hashable(values) if unique else values

        cleaned: Dict[str, List[Optional[str]]] = {}
        for group_id, items in grouped.items():
            if group_by is GroupBy.ALIAS or keep_order:
                items = sorted(items, key=lambda item: item.index)
            values = [item.text for item in items]
            cleaned[group_id] = unique_hashable(values) if unique else values
        return cleaned
