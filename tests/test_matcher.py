"""Tests for rule replay and value extraction."""

from stackscraper.matcher import RuleMatcher, extract_value
from stackscraper.models import Stack
from stackscraper.parser import Selector, document_positions, parse_html


def make_stack(*segments, **fields):
    return Stack(content=list(segments), stack_id="rule_test", **fields)


HTML = ["html", {"class": "", "style": ""}]


def body(index=0):
    return ["body", {"class": "", "style": ""}, index]


class TestExtractValue:

    def test_text(self):
        tree = parse_html('<div class="test">Test Content</div>')

        assert extract_value(tree.css(".test")[0]) == "Test Content"

    def test_non_recursive_text(self):
        tree = parse_html('<div class="test"><span>Test</span>Content</div>')
        node = tree.css(".test")[0]

        assert extract_value(node) == "TestContent"
        assert extract_value(node, is_non_rec_text=True) == "Content"

    def test_attribute(self):
        tree = parse_html('<a href="/a" title="Go">text</a>')
        node = tree.css("a")[0]

        assert extract_value(node, wanted_attr="title") == "Go"
        assert extract_value(node, wanted_attr="href") == "/a"

    def test_missing_attribute_is_none(self):
        tree = parse_html("<a>text</a>")

        assert extract_value(tree.css("a")[0], wanted_attr="href") is None

    def test_full_url(self):
        tree = parse_html('<a href="/a">text</a>')

        value = extract_value(tree.css("a")[0], "href", True, "http://example.com")

        assert value == "http://example.com/a"


class TestSelector:

    def test_renders_css(self):
        selector = Selector("div", {"class": "x", "style": ""})

        assert selector.css() == 'div[class="x"]'
        assert not selector.is_fuzzy

    def test_exact_select_from_document(self, two_divs):
        tree = parse_html(two_divs)

        found = Selector("div", {"class": "x", "style": ""}).select(tree)

        assert [node.text() for node in found] == ["A", "B"]

    def test_exact_select_below_node_skips_the_node(self):
        tree = parse_html('<html><body><div class="x">outer<div class="x">inner</div></div></body></html>')
        outer = tree.css("div")[0]

        found = Selector("div", {"class": "x", "style": ""}).select(outer)

        assert [node.text() for node in found] == ["inner"]

    def test_fuzzy_select(self):
        tree = parse_html('<html><body><div class="items">A</div><div class="other">B</div></body></html>')
        selector = Selector("div", {"class": "itemz", "style": ""}, ratio=0.8)

        assert selector.is_fuzzy
        assert [node.text() for node in selector.select(tree)] == ["A"]


class TestSimilar:

    def test_narrows_to_recorded_index(self, two_divs):
        tree = parse_html(two_divs)
        stack = make_stack(HTML, body(), ["div", {"class": "x", "style": ""}, 1])

        results = RuleMatcher().similar(stack, tree)

        assert [r.text for r in results] == ["B"]

    def test_index_is_clamped(self, two_divs):
        tree = parse_html(two_divs)
        stack = make_stack(HTML, body(), ["div", {"class": "x", "style": ""}, 5])

        results = RuleMatcher().similar(stack, tree)

        assert [r.text for r in results] == ["B"]

    def test_sibling_leaves(self, two_divs):
        tree = parse_html(two_divs)
        stack = make_stack(HTML, body(), ["div", {"class": "x", "style": ""}, 0])

        results = RuleMatcher().similar(stack, tree, contain_sibling_leaves=True)

        assert [r.text for r in results] == ["A", "B"]

    def test_no_match_is_empty(self, two_divs):
        tree = parse_html(two_divs)
        stack = make_stack(HTML, body(), ["section", {"class": "", "style": ""}, 0])

        assert RuleMatcher().similar(stack, tree) == []

    def test_tolerates_extra_siblings(self):
        tree = parse_html(
            '<html><body><div class="x">A</div><div class="x">B</div><div class="x">C</div></body></html>'
        )
        stack = make_stack(HTML, body(), ["div", {"class": "x", "style": ""}, 1])

        assert [r.text for r in RuleMatcher().similar(stack, tree)] == ["B"]

    def test_fuzzy_attributes(self):
        tree = parse_html('<html><body><div class="items">A</div></body></html>')
        stack = make_stack(HTML, body(), ["div", {"class": "itemz", "style": ""}, 0])

        assert RuleMatcher().similar(stack, tree) == []
        assert [r.text for r in RuleMatcher(attr_fuzz_ratio=0.8).similar(stack, tree)] == ["A"]

    def test_blank_values(self):
        tree = parse_html('<html><body><a class="l">go</a></body></html>')
        stack = make_stack(HTML, body(), ["a", {"class": "l", "style": ""}, 0], wanted_attr="href")

        assert RuleMatcher().similar(stack, tree) == []
        results = RuleMatcher(keep_blank=True).similar(stack, tree)
        assert [r.text for r in results] == [None]

    def test_positions_follow_document_order(self, two_divs):
        tree = parse_html(two_divs)
        positions = document_positions(tree)
        stack = make_stack(HTML, body(), ["div", {"class": "x", "style": ""}, 1])

        results = RuleMatcher(positions=positions).similar(stack, tree)

        # html, head, body, div, div
        assert results[0].index == 4


class TestExact:

    def test_descends_by_index(self, two_divs):
        tree = parse_html(two_divs)
        stack = make_stack(HTML, body(), ["div", {"class": "x", "style": ""}, 1])

        assert [r.text for r in RuleMatcher().exact(stack, tree)] == ["B"]

    def test_index_is_clamped(self, two_divs):
        tree = parse_html(two_divs)
        stack = make_stack(HTML, body(7), ["div", {"class": "x", "style": ""}, 9])

        assert [r.text for r in RuleMatcher().exact(stack, tree)] == ["B"]

    def test_missing_level_aborts(self, two_divs):
        tree = parse_html(two_divs)
        stack = make_stack(HTML, body(), ["section", {"class": "", "style": ""}, 0], ["div", {"class": "x"}, 0])

        assert RuleMatcher().exact(stack, tree) == []

    def test_only_direct_children(self):
        tree = parse_html('<html><body><div class="wrap"><p>deep</p></div></body></html>')
        stack = make_stack(HTML, body(), ["p", {"class": "", "style": ""}, 0])

        assert RuleMatcher().exact(stack, tree) == []
        assert [r.text for r in RuleMatcher().similar(stack, tree)] == ["deep"]


class TestMatch:

    def test_falls_back_to_index_based(self):
        # descendant query picks the empty nested span, child descent picks "B"
        tree = parse_html(
            '<html><body><div class="box"><span><span></span></span><span>B</span></div></body></html>'
        )
        stack = make_stack(
            HTML,
            body(),
            ["div", {"class": "box", "style": ""}, 0],
            ["span", {"class": "", "style": ""}, 1],
        )
        matcher = RuleMatcher()

        assert matcher.similar(stack, tree) == []
        assert [r.text for r in matcher.match(stack, tree)] == ["B"]

    def test_prefers_selector_based(self, two_divs):
        tree = parse_html(two_divs)
        stack = make_stack(HTML, body(), ["div", {"class": "x", "style": ""}, 0])

        assert [r.text for r in RuleMatcher().match(stack, tree)] == ["A"]
