"""Finds the stylesheet rules that apply to one element.

Matching is scoped to the element's own subtree: the synthetic tree built by
project() holds the selected element and its descendants only, never its
ancestors or siblings. A selector such as ".card span" therefore does not
match the span even when the span sits inside a .card in the document, and
neither do sibling combinators or :first-child on the selected element. The
selection arrives as a bare index into a flat element list, which carries
no ancestor context to do better.
"""

import sys
from constants import NO_STYLESHEET_PLACEHOLDER
from css_parser import Rule, Stylesheet, parse_stylesheet
from css_selector import MatchNode, SelectorEvaluationError, compile_selector


def project(element, parent: MatchNode | None = None) -> MatchNode:
    """Builds the synthetic subtree rooted at element.

    Accepts anything with tag, attributes and children; child nodes without
    a tag (text) are left out.
    """
    node = MatchNode(
        element.tag.casefold(),
        element.attributes.get("id", ""),
        element.attributes.get("class", "").split(),
        parent=parent,
    )
    node.children = [
        project(child, node)
        for child in element.children
        if getattr(child, "tag", None) is not None
    ]
    return node


def selector_matches(selector: str, node: MatchNode) -> bool:
    try:
        return compile_selector(selector).matches(node)
    except SelectorEvaluationError as e:
        print("Error matching selector", selector, e, file=sys.stderr)
        return False


def match_rules(stylesheet: Stylesheet, element) -> list[Rule]:
    root = project(element)
    return [
        rule
        for rule in stylesheet.rules
        if rule.type == "rule" and any(selector_matches(selector, root) for selector in rule.selectors)
    ]


def filter_css_for_element(css: str | None, element) -> str:
    """Returns the css text of the rules matching element, ready for editing.

    Raises StylesheetParseError when css doesn't parse.
    """
    if css is None:
        return NO_STYLESHEET_PLACEHOLDER
    return Stylesheet(match_rules(parse_stylesheet(css), element)).stringify()
