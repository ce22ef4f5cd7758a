"""Writes edited rules back into the stylesheets they came from.

A rule is identified only by its selector group, so editing a selector
(".a" to ".a, .b") makes an edited rule that no longer finds its original:
it is appended as a new rule and the original stays.

When a selector group appears more than once, the edited rules with that
key are paired in order with the original rules with that key. Putting the
matched rules back unchanged therefore leaves every duplicate as it was.
"""

import copy
import sys
from collections import Counter
from css_parser import Rule, Stylesheet, normalize_selector, parse_stylesheet


def selector_key(rule: Rule) -> str:
    return ", ".join(normalize_selector(selector) for selector in rule.selectors if selector.strip())


def rule_positions(rules: list) -> dict[str, list[int]]:
    """Maps each selector key to the indexes of its style rules, in order."""
    positions = {}
    for index, rule in enumerate(rules):
        if rule.type == "rule":
            positions.setdefault(selector_key(rule), []).append(index)
    return positions


def edited_rules(edited: Stylesheet) -> list[tuple[str, Rule]]:
    """Returns the mergeable (key, rule) pairs of edited, in order."""
    keyed = []
    for rule in edited.rules:
        if rule.type != "rule":
            print("Ignoring", rule.type, "in edited css:", rule.stringify(), file=sys.stderr)
            continue
        key = selector_key(rule)
        if not key:
            print("Dropping edited rule without selectors:", rule.stringify(), file=sys.stderr)
            continue
        keyed.append((key, rule))
    return keyed


def merge(original: Stylesheet, edited: Stylesheet) -> Stylesheet:
    """Replaces original rules in place by selector key and appends the new ones.

    The n-th edited rule with a key replaces the n-th original rule with that
    key. Edited rules left over once the originals run out are appended.
    Neither argument is modified.
    """
    rules = list(original.rules)
    positions = rule_positions(rules)
    seen = Counter()
    for key, rule in edited_rules(edited):
        n = seen[key]
        seen[key] += 1
        if n < len(positions.get(key, [])):
            rules[positions[key][n]] = copy.deepcopy(rule)
        else:
            rules.append(copy.deepcopy(rule))
    return Stylesheet(rules)


def merge_css(original: str, edited: str) -> str:
    return merge(parse_stylesheet(original), parse_stylesheet(edited)).stringify()


def merge_all(originals: dict[str, Stylesheet], edited: Stylesheet, fallback: str) -> dict[str, Stylesheet]:
    """Merges edited into several stylesheets at once.

    A key edited once updates its first rule in every stylesheet that has
    it. A key edited several times is paired in order with its rules across
    the stylesheets, taken in the order of originals. Rules with no original
    to replace go into fallback alone. Only the stylesheets that received a
    rule are returned, keyed like originals.
    """
    merged = {path: list(stylesheet.rules) for path, stylesheet in originals.items()}
    found = {}
    for path, rules in merged.items():
        for key, indexes in rule_positions(rules).items():
            found.setdefault(key, []).extend((path, index) for index in indexes)
    keyed = edited_rules(edited)
    totals = Counter(key for key, _ in keyed)
    seen = Counter()
    affected = []
    for key, rule in keyed:
        n = seen[key]
        seen[key] += 1
        occurrences = found.get(key, [])
        if totals[key] == 1 and occurrences:
            firsts = {}
            for path, index in occurrences:
                firsts.setdefault(path, index)
            targets = list(firsts.items())
        elif n < len(occurrences):
            targets = [occurrences[n]]
        elif fallback in merged:
            targets = [(fallback, None)]
        else:
            print("Dropping new rule", key, "because", fallback, "is unavailable", file=sys.stderr)
            continue
        for path, index in targets:
            if index is None:
                merged[path].append(copy.deepcopy(rule))
            else:
                merged[path][index] = copy.deepcopy(rule)
            if path not in affected:
                affected.append(path)
    return {path: Stylesheet(merged[path]) for path in originals if path in affected}
