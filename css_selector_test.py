import unittest

from css_selector import (
    ClassSelector,
    CompoundSelector,
    DescendantSelector,
    DirectDescendantSelector,
    IdSelector,
    MatchNode,
    SelectorEvaluationError,
    SelectorParsingException,
    TagSelector,
    compile_selector,
)


def node(tag, id="", classes=(), children=()):
    out = MatchNode(tag, id, list(classes))
    for child in children:
        child.parent = out
        out.children.append(child)
    return out


COMPILE_TEST_CASES = [
    ("tag", "h1", TagSelector("h1")),
    ("uppercase tag", "H1", TagSelector("h1")),
    ("class", ".green-text", ClassSelector("green-text")),
    ("id", "#title", IdSelector("title")),
    (
        "compound",
        "p.intro#first",
        CompoundSelector([TagSelector("p"), ClassSelector("intro"), IdSelector("first")]),
    ),
    ("descendant", "li p", DescendantSelector(TagSelector("li"), TagSelector("p"))),
    (
        "multi-level descendant",
        "li p a",
        DescendantSelector(DescendantSelector(TagSelector("li"), TagSelector("p")), TagSelector("a")),
    ),
    ("direct descendant", "li > p", DirectDescendantSelector(TagSelector("li"), TagSelector("p"))),
    (
        "direct and indirect descendant",
        "li>p span",
        DescendantSelector(DirectDescendantSelector(TagSelector("li"), TagSelector("p")), TagSelector("span")),
    ),
    ("escaped class", r".a\:hover", ClassSelector("a:hover")),
    ("hex escape", r"#\31 23", IdSelector("123")),
]

# matched against the root of the tree built in TestRootMatching.setUp
ROOT_MATCH_TEST_CASES = [
    ("div", True),
    ("DIV", True),
    ("p", False),
    ("*", True),
    ("#main", True),
    ("#other", False),
    (".card", True),
    (".card.wide", True),
    (".card.narrow", False),
    ("div#main.card", True),
    ("span#main", False),
    ("*.wide", True),
    ("[id]", True),
    ("[title]", False),
    ("[id=main]", True),
    ('[class~="wide"]', True),
    ("[class~=car]", False),
    ("[class^=car]", True),
    ("[class$=wide]", True),
    ('[class*="rd w"]', True),
    ("[id|=main]", True),
    ("[ID=MAIN i]", True),
    ("[id=MAIN]", False),
    ("[class^='']", False),
    (":not(.wide)", False),
    (":not(p)", True),
    (":not(p, span)", True),
    (":is(p, div)", True),
    (":where(.x)", False),
    (":has(> p)", True),
    (":has(a)", True),
    (":has(> a)", False),
    (":has(.intro a)", True),
    (":has(span + p)", False),
    (":has(p + span)", True),
    (":has(p ~ span)", True),
    (":has(.missing, a)", True),
    (":first-child", False),
    (":only-child", False),
    (":hover", False),
    ("div:focus-within", False),
    (":root", False),
    ("body div", False),
    ("body > div", False),
    ("div > p", False),
    ("p + div", False),
]

ERROR_TEST_CASES = [
    ("empty", ""),
    ("dangling combinator", "div >"),
    ("unclosed attribute", "a["),
    ("bare dot", "."),
    ("pseudo-element", "p::before"),
    ("legacy pseudo-element", "p:before"),
    ("unsupported pseudo-class", "li:nth-child(2)"),
    ("unknown pseudo-class", "p:bogus"),
    ("nested has", ":has(:has(a))"),
    ("unclosed not", ":not(p"),
    ("unclosed string", '[title="x]'),
    ("trailing garbage", "p)"),
]


class TestCompileSelector(unittest.TestCase):
    def test_compile(self):
        for title, input, ans in COMPILE_TEST_CASES:
            with self.subTest(title):
                self.assertEqual(compile_selector(input), ans)

    def test_errors(self):
        for title, input in ERROR_TEST_CASES:
            with self.subTest(title):
                with self.assertRaises(SelectorParsingException) as cm:
                    compile_selector(input)
                self.assertIsInstance(cm.exception, SelectorEvaluationError)


class TestRootMatching(unittest.TestCase):
    def setUp(self):
        self.link = node("a")
        self.intro = node("p", classes=["intro"], children=[self.link])
        self.title = node("span", "title")
        self.root = node("div", "main", ["card", "wide"], [self.intro, self.title])

    def test_matches_root(self):
        for selector, ans in ROOT_MATCH_TEST_CASES:
            with self.subTest(selector):
                self.assertEqual(compile_selector(selector).matches(self.root), ans)

    def test_matches_inside_tree(self):
        cases = [
            ("div p a", self.link, True),
            ("div > a", self.link, False),
            ("div > p > a", self.link, True),
            (".card a", self.link, True),
            ("#main .intro > a", self.link, True),
            ("p + span", self.title, True),
            ("p ~ span", self.title, True),
            ("span + p", self.intro, False),
            ("p:first-child", self.intro, True),
            ("span:last-child", self.title, True),
            ("a:only-child", self.link, True),
            ("p:only-child", self.intro, False),
        ]
        for selector, target, ans in cases:
            with self.subTest(selector):
                self.assertEqual(compile_selector(selector).matches(target), ans)

    def test_root_pseudo_class(self):
        self.assertTrue(compile_selector(":root").matches(node("html")))
        nested = node("html")
        node("div", children=[nested])
        self.assertFalse(compile_selector(":root").matches(nested))

    def test_escaped_class(self):
        self.assertTrue(compile_selector(r".md\:flex").matches(node("div", classes=["md:flex"])))


if __name__ == "__main__":
    unittest.main()
