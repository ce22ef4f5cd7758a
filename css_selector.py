from dataclasses import dataclass, field

UNIVERSAL_SELECTOR = "*"
ATTRIBUTE_OPERATORS = ["~=", "|=", "^=", "$=", "*=", "="]
STRUCTURAL_PSEUDO_CLASSES = ["first-child", "last-child", "only-child", "root"]
# user-action and form-state pseudo-classes: a static document never matches them
DYNAMIC_PSEUDO_CLASSES = [
    "hover", "active", "focus", "focus-within", "focus-visible", "visited",
    "link", "any-link", "target", "checked", "disabled", "enabled",
    "required", "optional", "valid", "invalid", "read-only", "read-write",
    "placeholder-shown", "indeterminate", "default",
]
LEGACY_PSEUDO_ELEMENTS = ["before", "after", "first-line", "first-letter"]


class SelectorEvaluationError(Exception):
    pass


class SelectorParsingException(SelectorEvaluationError):
    pass


@dataclass(eq=False)
class MatchNode:
    """The minimal element the selectors are evaluated against."""

    tag: str
    id: str = ""
    classes: list[str] = field(default_factory=list)
    children: list["MatchNode"] = field(default_factory=list)
    parent: "MatchNode | None" = field(default=None, repr=False)

    def attribute(self, name: str) -> str | None:
        if name == "id":
            return self.id or None
        if name == "class":
            return " ".join(self.classes) or None
        return None

    def siblings(self) -> list["MatchNode"]:
        return self.parent.children if self.parent else [self]

    def descendants(self):
        for child in self.children:
            yield child
            yield from child.descendants()


@dataclass
class TagSelector:
    tag: str

    def matches(self, node: MatchNode):
        return self.tag == UNIVERSAL_SELECTOR or self.tag == node.tag


@dataclass
class ClassSelector:
    class_selector: str

    def matches(self, node: MatchNode):
        return self.class_selector in node.classes


@dataclass
class IdSelector:
    id_selector: str

    def matches(self, node: MatchNode):
        return bool(node.id) and self.id_selector == node.id


@dataclass
class AttributeSelector:
    name: str
    operator: str | None = None
    value: str = ""
    ignore_case: bool = False

    def matches(self, node: MatchNode):
        actual = node.attribute(self.name)
        if actual is None:
            return False
        if self.operator is None:
            return True
        expected = self.value
        if self.ignore_case:
            actual, expected = actual.casefold(), expected.casefold()
        if self.operator == "=":
            return actual == expected
        if self.operator == "~=":
            return expected in actual.split()
        if self.operator == "|=":
            return actual == expected or actual.startswith(expected + "-")
        # an empty value never matches the substring operators
        if not expected:
            return False
        if self.operator == "^=":
            return actual.startswith(expected)
        if self.operator == "$=":
            return actual.endswith(expected)
        return expected in actual


@dataclass
class PseudoClassSelector:
    name: str

    def matches(self, node: MatchNode):
        if self.name in DYNAMIC_PSEUDO_CLASSES:
            return False
        if self.name == "root":
            return node.parent is None and node.tag == "html"
        # no sibling information above the projected root
        if node.parent is None:
            return False
        siblings = node.siblings()
        if self.name == "first-child":
            return siblings[0] is node
        if self.name == "last-child":
            return siblings[-1] is node
        return len(siblings) == 1


@dataclass
class NotSelector:
    selectors: list["Selector"]

    def matches(self, node: MatchNode):
        return not any(selector.matches(node) for selector in self.selectors)


@dataclass
class IsSelector:
    selectors: list["Selector"]

    def matches(self, node: MatchNode):
        return any(selector.matches(node) for selector in self.selectors)


@dataclass
class HasSelector:
    """:has() with relative selectors, as (combinator, selector) pairs."""

    selectors: list[tuple[str, "Selector"]]

    def matches(self, node: MatchNode):
        for combinator, selector in self.selectors:
            if combinator == " ":
                candidates = node.descendants()
            elif combinator == ">":
                candidates = node.children
            else:
                siblings = node.siblings()
                following = siblings[siblings.index(node) + 1:]
                candidates = following[:1] if combinator == "+" else following
            if any(selector.matches(candidate) for candidate in candidates):
                return True
        return False


@dataclass
class CompoundSelector:
    parts: list["Selector"]

    def matches(self, node: MatchNode):
        return all(part.matches(node) for part in self.parts)


@dataclass
class DescendantSelector:
    ancestor: "Selector"
    descendant: "Selector"

    def matches(self, node: MatchNode):
        if not self.descendant.matches(node):
            return False
        while node.parent:
            if self.ancestor.matches(node.parent):
                return True
            node = node.parent
        return False


@dataclass
class DirectDescendantSelector:
    ancestor: "Selector"
    descendant: "Selector"

    def matches(self, node: MatchNode):
        return self.descendant.matches(node) and node.parent is not None and self.ancestor.matches(node.parent)


@dataclass
class AdjacentSiblingSelector:
    previous: "Selector"
    selector: "Selector"

    def matches(self, node: MatchNode):
        if not self.selector.matches(node) or node.parent is None:
            return False
        siblings = node.siblings()
        index = siblings.index(node)
        return index > 0 and self.previous.matches(siblings[index - 1])


@dataclass
class GeneralSiblingSelector:
    previous: "Selector"
    selector: "Selector"

    def matches(self, node: MatchNode):
        if not self.selector.matches(node) or node.parent is None:
            return False
        siblings = node.siblings()
        return any(self.previous.matches(sibling) for sibling in siblings[:siblings.index(node)])


Selector = (
    TagSelector | ClassSelector | IdSelector | AttributeSelector | PseudoClassSelector
    | NotSelector | IsSelector | HasSelector | CompoundSelector | DescendantSelector
    | DirectDescendantSelector | AdjacentSiblingSelector | GeneralSiblingSelector
)

COMBINATOR_SELECTORS = {
    ">": DirectDescendantSelector,
    "+": AdjacentSiblingSelector,
    "~": GeneralSiblingSelector,
}


class SelectorParser:
    def __init__(self, text: str):
        self.text = text
        self.i = 0

    def parse(self) -> Selector:
        selector = self.complex_selector()
        self.whitespace()
        if self.i < len(self.text):
            raise SelectorParsingException(f"Unexpected '{self.text[self.i]}' in selector {self.text!r}")
        return selector

    def complex_selector(self) -> Selector:
        self.whitespace()
        out = self.compound_selector()
        while True:
            had_space = self.whitespace()
            char = self.peek()
            if char is None or char in ",)":
                return out
            if char in COMBINATOR_SELECTORS:
                self.i += 1
                self.whitespace()
                out = COMBINATOR_SELECTORS[char](out, self.compound_selector())
            elif had_space:
                out = DescendantSelector(out, self.compound_selector())
            else:
                raise SelectorParsingException(f"Unexpected '{char}' in selector {self.text!r}")

    def compound_selector(self) -> Selector:
        parts = []
        char = self.peek()
        if char == UNIVERSAL_SELECTOR:
            self.i += 1
            parts.append(TagSelector(UNIVERSAL_SELECTOR))
        elif char is not None and is_ident_start(char):
            parts.append(TagSelector(self.ident().casefold()))
        while self.peek() is not None and self.peek() in "#.[:":
            char = self.text[self.i]
            self.i += 1
            if char == "#":
                parts.append(IdSelector(self.ident()))
            elif char == ".":
                parts.append(ClassSelector(self.ident()))
            elif char == "[":
                parts.append(self.attribute())
            else:
                parts.append(self.pseudo_class())
        if not parts:
            raise SelectorParsingException(f"Expected a selector at position {self.i} in {self.text!r}")
        return parts[0] if len(parts) == 1 else CompoundSelector(parts)

    def attribute(self) -> AttributeSelector:
        self.whitespace()
        name = self.ident().casefold()
        self.whitespace()
        operator = next((op for op in ATTRIBUTE_OPERATORS if self.text.startswith(op, self.i)), None)
        value = ""
        ignore_case = False
        if operator:
            self.i += len(operator)
            self.whitespace()
            value = self.string() if self.peek() in ["'", '"'] else self.ident()
            self.whitespace()
            if self.peek() is not None and self.peek() in "iIsS":
                ignore_case = self.text[self.i] in "iI"
                self.i += 1
                self.whitespace()
        self.literal("]")
        return AttributeSelector(name, operator, value, ignore_case)

    def pseudo_class(self) -> Selector:
        if self.peek() == ":":
            raise SelectorParsingException(f"Pseudo-elements are not supported: {self.text!r}")
        name = self.ident().casefold()
        if self.peek() == "(":
            self.i += 1
            if name == "not":
                selector = NotSelector(self.selector_list())
            elif name in ["is", "where", "matches"]:
                selector = IsSelector(self.selector_list())
            elif name == "has":
                selector = HasSelector(self.relative_selector_list())
            else:
                raise SelectorParsingException(f"Unsupported pseudo-class :{name}()")
            self.whitespace()
            self.literal(")")
            return selector
        if name in LEGACY_PSEUDO_ELEMENTS:
            raise SelectorParsingException(f"Pseudo-elements are not supported: {self.text!r}")
        if name in STRUCTURAL_PSEUDO_CLASSES or name in DYNAMIC_PSEUDO_CLASSES:
            return PseudoClassSelector(name)
        raise SelectorParsingException(f"Unsupported pseudo-class :{name}")

    def selector_list(self) -> list[Selector]:
        selectors = [self.complex_selector()]
        while self.peek() == ",":
            self.i += 1
            selectors.append(self.complex_selector())
        return selectors

    def relative_selector_list(self) -> list[tuple[str, Selector]]:
        selectors = []
        while True:
            self.whitespace()
            combinator = " "
            if self.peek() is not None and self.peek() in COMBINATOR_SELECTORS:
                combinator = self.text[self.i]
                self.i += 1
            start = self.i
            selector = self.complex_selector()
            if "has(" in self.text[start:self.i]:
                raise SelectorParsingException(":has() cannot be nested")
            selectors.append((combinator, selector))
            if self.peek() != ",":
                return selectors
            self.i += 1

    def ident(self) -> str:
        out = ""
        while self.i < len(self.text):
            char = self.text[self.i]
            if char == "\\":
                out += self.escape()
            elif is_ident_start(char) or char.isdigit() or char == "-":
                out += char
                self.i += 1
            else:
                break
        if not out:
            raise SelectorParsingException(f"Expected a name at position {self.i} in {self.text!r}")
        return out

    def escape(self) -> str:
        self.i += 1
        hex_digits = ""
        while self.i < len(self.text) and len(hex_digits) < 6 and self.text[self.i] in "0123456789abcdefABCDEF":
            hex_digits += self.text[self.i]
            self.i += 1
        if hex_digits:
            if self.peek() is not None and self.peek().isspace():
                self.i += 1
            code = int(hex_digits, 16)
            return chr(code) if 0 < code <= 0x10FFFF else "�"
        if self.i >= len(self.text):
            raise SelectorParsingException(f"Dangling escape in {self.text!r}")
        self.i += 1
        return self.text[self.i - 1]

    def string(self) -> str:
        quote = self.text[self.i]
        end = self.text.find(quote, self.i + 1)
        if end == -1:
            raise SelectorParsingException(f"Unclosed string in {self.text!r}")
        value = self.text[self.i + 1:end]
        self.i = end + 1
        return value

    def whitespace(self) -> bool:
        start = self.i
        while self.i < len(self.text) and self.text[self.i].isspace():
            self.i += 1
        return self.i > start

    def literal(self, literal):
        if self.peek() != literal:
            raise SelectorParsingException(f"Missing '{literal}' in selector {self.text!r}")
        self.i += 1

    def peek(self) -> str | None:
        return self.text[self.i] if self.i < len(self.text) else None


def is_ident_start(char: str) -> bool:
    return char.isalpha() or char in "_-\\" or ord(char) > 127


def compile_selector(text: str) -> Selector:
    return SelectorParser(text).parse()
