from dataclasses import dataclass, field
from typing import ClassVar
from constants import CSS_INDENT
from errors import StylesheetParseError

COMBINATORS = ">+~"
OPEN_BRACKETS = {"(": ")", "[": "]"}
QUOTES = ["'", '"']
HEX_DIGITS = "0123456789abcdefABCDEF"


@dataclass
class Comment:
    text: str
    type: ClassVar[str] = "comment"

    def stringify(self, indent=""):
        return f"{indent}/*{self.text}*/"


@dataclass
class Declaration:
    name: str
    value: str
    type: ClassVar[str] = "declaration"

    def stringify(self, indent=""):
        return f"{indent}{self.name}: {self.value};"


@dataclass
class Rule:
    selectors: list[str]
    declarations: list[Declaration | Comment] = field(default_factory=list)
    type: ClassVar[str] = "rule"

    def stringify(self):
        lines = [", ".join(self.selectors) + " {"]
        lines.extend(declaration.stringify(CSS_INDENT) for declaration in self.declarations)
        lines.append("}")
        return "\n".join(lines)


@dataclass
class AtRule:
    """An at-rule kept verbatim. block is None for statements like @import."""

    name: str
    prelude: str = ""
    block: str | None = None
    type: ClassVar[str] = "at-rule"

    def stringify(self):
        head = f"@{self.name} {self.prelude}" if self.prelude else f"@{self.name}"
        if self.block is None:
            return head + ";"
        return head + " {" + self.block + "}"


StylesheetNode = Rule | AtRule | Comment


@dataclass
class Stylesheet:
    rules: list[StylesheetNode] = field(default_factory=list)

    def style_rules(self) -> list[Rule]:
        return [rule for rule in self.rules if rule.type == "rule"]

    def stringify(self) -> str:
        if not self.rules:
            return ""
        return "\n\n".join(rule.stringify() for rule in self.rules) + "\n"


class CSSParser:
    def __init__(self, style):
        self.style = style
        self.i = 0

    def parse(self) -> Stylesheet:
        rules = []
        while True:
            self.whitespace()
            if self.i >= len(self.style):
                break
            if self.style.startswith("/*", self.i):
                rules.append(self.comment())
            elif self.style.startswith("<!--", self.i) or self.style.startswith("-->", self.i):
                # legacy html comment markers around embedded styles
                self.i += 4 if self.style[self.i] == "<" else 3
            elif self.style[self.i] == "@":
                rules.append(self.at_rule())
            elif self.style[self.i] == "}":
                raise self.error("Unexpected '}'")
            else:
                rules.append(self.rule())
        return Stylesheet(rules)

    def rule(self) -> Rule:
        start = self.i
        prelude = self.until(["{", ";", "}"])
        if self.i >= len(self.style) or self.style[self.i] != "{":
            self.i = start
            raise self.error("Selector without a declaration block")
        selectors = split_selectors(prelude)
        if not selectors or not all(selectors):
            raise self.error("Selector missing")
        self.literal("{")
        declarations = self.body()
        self.literal("}")
        return Rule(selectors, declarations)

    def at_rule(self) -> AtRule:
        self.literal("@")
        name = self.word()
        prelude = self.until([";", "{", "}"]).strip()
        if self.i >= len(self.style):
            return AtRule(name, prelude)
        if self.style[self.i] == ";":
            self.literal(";")
            return AtRule(name, prelude)
        if self.style[self.i] == "}":
            raise self.error("Unexpected '}'")
        self.literal("{")
        start = self.i
        self.ignore_block()
        return AtRule(name, prelude, self.style[start:self.i - 1])

    def body(self) -> list[Declaration | Comment]:
        declarations = []
        while True:
            self.whitespace()
            if self.i >= len(self.style) or self.style[self.i] == "}":
                break
            if self.style[self.i] == ";":
                self.i += 1
            elif self.style.startswith("/*", self.i):
                declarations.append(self.comment())
            else:
                declarations.append(self.declaration())
        return declarations

    def declaration(self) -> Declaration:
        start = self.i
        while self.i < len(self.style) and not self.style[self.i].isspace() and self.style[self.i] not in ":;{}":
            self.i += 1
        name = self.style[start:self.i]
        self.whitespace()
        if not name or self.i >= len(self.style) or self.style[self.i] != ":":
            self.i = start
            raise self.error("Property missing ':'")
        self.literal(":")
        value = self.until([";", "}"]).strip()
        return Declaration(name, value)

    def comment(self) -> Comment:
        end = self.style.find("*/", self.i + 2)
        if end == -1:
            raise self.error("Unclosed comment")
        text = self.style[self.i + 2:end]
        self.i = end + 2
        return Comment(text)

    def whitespace(self):
        while self.i < len(self.style) and self.style[self.i].isspace():
            self.i += 1

    def word(self):
        start = self.i
        while self.i < len(self.style):
            char = self.style[self.i]
            if char.isalnum() or char in "-_":
                self.i += 1
            else:
                break
        if not (self.i > start):
            raise self.error("Error parsing word")
        return self.style[start:self.i]

    def literal(self, literal):
        if not (self.i < len(self.style) and self.style[self.i] == literal):
            raise self.error(f"Missing '{literal}'")
        self.i += 1

    def until(self, chars) -> str:
        """Returns the text up to the first of chars outside any string, comment,
        bracket or nested block, leaving the pointer on it."""
        start = self.i
        closing = []
        while self.i < len(self.style):
            char = self.style[self.i]
            if char == "\\":
                self.i = min(self.i + 2, len(self.style))
                continue
            if char in QUOTES:
                self.string()
                continue
            if self.style.startswith("/*", self.i):
                self.comment()
                continue
            if not closing and char in chars:
                break
            if char in OPEN_BRACKETS:
                closing.append(OPEN_BRACKETS[char])
            elif char == "{":
                closing.append("}")
            elif closing and char == closing[-1]:
                closing.pop()
            self.i += 1
        return self.style[start:self.i]

    def string(self):
        quote = self.style[self.i]
        self.i += 1
        while self.i < len(self.style):
            char = self.style[self.i]
            if char == "\\":
                self.i += 2
                continue
            if char == quote:
                self.i += 1
                return
            if char == "\n":
                break
            self.i += 1
        raise self.error("Unclosed string")

    def ignore_block(self):
        """Moves the pointer past the '}' closing the block we are inside."""
        open_tags = 1
        while open_tags > 0 and self.i < len(self.style):
            char = self.style[self.i]
            if char == "\\":
                self.i = min(self.i + 2, len(self.style))
                continue
            if char in QUOTES:
                self.string()
                continue
            if self.style.startswith("/*", self.i):
                self.comment()
                continue
            if char == "{":
                open_tags += 1
            elif char == "}":
                open_tags -= 1
            self.i += 1
        if open_tags > 0:
            raise self.error("Missing '}'")

    def error(self, message) -> StylesheetParseError:
        return StylesheetParseError(message, self.style.count("\n", 0, self.i) + 1)


def split_selectors(prelude: str) -> list[str]:
    """Splits a selector group on its top-level commas and normalizes each selector."""
    text = strip_comments(prelude)
    selectors = []
    start = 0
    depth = 0
    quote = None
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\":
            i = escape_end(text, i)
            continue
        if quote:
            if char == quote:
                quote = None
        elif char in QUOTES:
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        elif char == "," and depth == 0:
            selectors.append(normalize_selector(text[start:i]))
            start = i + 1
        i += 1
    selectors.append(normalize_selector(text[start:]))
    return selectors if any(selectors) else []


def normalize_selector(selector: str) -> str:
    """Collapses whitespace and puts single spaces around top-level combinators.

    Escape sequences are copied unchanged, including the space that ends a hex
    escape, so ".a\\+b" stays one class name.
    """
    text = selector.strip()
    out = ""
    depth = 0
    quote = None
    pending_space = False
    # out ends with the space we put after a combinator
    after_combinator = False
    i = 0
    while i < len(text):
        char = text[i]
        if char == "\\":
            end = escape_end(text, i)
            if pending_space and out and not after_combinator and not quote:
                out += " "
            pending_space = after_combinator = False
            out += text[i:end]
            i = end
            continue
        i += 1
        if quote:
            out += char
            if char == quote:
                quote = None
            continue
        if char.isspace():
            pending_space = True
            continue
        if depth == 0 and char in COMBINATORS:
            out = (out if not out or out.endswith(" ") else out + " ") + char + " "
            pending_space = False
            after_combinator = True
            continue
        if pending_space and out and not after_combinator:
            out += " "
        pending_space = after_combinator = False
        if char in QUOTES:
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        out += char
    return out.strip()


def escape_end(text: str, i: int) -> int:
    """Returns the index just past the escape sequence whose backslash is at i."""
    j = i + 1
    if j < len(text) and text[j] in HEX_DIGITS:
        while j < len(text) and j < i + 7 and text[j] in HEX_DIGITS:
            j += 1
        if j < len(text) and text[j].isspace():
            j += 1
        return j
    return min(j + 1, len(text))


def strip_comments(text: str) -> str:
    out = ""
    i = 0
    while i < len(text):
        if text[i] == "\\":
            end = escape_end(text, i)
            out += text[i:end]
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = len(text) if end == -1 else end + 2
            out += " "
        else:
            out += text[i]
            i += 1
    return out


def parse_stylesheet(style: str | None) -> Stylesheet:
    if not style or style.isspace():
        return Stylesheet()
    return CSSParser(style).parse()


if __name__ == "__main__":
    import sys
    with open(sys.argv[1] if len(sys.argv) > 1 else "style.css") as f:
        print(parse_stylesheet(f.read()).stringify())
