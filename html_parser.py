import re
from dataclasses import dataclass, field
from constants import ENCODING
from errors import HTMLParseError

CHARACTER_REF_REGEX = re.compile(r"&(#[xX][0-9a-fA-F]+|#[0-9]+|[a-zA-Z]+);")
CHARACTER_REF_MAP = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
    "nbsp": " ",
    "ndash": "–",
    "mdash": "—",
    "copy": "©",
    "reg": "®",
    "trade": "™",
    "asymp": "≈",
    "ne": "≠",
    "pound": "£",
    "euro": "€",
    "deg": "°",
}
SELF_CLOSING_TAGS = [
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
]
RAW_TEXT_TAGS = ["script", "style", "textarea", "title"]
BLOCK_TAGS = [
    "address", "article", "aside", "blockquote", "div", "dl", "fieldset",
    "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr",
    "main", "nav", "ol", "p", "pre", "section", "table", "ul",
]
# opening the key tag closes a still-open element with one of these tags
AUTO_CLOSE_TAGS = {
    "li": ["li"],
    "dt": ["dt", "dd"],
    "dd": ["dt", "dd"],
    "option": ["option"],
    "tr": ["tr", "td", "th"],
    "td": ["td", "th"],
    "th": ["td", "th"],
    **{tag: ["p"] for tag in BLOCK_TAGS},
}


@dataclass()
class Node:
    children: list["Node"] = field(kw_only=True, default_factory=list)
    parent: "Node" = field(compare=False, repr=False)


@dataclass()
class Document(Node):
    def __repr__(self):
        return "#document"


@dataclass()
class Text(Node):
    text: str

    def __repr__(self):
        return repr(self.text)


@dataclass()
class Element(Node):
    tag: str
    attributes: dict[str, str]
    start: int = field(kw_only=True, default=-1, compare=False)
    end: int = field(kw_only=True, default=-1, compare=False)

    @property
    def id(self) -> str:
        return self.attributes.get("id", "")

    @property
    def classes(self) -> list[str]:
        return self.attributes.get("class", "").split()

    def __repr__(self):
        return f"<{self.tag}>"


class HTMLParser:
    """Lenient HTML tree builder.

    Unlike a browser it never invents html/head/body elements: every
    Element in the result exists in the source and carries its source span
    as start/end offsets. Comments, doctypes and processing instructions
    are dropped.
    """

    def __init__(self, body: str):
        self.body = body
        self.i = 0
        self.document = Document(None)
        self.unfinished: list[Node] = [self.document]

    def parse(self) -> Document:
        text_start = 0
        while self.i < len(self.body):
            if self.body.startswith("<!--", self.i):
                self.add_text(self.body[text_start:self.i])
                end = self.body.find("-->", self.i + 4)
                self.i = len(self.body) if end == -1 else end + 3
                text_start = self.i
            elif self.at_tag_start():
                tag_start = self.i
                tag_end = self.find_tag_end()
                if tag_end is None:
                    # no closing '>' so the rest of the document is text
                    break
                self.add_text(self.body[text_start:tag_start])
                self.i = tag_end + 1
                self.add_tag(self.body[tag_start + 1:tag_end], tag_start)
                text_start = self.i
            else:
                self.i += 1
        self.add_text(self.body[text_start:])
        return self.finish()

    def at_tag_start(self) -> bool:
        if self.body[self.i] != "<" or self.i + 1 >= len(self.body):
            return False
        next_char = self.body[self.i + 1]
        return next_char.isalpha() or next_char in "/!?"

    def find_tag_end(self) -> int | None:
        quote = None
        j = self.i + 1
        while j < len(self.body):
            c = self.body[j]
            if quote:
                if c == quote:
                    quote = None
            elif c in ["'", '"'] and self.after_equals(j):
                quote = c
            elif c == ">":
                return j
            j += 1
        return None

    def after_equals(self, j: int) -> bool:
        """Whether the quote at j opens an attribute value, as in `title = "x"`."""
        k = j - 1
        while k > self.i and self.body[k].isspace():
            k -= 1
        return self.body[k] == "="

    def add_text(self, text: str):
        if not text or text.isspace():
            return
        parent = self.unfinished[-1]
        parent.children.append(Text(parent, decode_character_refs(text)))

    def add_tag(self, text: str, start: int):
        if text.startswith("!") or text.startswith("?"):
            return
        tag, attributes = get_tag_attributes(text)
        if tag.startswith("/"):
            self.close_tag(tag[1:], start)
            return
        self.auto_close(tag, start)
        parent = self.unfinished[-1]
        node = Element(parent, tag, attributes, start=start)
        parent.children.append(node)
        if tag in SELF_CLOSING_TAGS or text.rstrip().endswith("/"):
            node.end = self.i
        elif tag in RAW_TEXT_TAGS:
            self.unfinished.append(node)
            self.add_raw_text(node)
        else:
            self.unfinished.append(node)

    def add_raw_text(self, node: Element):
        """Consumes everything up to the matching end tag as a single text node."""
        match = re.compile(rf"</{re.escape(node.tag)}[\s>/]", re.IGNORECASE).search(self.body, self.i)
        end = match.start() if match else len(self.body)
        if end > self.i:
            node.children.append(Text(node, self.body[self.i:end]))
        self.i = end

    def close_tag(self, tag: str, start: int):
        open_tags = [getattr(node, "tag", None) for node in self.unfinished]
        if tag not in open_tags:
            # stray end tag
            return
        while True:
            node = self.unfinished.pop()
            if node.tag == tag:
                node.end = self.i
                return
            node.end = start

    def auto_close(self, tag: str, start: int):
        closes = AUTO_CLOSE_TAGS.get(tag)
        if not closes:
            return
        node = self.unfinished[-1]
        if isinstance(node, Element) and node.tag in closes:
            self.unfinished.pop()
            node.end = start

    def finish(self) -> Document:
        while len(self.unfinished) > 1:
            node = self.unfinished.pop()
            node.end = len(self.body)
        return self.unfinished.pop()


def get_tag_attributes(text: str) -> tuple[str, dict[str, str]]:
    parts = text.split(None, 1)
    tag = parts[0].casefold() if parts else ""
    if len(tag) > 1 and tag.endswith("/"):
        tag = tag.rstrip("/")
    attr_string = parts[1] if len(parts) > 1 else ""
    attributes = {}
    i = 0
    while i < len(attr_string):
        if attr_string[i].isspace() or attr_string[i] == "/":
            i += 1
            continue
        start = i
        while i < len(attr_string) and not attr_string[i].isspace() and attr_string[i] not in "=/":
            i += 1
        key = attr_string[start:i].casefold()
        i = skip_whitespace(attr_string, i)
        value = ""
        if i < len(attr_string) and attr_string[i] == "=":
            i = skip_whitespace(attr_string, i + 1)
            if i < len(attr_string) and attr_string[i] in ["'", '"']:
                end = attr_string.find(attr_string[i], i + 1)
                if end == -1:
                    end = len(attr_string)
                value = attr_string[i + 1:end]
                i = end + 1
            else:
                start = i
                while i < len(attr_string) and not attr_string[i].isspace():
                    i += 1
                value = attr_string[start:i]
        if key:
            attributes[key] = decode_character_refs(value)
    return tag, attributes


def skip_whitespace(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def decode_character_refs(text: str) -> str:
    def replace(match):
        ref = match.group(1)
        if not ref.startswith("#"):
            return CHARACTER_REF_MAP.get(ref, match.group(0))
        code = int(ref[2:], 16) if ref[1] in "xX" else int(ref[1:])
        return chr(code) if 0 < code <= 0x10FFFF else match.group(0)

    return CHARACTER_REF_REGEX.sub(replace, text)


def decode_html(data: bytes) -> str:
    try:
        return data.decode(ENCODING)
    except UnicodeDecodeError as e:
        raise HTMLParseError(f"Document is not valid {ENCODING}: {e}") from e


def parse_html(body: str) -> Document:
    return HTMLParser(body).parse()


def print_tree(node, indent=0):
    print(" " * indent, node)
    for child in node.children:
        print_tree(child, indent + 2)


if __name__ == "__main__":
    import sys
    if not len(sys.argv) > 1:
        print("need a file!")
    else:
        with open(sys.argv[1], "rb") as f:
            print_tree(parse_html(decode_html(f.read())))
