import json
import os
import sys
from constants import HTML_EXTENSIONS
from element_index import ElementList, ElementReference
from errors import (
    NoStylesheetFound,
    ParseError,
    StaleSelectionError,
    StylesheetParseError,
    UnsupportedDocumentError,
)
from html_parser import Document, decode_html, parse_html
from selector_matcher import filter_css_for_element
from stylesheet_files import WriteBackResult, find_stylesheets, read_combined_css, read_file, write_back

USAGE = "usage: easyfix.py list PAGE.html | show PAGE.html INDEX | apply PAGE.html EDITED.css"
PARSE_ERROR_PLACEHOLDER = "/* Could not parse stylesheet: {} */"


class EasyFixSession:
    """Selection and write-back state for one opened HTML document."""

    def __init__(self, html_path: str, workspace: str | None = None):
        if not html_path.casefold().endswith(HTML_EXTENSIONS):
            raise UnsupportedDocumentError(f"This command works only on HTML files: {html_path}")
        self.html_path = html_path
        self.workspace = workspace if workspace is not None else os.getcwd()
        self.elements: ElementList | None = None

    def read_document(self) -> Document:
        with open(self.html_path, "rb") as f:
            return parse_html(decode_html(f.read()))

    def load(self) -> ElementList:
        """Parses the document again; references from earlier loads stop resolving."""
        self.elements = ElementList.from_document(self.read_document())
        return self.elements

    def stylesheets(self) -> list[str]:
        return find_stylesheets(self.html_path, self.read_document(), self.workspace)

    def css_for(self, reference: ElementReference) -> str:
        if self.elements is None:
            raise StaleSelectionError("No document has been loaded")
        element = self.elements.resolve(reference)
        css = read_combined_css(self.stylesheets())
        try:
            return filter_css_for_element(css, element)
        except StylesheetParseError as e:
            print("Error parsing stylesheet:", e, file=sys.stderr)
            return PARSE_ERROR_PLACEHOLDER.format(e)

    def apply(self, edited_css: str) -> list[WriteBackResult]:
        return write_back(self.stylesheets(), edited_css)


def parse_index(text: str) -> int | str:
    return int(text) if text.lstrip("-").isdigit() else text


def main(argv: list[str]) -> int:
    if len(argv) < 2:
        print(USAGE, file=sys.stderr)
        return 2
    command, html_path, args = argv[0], argv[1], argv[2:]
    try:
        session = EasyFixSession(html_path)
        elements = session.load()
        if command == "list" and not args:
            print(json.dumps(elements.records(), indent=2))
        elif command == "show" and len(args) == 1:
            print(session.css_for(elements.reference(parse_index(args[0]))), end="")
        elif command == "apply" and len(args) == 1:
            results = session.apply(read_file(args[0]))
            for result in results:
                if result.ok:
                    print(f"Stylesheet updated successfully: {result.path}")
                else:
                    print(result.error, file=sys.stderr)
            return 0 if all(result.ok for result in results) else 1
        else:
            print(USAGE, file=sys.stderr)
            return 2
    except (ParseError, StaleSelectionError, NoStylesheetFound, UnsupportedDocumentError, OSError, UnicodeDecodeError) as e:
        print(e, file=sys.stderr)
        return 1
    return 0


def cli():
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
