import os
import re
import shutil
import sys
import tempfile
import urllib.parse
from dataclasses import dataclass
from constants import ENCODING, EXCLUDED_DIRS, FALLBACK_STYLESHEET_NAME
from css_parser import parse_stylesheet
from element_index import index_elements
from errors import NoStylesheetFound, ParseError, WriteBackFailure
from html_parser import Node
from stylesheet_merge import merge_all

URL_SCHEME_REGEX = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


@dataclass
class WriteBackResult:
    path: str
    error: WriteBackFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_external(href: str) -> bool:
    return href.startswith("//") or URL_SCHEME_REGEX.match(href) is not None


def resolve_href(html_dir: str, href: str, workspace: str | None = None) -> str:
    href = urllib.parse.unquote(href.split("#", 1)[0].split("?", 1)[0])
    if href.startswith("/"):
        # root relative links start from the site root
        return os.path.normpath(os.path.join(workspace or html_dir, href.lstrip("/")))
    return os.path.normpath(os.path.join(html_dir, href))


def find_stylesheets(html_path: str, root: Node, workspace: str | None = None) -> list[str]:
    """Returns the local stylesheets a document links to, in document order.

    Falls back to the first style.css under workspace when the document links
    none.
    """
    links = [
        node.attributes["href"].strip()
        for node in index_elements(root)
        if node.tag == "link"
        and "stylesheet" in node.attributes.get("rel", "").casefold().split()
        and node.attributes.get("href", "").strip()
    ]
    html_dir = os.path.dirname(os.path.abspath(html_path))
    paths = []
    for link in links:
        if is_external(link):
            continue
        path = resolve_href(html_dir, link, workspace)
        if path not in paths:
            paths.append(path)
    if not paths and workspace is not None:
        fallback = find_fallback_stylesheet(workspace)
        if fallback:
            paths.append(fallback)
    return paths


def find_fallback_stylesheet(workspace: str) -> str | None:
    for dirpath, dirnames, filenames in os.walk(workspace):
        dirnames[:] = sorted(name for name in dirnames if name not in EXCLUDED_DIRS)
        if FALLBACK_STYLESHEET_NAME in filenames:
            return os.path.normpath(os.path.join(dirpath, FALLBACK_STYLESHEET_NAME))
    return None


def read_file(path: str) -> str:
    with open(path, "r", encoding=ENCODING) as f:
        return f.read()


def write_file(path: str, text: str):
    """Replaces the file at path, leaving it as it was if anything fails."""
    fd, temp_path = tempfile.mkstemp(dir=os.path.dirname(path) or ".", prefix=".easyfix-", suffix=".css")
    try:
        with os.fdopen(fd, "w", encoding=ENCODING) as f:
            f.write(text)
        if os.path.exists(path):
            shutil.copymode(path, temp_path)
        os.replace(temp_path, path)
    except OSError:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise


def read_combined_css(paths: list[str]) -> str | None:
    """Concatenates every readable stylesheet; None when there was nothing to read."""
    combined = ""
    found = False
    for path in paths:
        try:
            combined += read_file(path) + "\n"
            found = True
        except (OSError, UnicodeDecodeError) as e:
            print("Error reading CSS file:", path, e, file=sys.stderr)
    return combined if found else None


def write_back(paths: list[str], edited_css: str) -> list[WriteBackResult]:
    """Merges edited_css into the stylesheets at paths and saves the ones it changes.

    Every stylesheet is re-read here rather than reused from when the rules
    were selected. A failure on one file is reported in its result and does
    not stop the others. Raises StylesheetParseError, before anything is
    written, when edited_css doesn't parse.
    """
    if not paths:
        raise NoStylesheetFound("No stylesheet files found to update.")
    edited = parse_stylesheet(edited_css)
    originals = {}
    results = {}
    for path in paths:
        try:
            originals[path] = parse_stylesheet(read_file(path))
        except (OSError, UnicodeDecodeError, ParseError) as e:
            results[path] = WriteBackResult(path, WriteBackFailure(path, e))
    for path, stylesheet in merge_all(originals, edited, paths[0]).items():
        try:
            write_file(path, stylesheet.stringify())
            results[path] = WriteBackResult(path)
        except OSError as e:
            results[path] = WriteBackResult(path, WriteBackFailure(path, e))
    return [results[path] for path in paths if path in results]
