import io
import os
import tempfile
import unittest
from unittest.mock import patch

from errors import NoStylesheetFound, StylesheetParseError, WriteBackFailure
from html_parser import parse_html
from stylesheet_files import (
    find_fallback_stylesheet,
    find_stylesheets,
    is_external,
    read_combined_css,
    resolve_href,
    write_back,
)

EXTERNAL_TEST_CASES = [
    ("https://cdn.example.com/a.css", True),
    ("http://example.com/a.css", True),
    ("//cdn.example.com/a.css", True),
    ("data:text/css,a{}", True),
    ("css/a.css", False),
    ("../a.css", False),
    ("/a.css", False),
    ("a.css?v=1:2", False),
]


def write(path, text):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def read(path):
    with open(path, encoding="utf-8") as f:
        return f.read()


class TestDiscovery(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = self.tmp.name
        self.html_path = os.path.join(self.dir, "site", "page.html")

    def tearDown(self):
        self.tmp.cleanup()

    def path(self, *parts):
        return os.path.normpath(os.path.join(self.dir, *parts))

    def test_is_external(self):
        for href, ans in EXTERNAL_TEST_CASES:
            with self.subTest(href):
                self.assertEqual(is_external(href), ans)

    def test_resolve_href(self):
        html_dir = self.path("site")
        self.assertEqual(resolve_href(html_dir, "css/a.css"), self.path("site", "css", "a.css"))
        self.assertEqual(resolve_href(html_dir, "../shared/a.css"), self.path("shared", "a.css"))
        self.assertEqual(resolve_href(html_dir, "a.css?v=2#top"), self.path("site", "a.css"))
        self.assertEqual(resolve_href(html_dir, "my%20styles.css"), self.path("site", "my styles.css"))
        self.assertEqual(resolve_href(html_dir, "/css/a.css", self.dir), self.path("css", "a.css"))

    def test_find_linked_stylesheets(self):
        html = """
        <link rel="stylesheet" href="css/a.css">
        <link rel="stylesheet" href="https://cdn.example.com/b.css">
        <link rel="icon" href="icon.css">
        <link rel="Stylesheet alternate" href="css/c.css?v=2">
        <link rel="stylesheet" href="css/a.css">
        <link rel="stylesheet" href="//cdn.example.com/d.css">
        <link rel="stylesheet">
        """
        paths = find_stylesheets(self.html_path, parse_html(html), self.dir)
        self.assertEqual(paths, [self.path("site", "css", "a.css"), self.path("site", "css", "c.css")])

    def test_fallback_stylesheet(self):
        write(self.path("node_modules", "style.css"), "")
        write(self.path("b", "style.css"), "")
        write(self.path("a", "deep", "style.css"), "")
        paths = find_stylesheets(self.html_path, parse_html("<p>no links</p>"), self.dir)
        self.assertEqual(paths, [self.path("a", "deep", "style.css")])

    def test_fallback_prefers_workspace_root(self):
        write(self.path("style.css"), "")
        write(self.path("a", "style.css"), "")
        self.assertEqual(find_fallback_stylesheet(self.dir), self.path("style.css"))

    def test_no_stylesheets(self):
        self.assertEqual(find_stylesheets(self.html_path, parse_html("<p></p>"), self.dir), [])
        self.assertEqual(find_stylesheets(self.html_path, parse_html("<p></p>")), [])

    def test_only_external_links_fall_back(self):
        write(self.path("style.css"), "")
        html = '<link rel="stylesheet" href="https://cdn.example.com/b.css">'
        self.assertEqual(find_stylesheets(self.html_path, parse_html(html), self.dir), [self.path("style.css")])


class TestReadCombinedCss(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.a = os.path.join(self.tmp.name, "a.css")
        self.b = os.path.join(self.tmp.name, "b.css")
        write(self.a, "a{}")
        write(self.b, "b{}")

    def tearDown(self):
        self.tmp.cleanup()

    def test_concatenates(self):
        self.assertEqual(read_combined_css([self.a, self.b]), "a{}\nb{}\n")

    @patch("sys.stderr", new_callable=io.StringIO)
    def test_skips_unreadable(self, stderr):
        missing = os.path.join(self.tmp.name, "missing.css")
        self.assertEqual(read_combined_css([missing, self.b]), "b{}\n")
        self.assertIn("Error reading CSS file: " + missing, stderr.getvalue())

    @patch("sys.stderr", new_callable=io.StringIO)
    def test_nothing_found(self, stderr):
        self.assertIsNone(read_combined_css([]))
        self.assertIsNone(read_combined_css([os.path.join(self.tmp.name, "missing.css")]))


class TestWriteBack(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.a = os.path.join(self.tmp.name, "a.css")
        self.b = os.path.join(self.tmp.name, "b.css")
        write(self.a, ".a{color:red}\n.b{color:blue}")
        write(self.b, "/* b */\n.c{x:1}")

    def tearDown(self):
        self.tmp.cleanup()

    def test_writes_affected_files(self):
        results = write_back([self.a, self.b], ".a{color:green}\n.new{x:2}")
        self.assertEqual([(result.path, result.ok) for result in results], [(self.a, True)])
        self.assertEqual(
            read(self.a),
            ".a {\n  color: green;\n}\n\n.b {\n  color: blue;\n}\n\n.new {\n  x: 2;\n}\n",
        )
        self.assertEqual(read(self.b), "/* b */\n.c{x:1}")

    def test_duplicate_rules_across_files(self):
        write(self.b, ".a{color:blue}")
        write_back([self.a, self.b], ".a{color:red}\n.a{color:black}")
        self.assertEqual(read(self.a), ".a {\n  color: red;\n}\n\n.b {\n  color: blue;\n}\n")
        self.assertEqual(read(self.b), ".a {\n  color: black;\n}\n")

    def test_updates_several_files(self):
        results = write_back([self.a, self.b], ".c{x:2}\n.b{color:black}")
        self.assertEqual([result.path for result in results], [self.a, self.b])
        self.assertTrue(all(result.ok for result in results))
        self.assertEqual(read(self.b), "/* b */\n\n.c {\n  x: 2;\n}\n")

    def test_reads_current_content(self):
        write(self.a, ".z{}")
        write_back([self.a], ".a{x:1}")
        self.assertEqual(read(self.a), ".z {\n}\n\n.a {\n  x: 1;\n}\n")

    def test_failure_is_per_file(self):
        write(self.a, "}{ broken")
        results = write_back([self.a, self.b], ".c{x:2}")
        self.assertEqual([result.path for result in results], [self.a, self.b])
        self.assertFalse(results[0].ok)
        self.assertIsInstance(results[0].error, WriteBackFailure)
        self.assertEqual(results[0].error.path, self.a)
        self.assertIsInstance(results[0].error.reason, StylesheetParseError)
        self.assertTrue(results[1].ok)
        self.assertEqual(read(self.a), "}{ broken")
        self.assertEqual(read(self.b), "/* b */\n\n.c {\n  x: 2;\n}\n")

    def test_missing_file(self):
        missing = os.path.join(self.tmp.name, "missing.css")
        results = write_back([missing, self.b], ".c{x:2}")
        self.assertFalse(results[0].ok)
        self.assertIsInstance(results[0].error.reason, OSError)
        self.assertTrue(results[1].ok)

    def test_write_error(self):
        with patch("os.replace", side_effect=PermissionError("read-only")):
            results = write_back([self.a], ".a{color:green}")
        self.assertFalse(results[0].ok)
        self.assertIn("read-only", str(results[0].error))
        self.assertEqual(read(self.a), ".a{color:red}\n.b{color:blue}")
        self.assertEqual(sorted(os.listdir(self.tmp.name)), ["a.css", "b.css"])

    def test_keeps_file_mode(self):
        os.chmod(self.a, 0o644)
        write_back([self.a], ".a{color:green}")
        self.assertEqual(os.stat(self.a).st_mode & 0o777, 0o644)
        self.assertEqual(sorted(os.listdir(self.tmp.name)), ["a.css", "b.css"])

    def test_edited_parse_error_writes_nothing(self):
        with self.assertRaises(StylesheetParseError):
            write_back([self.a, self.b], ".a{color:green")
        self.assertEqual(read(self.a), ".a{color:red}\n.b{color:blue}")
        self.assertEqual(read(self.b), "/* b */\n.c{x:1}")

    def test_no_stylesheets(self):
        with self.assertRaises(NoStylesheetFound):
            write_back([], ".a{}")


if __name__ == "__main__":
    unittest.main()
