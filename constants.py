FALLBACK_STYLESHEET_NAME = "style.css"
EXCLUDED_DIRS = ["node_modules", ".git"]
HTML_EXTENSIONS = (".html", ".htm")
ENCODING = "utf-8"

NO_STYLESHEET_PLACEHOLDER = "/* No stylesheet found */"

CSS_INDENT = "  "
