class ParseError(Exception):
    pass


class HTMLParseError(ParseError):
    pass


class StylesheetParseError(ParseError):
    def __init__(self, message: str, line: int = 0):
        super().__init__(f"{message} (line {line})" if line else message)
        self.line = line


class StaleSelectionError(LookupError):
    pass


class NoStylesheetFound(Exception):
    pass


class UnsupportedDocumentError(ValueError):
    pass


class WriteBackFailure(Exception):
    def __init__(self, path: str, reason: Exception | str):
        super().__init__(f"Failed to update the stylesheet: {path} ({reason})")
        self.path = path
        self.reason = reason
