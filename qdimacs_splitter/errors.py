"""
Custom exceptions for QDIMACS parsing, splitting and merging.
"""

from typing import Optional


class QdimacsError(Exception):
    """Base class for all errors raised by the splitter."""


class ParseError(QdimacsError):
    """Raised when the input text is not a valid (extended) QDIMACS document."""

    def __init__(self, line: int, column: int, reason: str, text: str = ""):
        self.line = line
        self.column = column
        self.reason = reason
        self.text = text
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"{type(self).__name__} at {self.line}:{self.column}: {self.reason}"
        if self.text:
            msg += f"\n  Line: {repr(self.text)}"
        return msg


class MalformedLine(ParseError):
    """Raised when a line does not match any form expected at its position."""


class StructuralMismatch(ParseError):
    """Raised for missing terminating zeros, empty blocks or premature end of input."""


class UndeclaredVariable(ParseError):
    """Raised when a variable id is zero or exceeds the declared variable count."""

    def __init__(self, line: int, column: int, variable: int, bound: int, text: str = ""):
        self.variable = variable
        self.bound = bound
        super().__init__(
            line, column,
            f"variable {variable} is outside the declared range 1..{bound}",
            text
        )


class DuplicateQuantification(ParseError):
    """Raised when a variable is bound by more than one quantifier block."""

    def __init__(self, line: int, column: int, variable: int, text: str = ""):
        self.variable = variable
        super().__init__(line, column, f"variable {variable} is already quantified", text)


class DepthOutOfRange(QdimacsError):
    """Raised when the split depth exceeds the variables in the quantifier prefix."""

    def __init__(self, depth: int, available: int):
        self.depth = depth
        self.available = available
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.depth < 0:
            return f"Split depth must not be negative (got {self.depth})"
        return (
            f"Split depth {self.depth} exceeds the {self.available} "
            f"variable(s) of the quantifier prefix"
        )


class MergeError(QdimacsError):
    """Raised when split results cannot be combined into a merge formula."""

    def __init__(self, reason: str, index: Optional[int] = None):
        self.reason = reason
        self.index = index
        msg = f"Cannot build merge formula: {reason}"
        if index is not None:
            msg += f" (branch {index})"
        super().__init__(msg)
