"""
Line parser for extended QDIMACS.

Recognized line forms, in order:
    c <text>                          comment (preamble only)
    cs int [1 2 3] < 5 ; = {0110}     assumption directives (preamble only)
    p cnf <vars> <clauses>            problem line
    e|a <var> ... 0                   quantifier blocks
    <lit> ... 0                       clauses
"""

import logging
import re
from enum import Enum, auto
from pathlib import Path
from typing import Dict, List, NoReturn, Optional, Tuple, Union

from .errors import (
    DuplicateQuantification, MalformedLine, StructuralMismatch, UndeclaredVariable
)
from .formula import (
    AssumptionDirective, AssumptionLine, BitPattern, Clause, Comparison,
    Formula, ProblemHeader, Quantifier, QuantifierBlock
)

logger = logging.getLogger(__name__)


class Section(Enum):
    """Where in the document the parser currently is."""
    PREAMBLE = auto()
    PREFIX = auto()
    MATRIX = auto()


TOKEN_PATTERN = re.compile(r"\S+")
INT_PATTERN = re.compile(r"-?[0-9]+$")
COUNT_PATTERN = re.compile(r"[0-9]+$")
ASSUMPTION_PATTERN = re.compile(r"(cs|s)\s+int(?=\s|$)")
CONSTRAINT_PATTERN = re.compile(
    r"\s*(?:\[(?P<operands>[^\]]*)\]\s*)?"
    r"(?P<cmp>[<>=])\s*"
    r"(?P<value>\{[01]+\}|[+-]?[0-9]+)\s*$"
)

# A pending operand reference: (line, column, variable)
_Operand = Tuple[int, int, int]


def _tokens(text: str, offset: int = 0) -> List[Tuple[int, str]]:
    """Split text into (column, token) pairs, columns 1-based."""
    return [(m.start() + offset + 1, m.group()) for m in TOKEN_PATTERN.finditer(text)]


def _is_comment(line: str) -> bool:
    return line == "c" or line.startswith("c ") or line.startswith("c\t")


class QdimacsParser:
    """
    Parser for one extended QDIMACS document.

    The parser keeps per-document state (current section, declared bound,
    already quantified variables), so use one instance per parse or call
    reset() in between.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset parser state."""
        self.section = Section.PREAMBLE
        self.header: Optional[ProblemHeader] = None
        self.prefix: List[QuantifierBlock] = []
        self.clauses: List[Clause] = []
        self.assumptions: List[AssumptionLine] = []
        self.quantified: Dict[int, int] = {}
        self.pending_operands: List[_Operand] = []
        self._line_no = 0
        self._line = ""

    def parse(self, text: str) -> Formula:
        """
        Parse a complete document.

        Args:
            text: The document text.

        Returns:
            The parsed Formula.

        Raises:
            ParseError: One of its subclasses, carrying line and column.
        """
        self.reset()
        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        # One trailing blank line is allowed before end of input
        if lines and lines[-1].rstrip("\r") == "":
            lines.pop()

        for number, raw in enumerate(lines, start=1):
            self._line_no = number
            self._line = raw.rstrip("\r")
            self._parse_line(self._line)

        if self.header is None:
            raise StructuralMismatch(
                len(lines) + 1, 1, "end of input before the problem line"
            )

        if len(self.clauses) != self.header.num_clauses:
            logger.warning(
                "Header declares %d clauses but %d were read",
                self.header.num_clauses, len(self.clauses)
            )

        formula = Formula(
            header=self.header,
            prefix=tuple(self.prefix),
            clauses=tuple(self.clauses),
            assumptions=tuple(self.assumptions),
        )

        distinct = len(set(formula.variables()))
        if distinct != self.header.num_vars:
            logger.warning(
                "Header declares %d variables but %d distinct variables were read",
                self.header.num_vars, distinct
            )
        return formula

    # ------------------------------------------------------------------
    # Line dispatch

    def _parse_line(self, line: str) -> None:
        if not line.strip():
            self._malformed(1, "blank line")

        if self.section is Section.PREAMBLE:
            match = ASSUMPTION_PATTERN.match(line)
            if match:
                self._parse_assumption_line(line, match)
            elif _is_comment(line):
                return
            elif line.split()[0] == "p":
                self._parse_problem_line(line)
            else:
                self._malformed(1, "expected comment, assumption directive or problem line")
            return

        tokens = _tokens(line)
        first = tokens[0][1]
        if first in ("e", "a"):
            if self.section is Section.MATRIX:
                self._malformed(tokens[0][0], "quantifier block after the first clause")
            self._parse_block(tokens)
        elif first == "p":
            self._malformed(tokens[0][0], "duplicate problem line")
        elif first.startswith("c"):
            self._malformed(tokens[0][0], "comment after the problem line")
        else:
            self.section = Section.MATRIX
            self._parse_clause(tokens)

    # ------------------------------------------------------------------
    # Preamble

    def _parse_problem_line(self, line: str) -> None:
        tokens = _tokens(line)
        if len(tokens) < 2 or tokens[1][1] != "cnf":
            column = tokens[1][0] if len(tokens) > 1 else len(line) + 1
            self._malformed(column, "expected 'p cnf <vars> <clauses>'")
        if len(tokens) < 4:
            self._malformed(len(line) + 1, "problem line needs variable and clause counts")
        if len(tokens) > 4:
            self._malformed(tokens[4][0], "unexpected token after the clause count")
        for column, token in tokens[2:]:
            if not COUNT_PATTERN.match(token):
                self._malformed(column, f"expected a non-negative count, got {token!r}")

        self.header = ProblemHeader(int(tokens[2][1]), int(tokens[3][1]))
        self.section = Section.PREFIX

        for line_no, column, var in self.pending_operands:
            if not 1 <= var <= self.header.num_vars:
                raise UndeclaredVariable(line_no, column, var, self.header.num_vars)
        self.pending_operands = []

    def _parse_assumption_line(self, line: str, match: re.Match) -> None:
        marker = match.group(1)
        rest_start = match.end()
        directives: List[AssumptionDirective] = []

        start = rest_start
        for segment in line[rest_start:].split(";"):
            column = start + 1
            directives.append(self._parse_constraint(segment, column))
            start += len(segment) + 1

        self.assumptions.append(AssumptionLine(marker, tuple(directives)))

    def _parse_constraint(self, segment: str, column: int) -> AssumptionDirective:
        match = CONSTRAINT_PATTERN.match(segment)
        if match is None:
            stripped = len(segment) - len(segment.lstrip())
            self._malformed(column + stripped, f"malformed assumption directive {segment.strip()!r}")

        operands: Optional[Tuple[int, ...]] = None
        if match.group("operands") is not None:
            offset = column - 1 + match.start("operands")
            values = []
            for col, token in _tokens(match.group("operands"), offset):
                if not COUNT_PATTERN.match(token):
                    self._malformed(col, f"expected a positive variable id, got {token!r}")
                var = int(token)
                self.pending_operands.append((self._line_no, col, var))
                values.append(var)
            operands = tuple(values)

        raw_value = match.group("value")
        value: Union[int, BitPattern]
        if raw_value.startswith("{"):
            value = BitPattern(raw_value[1:-1])
        else:
            value = int(raw_value)

        return AssumptionDirective(Comparison(match.group("cmp")), value, operands)

    # ------------------------------------------------------------------
    # Prefix and matrix

    def _parse_block(self, tokens: List[Tuple[int, str]]) -> None:
        quantifier = Quantifier(tokens[0][1])
        numbers = self._terminated_ints(tokens[1:])
        if not numbers:
            self._structural(tokens[0][0], "quantifier block without variables")

        variables = []
        for column, var in numbers:
            if var < 0:
                self._malformed(column, f"negative variable {var} in quantifier block")
            self._check_declared(column, var)
            if var in self.quantified:
                raise DuplicateQuantification(self._line_no, column, var, self._line)
            self.quantified[var] = len(self.prefix)
            variables.append(var)

        self.prefix.append(QuantifierBlock(quantifier, tuple(variables)))

    def _parse_clause(self, tokens: List[Tuple[int, str]]) -> None:
        literals = []
        for column, lit in self._terminated_ints(tokens):
            self._check_declared(column, abs(lit))
            literals.append(lit)
        self.clauses.append(tuple(literals))

    def _terminated_ints(self, tokens: List[Tuple[int, str]]) -> List[Tuple[int, int]]:
        """Parse zero-terminated integer tokens, returning (column, value) without the 0."""
        values = []
        for column, token in tokens:
            if not INT_PATTERN.match(token):
                self._malformed(column, f"expected an integer, got {token!r}")
            values.append((column, int(token)))

        if not values or values[-1][1] != 0:
            self._structural(len(self._line) + 1, "missing terminating 0")
        for column, value in values[:-1]:
            if value == 0:
                self._structural(column, "0 before the end of the line")
        return values[:-1]

    def _check_declared(self, column: int, var: int) -> None:
        bound = self.header.num_vars
        if not 1 <= var <= bound:
            raise UndeclaredVariable(self._line_no, column, var, bound, self._line)

    def _malformed(self, column: int, reason: str) -> NoReturn:
        raise MalformedLine(self._line_no, column, reason, self._line)

    def _structural(self, column: int, reason: str) -> NoReturn:
        raise StructuralMismatch(self._line_no, column, reason, self._line)


def parse_qdimacs(text: str) -> Formula:
    """Parse extended QDIMACS text into a Formula."""
    return QdimacsParser().parse(text)


def read_qdimacs(path: Union[str, Path]) -> Formula:
    """Read and parse an extended QDIMACS file."""
    with open(path, "r") as f:
        text = f.read()
    logger.debug("Parsing %s", path)
    return parse_qdimacs(text)
