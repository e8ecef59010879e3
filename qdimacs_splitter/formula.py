"""
In-memory model of an extended QDIMACS document.

A formula is built once by the parser and never mutated afterwards; every
split branch owns its own tuples of blocks and clauses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

Clause = Tuple[int, ...]


class Quantifier(Enum):
    """Quantifier kind of a block, valued by its QDIMACS marker."""
    EXISTS = "e"
    FORALL = "a"


class Comparison(Enum):
    """Comparison operator of an assumption directive."""
    LESS = "<"
    GREATER = ">"
    EQUAL = "="


@dataclass(frozen=True)
class BitPattern:
    """Brace-delimited bit pattern, most significant bit first."""
    bits: str

    def __post_init__(self):
        if not self.bits or set(self.bits) - {"0", "1"}:
            raise ValueError(f"Bit pattern must only contain 0 and 1: {self.bits!r}")

    def to_int(self) -> int:
        return int(self.bits, 2)

    def __len__(self) -> int:
        return len(self.bits)


@dataclass(frozen=True)
class AssumptionDirective:
    """
    One integer-domain constraint, e.g. ``[1 2 3] < 5`` or ``= {0110}``.

    The operand list is ``None`` when the constraint names no variables.
    """
    comparison: Comparison
    value: Union[int, BitPattern]
    operands: Optional[Tuple[int, ...]] = None


@dataclass(frozen=True)
class AssumptionLine:
    """A ``cs int`` / ``s int`` line holding one or more chained directives."""
    marker: str
    directives: Tuple[AssumptionDirective, ...]


@dataclass(frozen=True)
class QuantifierBlock:
    quantifier: Quantifier
    variables: Tuple[int, ...]


@dataclass(frozen=True)
class ProblemHeader:
    """Declared problem size. The counts are advisory."""
    num_vars: int
    num_clauses: int


@dataclass(frozen=True)
class Formula:
    """
    A parsed quantified Boolean formula.

    Attributes:
        header: Declared variable and clause counts.
        prefix: Quantifier blocks in file (dependency) order.
        clauses: Clause matrix; an empty tuple is the empty clause.
        assumptions: Assumption-directive lines in file order.
    """
    header: ProblemHeader
    prefix: Tuple[QuantifierBlock, ...] = ()
    clauses: Tuple[Clause, ...] = ()
    assumptions: Tuple[AssumptionLine, ...] = ()

    @property
    def directives(self) -> List[AssumptionDirective]:
        """All assumption directives, flattened over their lines."""
        return [d for line in self.assumptions for d in line.directives]

    def prefix_variables(self) -> List[int]:
        """The quantifier prefix: all block variables, block by block."""
        return [v for block in self.prefix for v in block.variables]

    def quantifier_of(self, var: int) -> Optional[Quantifier]:
        """Quantifier kind of a variable, or None for free variables."""
        for block in self.prefix:
            if var in block.variables:
                return block.quantifier
        return None

    def variables(self) -> Iterator[int]:
        """Every variable id referenced by the prefix, clauses or directive operands."""
        for block in self.prefix:
            yield from block.variables
        for clause in self.clauses:
            for lit in clause:
                yield abs(lit)
        for directive in self.directives:
            if directive.operands:
                yield from directive.operands

    def max_variable(self) -> int:
        return max(self.variables(), default=0)

    def has_empty_clause(self) -> bool:
        return any(len(c) == 0 for c in self.clauses)


@dataclass(frozen=True)
class Assignment:
    """
    Partial assignment over a contiguous prefix of the quantifier order.

    ``variables``, ``values`` and ``quantifiers`` are parallel tuples in
    prefix order.
    """
    variables: Tuple[int, ...] = ()
    values: Tuple[bool, ...] = ()
    quantifiers: Tuple[Quantifier, ...] = ()

    def __post_init__(self):
        if not len(self.variables) == len(self.values) == len(self.quantifiers):
            raise ValueError("Assignment tuples must have equal length")

    def __len__(self) -> int:
        return len(self.variables)

    def __contains__(self, var: object) -> bool:
        return var in self.variables

    def as_dict(self) -> Dict[int, bool]:
        return dict(zip(self.variables, self.values))

    def value_of(self, lit: int) -> Optional[bool]:
        """Truth value of a literal, or None if its variable is unassigned."""
        var = abs(lit)
        if var not in self.variables:
            return None
        value = self.values[self.variables.index(var)]
        return value if lit > 0 else not value

    def literals(self) -> List[int]:
        """Assigned literals: ``var`` if true, ``-var`` if false."""
        return [v if val else -v for v, val in zip(self.variables, self.values)]

    @property
    def index(self) -> int:
        """Binary value of the assignment, first variable most significant."""
        k = 0
        for val in self.values:
            k = (k << 1) | int(val)
        return k

    @property
    def label(self) -> str:
        """One character per variable: 'f' for false and 't' for true."""
        return "".join("t" if val else "f" for val in self.values)

    def extend(self, var: int, value: bool, quantifier: Quantifier) -> "Assignment":
        return Assignment(
            variables=self.variables + (var,),
            values=self.values + (value,),
            quantifiers=self.quantifiers + (quantifier,)
        )

    def fixes_universal(self) -> bool:
        return Quantifier.FORALL in self.quantifiers


@dataclass(frozen=True)
class SplitResult:
    """One branch of a split: its index in [0, 2^d), fixing assignment and formula."""
    index: int
    assignment: Assignment
    formula: Formula

    @property
    def depth(self) -> int:
        return len(self.assignment)

    @property
    def label(self) -> str:
        return self.assignment.label


def group_blocks(quantified: Iterable[Tuple[int, Quantifier]]) -> Tuple[QuantifierBlock, ...]:
    """Group ``(var, quantifier)`` pairs into blocks, coalescing consecutive kinds."""
    blocks: List[QuantifierBlock] = []
    current: List[int] = []
    kind: Optional[Quantifier] = None
    for var, q in quantified:
        if q is not kind and current:
            blocks.append(QuantifierBlock(kind, tuple(current)))
            current = []
        kind = q
        current.append(var)
    if current:
        blocks.append(QuantifierBlock(kind, tuple(current)))
    return tuple(blocks)
