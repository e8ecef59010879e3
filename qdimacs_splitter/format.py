"""
Formatting utilities that turn formulas back into extended QDIMACS text.

Output order: provenance comments, assumption lines, problem line,
quantifier blocks, clauses. Every clause and block ends with "0".
"""

from typing import Iterable, List, Sequence, Union

from .formula import (
    AssumptionDirective, AssumptionLine, BitPattern, Clause, Formula,
    ProblemHeader, QuantifierBlock
)


def fmt_ints(values: Iterable[int]) -> str:
    """Format integers space-separated: [1, -2] -> '1 -2'"""
    return ' '.join(str(v) for v in values)


def fmt_clause(clause: Clause) -> str:
    """Format clause: (1, -2) -> '1 -2 0', () -> '0'"""
    if not clause:
        return '0'
    return f"{fmt_ints(clause)} 0"


def fmt_block(block: QuantifierBlock) -> str:
    """Format quantifier block: e (1, 2) -> 'e 1 2 0'"""
    return f"{block.quantifier.value} {fmt_ints(block.variables)} 0"


def fmt_header(header: ProblemHeader) -> str:
    return f"p cnf {header.num_vars} {header.num_clauses}"


def fmt_value(value: Union[int, BitPattern]) -> str:
    """Format a directive value: 5 -> '5', BitPattern('0110') -> '{0110}'"""
    if isinstance(value, BitPattern):
        return f"{{{value.bits}}}"
    return str(value)


def fmt_directive(directive: AssumptionDirective) -> str:
    """Format directive: '[1 2 3] < 5', or '= {01}' without operands."""
    body = f"{directive.comparison.value} {fmt_value(directive.value)}"
    if directive.operands is None:
        return body
    return f"[{fmt_ints(directive.operands)}] {body}"


def fmt_assumption_line(line: AssumptionLine) -> str:
    """Format an assumption line: 'cs int [1 2] < 3 ; > 0'"""
    directives = ' ; '.join(fmt_directive(d) for d in line.directives)
    return f"{line.marker} int {directives}"


def recompute_header(formula: Formula) -> ProblemHeader:
    """Header matching what is actually emitted for ``formula``."""
    return ProblemHeader(formula.max_variable(), len(formula.clauses))


def emit_qdimacs(
    formula: Formula,
    recompute: bool = True,
    comments: Sequence[str] = ()
) -> str:
    """
    Serialize a formula to extended QDIMACS.

    Args:
        formula: The formula to write.
        recompute: Write counts derived from the emitted content instead of
            the declared header.
        comments: Optional provenance lines, written as 'c <text>'.

    Returns:
        The document text, newline-terminated.
    """
    header = recompute_header(formula) if recompute else formula.header

    lines: List[str] = [f"c {text}" for text in comments]
    lines.extend(fmt_assumption_line(a) for a in formula.assumptions)
    lines.append(fmt_header(header))
    lines.extend(fmt_block(b) for b in formula.prefix)
    lines.extend(fmt_clause(c) for c in formula.clauses)
    return '\n'.join(lines) + '\n'
