"""
Case splitting over the leading variables of the quantifier prefix.

Splitting at depth d fixes the first d prefix variables to every one of the
2^d combinations of values. Branch k fixes the variables to the binary digits
of k, first variable most significant, so branches come out in the order of
a depth-first walk that tries false before true.
"""

import itertools
import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import Iterator, List, Sequence, Tuple, Union

from .errors import DepthOutOfRange
from .formula import Assignment, Formula, Quantifier, SplitResult
from .simplify import (
    assume_prefix, rewrite_prefix, simplify_clauses, unit_clauses
)

logger = logging.getLogger(__name__)

SplitVariable = Tuple[int, Quantifier]


class SplitMode(Enum):
    """How a branch is derived from its assignment."""
    SIMPLIFY = "simplify"  # substitute constants, drop fixed variables
    ASSUME = "assume"  # keep the matrix, pin fixed variables with unit clauses


def split_variables(formula: Formula, depth: int) -> List[SplitVariable]:
    """
    Return the first ``depth`` prefix variables with their quantifiers.

    Raises:
        DepthOutOfRange: If depth is negative or larger than the prefix.
    """
    quantified = [(v, b.quantifier) for b in formula.prefix for v in b.variables]
    if depth < 0 or depth > len(quantified):
        raise DepthOutOfRange(depth, len(quantified))
    return quantified[:depth]


def enumerate_assignments(variables: Sequence[SplitVariable]) -> Iterator[Assignment]:
    """
    Enumerate all assignments to ``variables`` in branch-index order.

    Depth-first with an explicit worklist; false is tried before true.
    """
    stack = [Assignment()]
    while stack:
        partial_assignment = stack.pop()
        level = len(partial_assignment)
        if level == len(variables):
            yield partial_assignment
            continue
        var, quantifier = variables[level]
        # Push true first so that false is expanded first
        stack.append(partial_assignment.extend(var, True, quantifier))
        stack.append(partial_assignment.extend(var, False, quantifier))


def assignment_for_index(variables: Sequence[SplitVariable], index: int) -> Assignment:
    """Build the assignment of branch ``index`` directly from its binary digits."""
    depth = len(variables)
    if not 0 <= index < 2 ** depth:
        raise ValueError(f"Branch index {index} out of range for depth {depth}")
    values = tuple(bool((index >> (depth - 1 - i)) & 1) for i in range(depth))
    return Assignment(
        variables=tuple(v for v, _ in variables),
        values=values,
        quantifiers=tuple(q for _, q in variables)
    )


def split_branch(
    formula: Formula,
    assignment: Assignment,
    mode: SplitMode = SplitMode.SIMPLIFY
) -> SplitResult:
    """
    Derive the branch of ``formula`` for one assignment.

    Args:
        formula: The original formula.
        assignment: Values for a leading segment of the prefix.
        mode: SIMPLIFY substitutes the values and removes the fixed variables
            from the prefix; ASSUME keeps them, quantified existentially, and
            appends one unit clause per fixed literal.

    Returns:
        The SplitResult holding an independent copy of prefix and clauses.
    """
    if mode is SplitMode.SIMPLIFY:
        prefix = rewrite_prefix(formula.prefix, assignment)
        clauses = simplify_clauses(formula.clauses, assignment)
    else:
        prefix = assume_prefix(formula.prefix, assignment)
        clauses = tuple(tuple(c) for c in formula.clauses) + unit_clauses(assignment)

    branch = Formula(
        header=formula.header,
        prefix=prefix,
        clauses=clauses,
        assumptions=formula.assumptions,
    )
    if branch.has_empty_clause():
        logger.debug("Branch %s contains the empty clause", assignment.label or "<root>")
    return SplitResult(index=assignment.index, assignment=assignment, formula=branch)


def iter_splits(
    formula: Formula,
    depth: int,
    mode: Union[SplitMode, str] = SplitMode.SIMPLIFY,
    workers: int = 1,
    chunk_size: int = 64
) -> Iterator[SplitResult]:
    """
    Lazily produce all 2^depth branches in index order.

    The depth is validated immediately. With ``workers > 1`` branches are built
    on a thread pool, ``chunk_size`` per worker at a time, and still yielded in
    index order.

    Raises:
        DepthOutOfRange: If depth is negative or larger than the prefix.
    """
    mode = SplitMode(mode)
    variables = split_variables(formula, depth)
    logger.info(
        "Splitting on %d variable(s) %s into %d branch(es) (%s)",
        depth, [v for v, _ in variables], 2 ** depth, mode.value
    )
    if workers <= 1:
        return _split_sequential(formula, variables, mode)
    return _split_parallel(formula, variables, mode, workers, chunk_size)


def _split_sequential(
    formula: Formula,
    variables: Sequence[SplitVariable],
    mode: SplitMode
) -> Iterator[SplitResult]:
    for assignment in enumerate_assignments(variables):
        yield split_branch(formula, assignment, mode)


def _split_parallel(
    formula: Formula,
    variables: Sequence[SplitVariable],
    mode: SplitMode,
    workers: int,
    chunk_size: int
) -> Iterator[SplitResult]:
    build = partial(split_branch, formula, mode=mode)
    assignments = enumerate_assignments(variables)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        while True:
            chunk = list(itertools.islice(assignments, workers * chunk_size))
            if not chunk:
                break
            yield from executor.map(build, chunk)


def split(
    formula: Formula,
    depth: int,
    mode: Union[SplitMode, str] = SplitMode.SIMPLIFY,
    workers: int = 1
) -> List[SplitResult]:
    """Split ``formula`` at ``depth`` and return all branches, ordered by index."""
    return list(iter_splits(formula, depth, mode=mode, workers=workers))
