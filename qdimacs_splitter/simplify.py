"""
Clause simplification and quantifier-prefix rewriting under a partial assignment.

All functions are pure: they build new tuples and never touch their inputs,
so branches can be processed independently.
"""

from typing import Iterable, List, Sequence, Tuple

from .formula import Assignment, Clause, Quantifier, QuantifierBlock, group_blocks


def simplify_clause(clause: Clause, assignment: Assignment) -> Tuple[bool, Clause]:
    """
    Simplify one clause.

    Returns:
        Tuple of (satisfied, clause) where satisfied is True if some literal
        evaluates to true, and clause keeps the literals that are unassigned,
        in their original order.
    """
    kept = []
    for lit in clause:
        value = assignment.value_of(lit)
        if value is None:
            kept.append(lit)
        elif value:
            return True, clause
    return False, tuple(kept)


def simplify_clauses(clauses: Iterable[Clause], assignment: Assignment) -> Tuple[Clause, ...]:
    """
    Propagate an assignment through a clause sequence.

    Satisfied clauses are dropped, falsified literals are removed, and a clause
    whose literals are all falsified is kept as the empty clause.
    """
    if not len(assignment):
        return tuple(tuple(c) for c in clauses)

    result: List[Clause] = []
    for clause in clauses:
        satisfied, simplified = simplify_clause(clause, assignment)
        if not satisfied:
            result.append(simplified)
    return tuple(result)


def rewrite_prefix(
    prefix: Sequence[QuantifierBlock],
    assignment: Assignment
) -> Tuple[QuantifierBlock, ...]:
    """
    Remove assigned variables from the quantifier prefix.

    Blocks that become empty are dropped; the order of the remaining blocks
    and of the variables inside them is kept. Unassigned variables keep their
    quantifier.
    """
    blocks = []
    for block in prefix:
        remaining = tuple(v for v in block.variables if v not in assignment)
        if remaining:
            blocks.append(QuantifierBlock(block.quantifier, remaining))
    return tuple(blocks)


def assume_prefix(
    prefix: Sequence[QuantifierBlock],
    assignment: Assignment
) -> Tuple[QuantifierBlock, ...]:
    """
    Keep assigned variables in the prefix but quantify them existentially.

    Used together with unit clauses pinning each assigned variable: a
    universal pinned to one value is only consistent as an existential.
    Consecutive blocks of the same kind are coalesced.
    """
    quantified = []
    for block in prefix:
        for var in block.variables:
            q = Quantifier.EXISTS if var in assignment else block.quantifier
            quantified.append((var, q))
    return group_blocks(quantified)


def unit_clauses(assignment: Assignment) -> Tuple[Clause, ...]:
    """One unit clause per assigned literal, in prefix order."""
    return tuple((lit,) for lit in assignment.literals())
