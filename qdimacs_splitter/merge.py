"""
Merge formula construction.

The merge formula selects one split branch per satisfying assignment:

    exists s_0 .. s_{n-1} . Q . AND_i (s_i -> branch_i) AND (s_0 OR .. OR s_{n-1})

where Q is the branches' common remaining prefix and the free variables are
shared between branches. For existential split variables it holds exactly
when the original formula holds, and the first true selector tells which
assignment to the split variables completes a model of the branch.
"""

import logging
from typing import Dict, Iterable, List, Sequence

from .errors import MergeError
from .formula import (
    Clause, Formula, ProblemHeader, Quantifier, SplitResult, group_blocks
)

logger = logging.getLogger(__name__)


def _check_results(results: Sequence[SplitResult]) -> List[SplitResult]:
    """Order results by index and check that they form one complete split."""
    if not results:
        raise MergeError("no split results given")

    ordered = sorted(results, key=lambda r: r.index)
    first = ordered[0]
    expected = 2 ** first.depth
    seen = set()
    for result in ordered:
        if result.index in seen:
            raise MergeError("duplicate branch index", result.index)
        seen.add(result.index)
        if result.assignment.variables != first.assignment.variables:
            raise MergeError("branches were split on different variables", result.index)
        if result.assignment.index != result.index:
            raise MergeError("branch index does not match its assignment", result.index)
        if result.formula.prefix != first.formula.prefix:
            raise MergeError("branches have different quantifier prefixes", result.index)

    if len(ordered) != expected:
        missing = sorted(set(range(expected)) - seen)
        raise MergeError(f"expected {expected} branches, missing {missing}")

    for var, quantifier in zip(first.assignment.variables, first.assignment.quantifiers):
        if quantifier is Quantifier.FORALL:
            raise MergeError(
                f"split variable {var} is universally quantified; "
                "universal branches combine by conjunction"
            )
    return ordered


def selector_variables(results: Sequence[SplitResult]) -> List[int]:
    """
    Selector variable ids, one per branch in index order.

    Selectors are numbered after every variable that is declared or used.
    """
    base = max(
        max(r.formula.header.num_vars for r in results),
        max(r.formula.max_variable() for r in results),
        max((v for r in results for v in r.assignment.variables), default=0),
    )
    return [base + 1 + i for i in range(len(results))]


def build_merge_formula(results: Sequence[SplitResult]) -> Formula:
    """
    Build the selector formula over a complete set of split results.

    Args:
        results: All 2^d branches of one split, in any order.

    Returns:
        A Formula whose prefix starts with an existential block of selectors,
        followed by the branches' remaining prefix.

    Raises:
        MergeError: If the results are incomplete, inconsistent, or were split
            on a universally quantified variable.
    """
    ordered = _check_results(results)
    selectors = selector_variables(ordered)

    clauses: List[Clause] = []
    for result, selector in zip(ordered, selectors):
        for clause in result.formula.clauses:
            clauses.append(tuple(clause) + (-selector,))
    clauses.append(tuple(selectors))

    quantified = [(s, Quantifier.EXISTS) for s in selectors]
    for block in ordered[0].formula.prefix:
        quantified.extend((v, block.quantifier) for v in block.variables)

    logger.info(
        "Merge formula: %d selector(s), %d clause(s)", len(selectors), len(clauses)
    )
    return Formula(
        header=ProblemHeader(selectors[-1], len(clauses)),
        prefix=group_blocks(quantified),
        clauses=tuple(clauses),
        assumptions=ordered[0].formula.assumptions,
    )


def decode_merge_model(
    results: Sequence[SplitResult],
    model: Iterable[int]
) -> Dict[int, bool]:
    """
    Translate a model of the merge formula into a model of the original formula.

    Args:
        results: The results the merge formula was built from.
        model: Literals of the merge formula's model.

    Returns:
        Mapping from original variable to value: the selected branch's fixed
        values plus the model's values for every non-selector variable.

    Raises:
        MergeError: If no selector is true in the model.
    """
    ordered = _check_results(results)
    selectors = selector_variables(ordered)
    selector_set = set(selectors)
    model = list(model)
    true_literals = {lit for lit in model if lit > 0}

    for result, selector in zip(ordered, selectors):
        if selector in true_literals:
            values = {abs(lit): lit > 0 for lit in model if abs(lit) not in selector_set}
            values.update(result.assignment.as_dict())
            return values
    raise MergeError("no selector is true in the model")
