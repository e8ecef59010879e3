#!/usr/bin/env python3
"""
Tests for splitting, clause simplification and prefix rewriting.

Checks:
1. Splitting at depth d yields 2^d branches in binary index order
2. Simplification drops satisfied clauses and falsified literals
3. Fixed variables leave the quantifier prefix
4. Branches preserve satisfiability (cross-checked with PySAT)
"""

import random
import sys

import pytest
from pysat.solvers import Glucose3

from qdimacs_splitter import (
    Assignment,
    DepthOutOfRange,
    Formula,
    ProblemHeader,
    Quantifier,
    QuantifierBlock,
    SplitMode,
    assignment_for_index,
    emit_qdimacs,
    enumerate_assignments,
    iter_splits,
    parse_qdimacs,
    rewrite_prefix,
    simplify_clauses,
    split,
    split_variables,
)

EXAMPLE = """p cnf 3 2
e 1 2 3 0
1 2 0
-1 3 0
"""

MIXED = """p cnf 5 4
a 1 2 0
e 3 0
a 4 0
e 5 0
1 3 0
-2 -3 4 0
2 5 0
-4 -5 0
"""


def _assignment(pairs, quantifier=Quantifier.EXISTS):
    return Assignment(
        variables=tuple(v for v, _ in pairs),
        values=tuple(val for _, val in pairs),
        quantifiers=tuple(quantifier for _ in pairs),
    )


def test_example_depth_one():
    results = split(parse_qdimacs(EXAMPLE), 1)

    assert len(results) == 2
    low, high = results
    assert low.index == 0 and low.assignment.as_dict() == {1: False}
    assert high.index == 1 and high.assignment.as_dict() == {1: True}

    # x1 = false: '1 2' loses literal 1, '-1 3' is satisfied
    assert low.formula.clauses == ((2,),)
    # x1 = true: '1 2' is satisfied, '-1 3' loses literal -1
    assert high.formula.clauses == ((3,),)

    for result in results:
        assert result.formula.prefix == (QuantifierBlock(Quantifier.EXISTS, (2, 3)),)

    assert emit_qdimacs(low.formula) == "p cnf 3 1\ne 2 3 0\n2 0\n"


def test_depth_zero_is_identity():
    for text in (EXAMPLE, MIXED):
        formula = parse_qdimacs(text)
        results = split(formula, 0)
        assert len(results) == 1
        (result,) = results
        assert result.index == 0
        assert len(result.assignment) == 0
        assert result.formula == formula
        assert result.formula.prefix == formula.prefix
        assert sorted(result.formula.clauses) == sorted(formula.clauses)


@pytest.mark.parametrize("depth", [0, 1, 2, 3, 4, 5])
def test_branch_count_and_order(depth):
    formula = parse_qdimacs(MIXED)
    results = split(formula, depth)

    assert len(results) == 2 ** depth
    assert [r.index for r in results] == list(range(2 ** depth))

    # Every assignment to the first d prefix variables appears exactly once
    seen = {r.assignment.values for r in results}
    assert len(seen) == 2 ** depth

    for result in results:
        assert result.assignment.variables == tuple(formula.prefix_variables()[:depth])
        bits = format(result.index, f"0{depth}b") if depth else ""
        assert result.label == bits.replace("0", "f").replace("1", "t")


def test_enumeration_matches_index_formula():
    variables = [(4, Quantifier.EXISTS), (2, Quantifier.FORALL), (7, Quantifier.EXISTS)]
    enumerated = list(enumerate_assignments(variables))
    assert len(enumerated) == 8
    for k, assignment in enumerate(enumerated):
        assert assignment == assignment_for_index(variables, k)
        assert assignment.index == k
    assert enumerated[1].as_dict() == {4: False, 2: False, 7: True}
    assert enumerated[4].as_dict() == {4: True, 2: False, 7: False}

    with pytest.raises(ValueError):
        assignment_for_index(variables, 8)


def test_universal_variables_split_into_both_branches():
    formula = parse_qdimacs(MIXED)
    results = split(formula, 2)
    assert len(results) == 4
    for result in results:
        assert result.assignment.quantifiers == (Quantifier.FORALL, Quantifier.FORALL)
        assert result.assignment.fixes_universal()


def test_depth_out_of_range():
    formula = parse_qdimacs(EXAMPLE)
    with pytest.raises(DepthOutOfRange) as info:
        split(formula, 4)
    assert info.value.depth == 4
    assert info.value.available == 3

    with pytest.raises(DepthOutOfRange):
        iter_splits(formula, -1)

    # Full depth is allowed
    assert len(split(formula, 3)) == 8


def test_simplification_soundness():
    clauses = ((1, 2, 3), (-1, 4), (2, -4), (5, 6), (-2, -1))
    assignment = _assignment([(1, True), (2, False)])

    simplified = simplify_clauses(clauses, assignment)
    assert simplified == ((4,), (-4,), (5, 6))

    # Clauses without assigned variables are untouched
    assert (5, 6) in simplified
    # No satisfied clause survives, no falsified literal survives
    for clause in simplified:
        assert 1 not in clause and -2 not in clause
        assert -1 not in clause and 2 not in clause


def test_literal_order_preserved():
    simplified = simplify_clauses(((3, 1, -5, 2),), _assignment([(1, False)]))
    assert simplified == ((3, -5, 2),)


def test_empty_clause_propagation():
    formula = parse_qdimacs("p cnf 2 2\ne 1 2 0\n1 0\n-1 2 0\n")
    low, high = split(formula, 1)

    assert low.formula.clauses == ((),)
    assert low.formula.has_empty_clause()
    assert high.formula.clauses == ((2,),)

    # The empty clause is emitted and re-parses
    text = emit_qdimacs(low.formula)
    assert text == "p cnf 2 1\ne 2 0\n0\n"
    assert parse_qdimacs(text).clauses == ((),)


def test_fully_satisfied_branch_has_no_clauses():
    formula = parse_qdimacs("p cnf 2 1\ne 1 2 0\n1 2 0\n")
    high = split(formula, 1)[1]
    assert high.formula.clauses == ()
    assert parse_qdimacs(emit_qdimacs(high.formula)).clauses == ()


def test_quantifier_exhaustion():
    formula = parse_qdimacs(MIXED)

    # Depth 2 covers the whole first (universal) block
    for result in split(formula, 2):
        kinds = [b.quantifier for b in result.formula.prefix]
        assert kinds == [Quantifier.EXISTS, Quantifier.FORALL, Quantifier.EXISTS]
        assert result.formula.prefix_variables() == [3, 4, 5]

    # Depth 1 only shrinks it
    for result in split(formula, 1):
        assert result.formula.prefix[0] == QuantifierBlock(Quantifier.FORALL, (2,))


def test_rewrite_prefix_keeps_unfixed_quantifiers():
    prefix = (
        QuantifierBlock(Quantifier.FORALL, (1, 2)),
        QuantifierBlock(Quantifier.EXISTS, (3,)),
    )
    rewritten = rewrite_prefix(prefix, _assignment([(1, True)], Quantifier.FORALL))
    assert rewritten == (
        QuantifierBlock(Quantifier.FORALL, (2,)),
        QuantifierBlock(Quantifier.EXISTS, (3,)),
    )


def test_branches_do_not_share_state():
    formula = parse_qdimacs(MIXED)
    results = split(formula, 2)
    assert formula == parse_qdimacs(MIXED)
    assert results[0].formula.clauses is not results[1].formula.clauses
    assert results[0].formula is not formula


def test_assumptions_pass_through():
    formula = parse_qdimacs("cs int [1 2] < 2\np cnf 2 1\ne 1 2 0\n1 2 0\n")
    for result in split(formula, 1):
        assert result.formula.assumptions == formula.assumptions


def test_assume_mode():
    formula = parse_qdimacs("p cnf 3 2\na 1 0\ne 2 3 0\n1 2 0\n-1 3 0\n")
    low, high = split(formula, 1, mode="assume")

    # Fixed universal is pinned by a unit clause and quantified existentially
    assert low.formula.prefix == (QuantifierBlock(Quantifier.EXISTS, (1, 2, 3)),)
    assert low.formula.clauses == ((1, 2), (-1, 3), (-1,))
    assert high.formula.clauses == ((1, 2), (-1, 3), (1,))
    assert emit_qdimacs(high.formula) == "p cnf 3 3\ne 1 2 3 0\n1 2 0\n-1 3 0\n1 0\n"


def test_assume_mode_keeps_later_universals():
    formula = parse_qdimacs(MIXED)
    result = split(formula, 1, mode=SplitMode.ASSUME)[0]
    assert result.formula.prefix == (
        QuantifierBlock(Quantifier.EXISTS, (1,)),
        QuantifierBlock(Quantifier.FORALL, (2,)),
        QuantifierBlock(Quantifier.EXISTS, (3,)),
        QuantifierBlock(Quantifier.FORALL, (4,)),
        QuantifierBlock(Quantifier.EXISTS, (5,)),
    )


def test_parallel_matches_sequential():
    formula = parse_qdimacs(MIXED)
    sequential = split(formula, 4)
    parallel = list(iter_splits(formula, 4, workers=3, chunk_size=1))
    assert parallel == sequential


def test_iter_splits_is_lazy():
    formula = parse_qdimacs(MIXED)
    results = iter_splits(formula, 3)
    first = next(results)
    assert first.index == 0
    assert len(list(results)) == 7


def _random_formula(rng, n_vars, n_clauses):
    clauses = []
    for _ in range(n_clauses):
        chosen = rng.sample(range(1, n_vars + 1), 3)
        clauses.append(tuple(v if rng.random() < 0.5 else -v for v in chosen))
    return Formula(
        header=ProblemHeader(n_vars, n_clauses),
        prefix=(QuantifierBlock(Quantifier.EXISTS, tuple(range(1, n_vars + 1))),),
        clauses=tuple(clauses),
    )


def _is_sat(clauses, assumptions=()):
    if any(len(c) == 0 for c in clauses):
        return False
    # Tautologies make sure every assumed variable is known to the solver
    known = [[abs(lit), -abs(lit)] for lit in assumptions]
    with Glucose3(bootstrap_with=[list(c) for c in clauses] + known) as solver:
        return solver.solve(assumptions=list(assumptions))


def test_branches_preserve_satisfiability():
    rng = random.Random(7)
    for _ in range(20):
        formula = _random_formula(rng, n_vars=8, n_clauses=rng.randint(20, 40))
        original_sat = _is_sat(formula.clauses)

        for depth in (1, 2, 3):
            results = split(formula, depth)
            branch_sat = []
            for result in results:
                sat = _is_sat(result.formula.clauses)
                # Each branch is the original under its assignment
                assert sat == _is_sat(formula.clauses, result.assignment.literals())
                branch_sat.append(sat)
            assert any(branch_sat) == original_sat


def test_split_variables():
    formula = parse_qdimacs(MIXED)
    assert split_variables(formula, 3) == [
        (1, Quantifier.FORALL), (2, Quantifier.FORALL), (3, Quantifier.EXISTS)
    ]


def main():
    """Run all tests."""
    print("=" * 50)
    print("Splitter Tests")
    print("=" * 50)
    sys.exit(pytest.main([__file__, "-q"]))


if __name__ == "__main__":
    main()
