"""
QDIMACS Splitter Package

This package parses quantified Boolean formulas in an extended QDIMACS
format, splits them over a leading segment of the quantifier prefix into
2^d simplified sub-formulas, and builds a selector formula that merges the
branches back together.
"""

from .formula import (
    Quantifier, Comparison, BitPattern, AssumptionDirective, AssumptionLine,
    QuantifierBlock, ProblemHeader, Formula, Assignment, SplitResult
)
from .parser import QdimacsParser, parse_qdimacs, read_qdimacs
from .simplify import simplify_clauses, rewrite_prefix, assume_prefix
from .splitter import (
    SplitMode, split_variables, enumerate_assignments, assignment_for_index,
    split_branch, iter_splits, split
)
from .format import (
    fmt_clause, fmt_block, fmt_header, fmt_directive, fmt_assumption_line,
    emit_qdimacs
)
from .merge import build_merge_formula, selector_variables, decode_merge_model
from .files import (
    branch_filename, merge_filename, parse_branch_label, write_formula,
    write_splits, expand_patterns, load_split_results
)
from .errors import (
    QdimacsError, ParseError, MalformedLine, UndeclaredVariable,
    DuplicateQuantification, StructuralMismatch, DepthOutOfRange, MergeError
)

__all__ = [
    # Document model
    'Quantifier',
    'Comparison',
    'BitPattern',
    'AssumptionDirective',
    'AssumptionLine',
    'QuantifierBlock',
    'ProblemHeader',
    'Formula',
    'Assignment',
    'SplitResult',

    # Parsing
    'QdimacsParser',
    'parse_qdimacs',
    'read_qdimacs',

    # Simplification
    'simplify_clauses',
    'rewrite_prefix',
    'assume_prefix',

    # Splitting
    'SplitMode',
    'split_variables',
    'enumerate_assignments',
    'assignment_for_index',
    'split_branch',
    'iter_splits',
    'split',

    # Formatting
    'fmt_clause',
    'fmt_block',
    'fmt_header',
    'fmt_directive',
    'fmt_assumption_line',
    'emit_qdimacs',

    # Merging
    'build_merge_formula',
    'selector_variables',
    'decode_merge_model',

    # Files
    'branch_filename',
    'merge_filename',
    'parse_branch_label',
    'write_formula',
    'write_splits',
    'expand_patterns',
    'load_split_results',

    # Errors
    'QdimacsError',
    'ParseError',
    'MalformedLine',
    'UndeclaredVariable',
    'DuplicateQuantification',
    'StructuralMismatch',
    'DepthOutOfRange',
    'MergeError',
]
