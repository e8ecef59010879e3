"""
Reading and writing split branches on disk.

Branch files are named ``<label><separator><source name>``, where the label
has one character per split variable ('f' or 't') in prefix order.
"""

import glob
import logging
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from .format import emit_qdimacs
from .formula import Assignment, Formula, SplitResult
from .parser import read_qdimacs
from .splitter import split_variables

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def branch_filename(label: str, source_name: str, separator: str = ":") -> str:
    """File name of a branch: ('ft', 'x.qdimacs') -> 'ft:x.qdimacs'"""
    return f"{label}{separator}{source_name}"


def merge_filename(source_name: str, separator: str = ":") -> str:
    return f"merge{separator}{source_name}"


def parse_branch_label(filename: str, separator: str = ":") -> Optional[str]:
    """Return the branch label of a branch file name, or None if it is not one."""
    if separator not in filename:
        return None
    label = filename.split(separator, 1)[0]
    if set(label) - {"f", "t"}:
        return None
    return label


def write_formula(formula: Formula, path: PathLike, comments: Sequence[str] = ()) -> Path:
    """Emit a formula to ``path``."""
    path = Path(path)
    with open(path, 'w') as f:
        f.write(emit_qdimacs(formula, comments=comments))
    return path


def _provenance(result: SplitResult, source_name: str) -> List[str]:
    literals = ' '.join(str(lit) for lit in result.assignment.literals())
    return [
        f"branch {result.index} ({result.label or 'root'}) of {source_name}",
        f"fixed: {literals}" if literals else "fixed: none",
    ]


def write_splits(
    results: Iterable[SplitResult],
    output_dir: PathLike,
    source_name: str,
    separator: str = ":",
    comments: bool = False,
    keep: bool = False,
    total: Optional[int] = None
) -> Tuple[List[Path], List[SplitResult]]:
    """
    Write split branches as they are produced.

    Args:
        results: Branches, typically the lazy iterator from iter_splits().
        output_dir: Directory for the branch files (created if missing).
        source_name: File name of the split formula, used in branch names.
        separator: String between branch label and source name.
        comments: Whether to write provenance comment lines.
        keep: Whether to retain and return the results (needed for merging).
        total: Number of branches, for the progress bar.

    Returns:
        Tuple of (written paths, retained results).
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    paths: List[Path] = []
    kept: List[SplitResult] = []
    for result in tqdm(results, total=total, desc="Writing branches"):
        name = branch_filename(result.label, source_name, separator)
        lines = _provenance(result, source_name) if comments else ()
        paths.append(write_formula(result.formula, output_path / name, lines))
        if keep:
            kept.append(result)

    logger.info("Wrote %d branch file(s) to %s", len(paths), output_path)
    return paths, kept


def expand_patterns(patterns: Iterable[str], root: PathLike = ".") -> List[Path]:
    """Expand glob patterns relative to ``root`` into a sorted, de-duplicated file list."""
    root = Path(root)
    found = set()
    for pattern in patterns:
        full = pattern if Path(pattern).is_absolute() else str(root / pattern)
        matches = [Path(p) for p in glob.glob(full) if Path(p).is_file()]
        if not matches:
            logger.warning("Pattern %r matched no files", pattern)
        found.update(matches)
    return sorted(found)


def load_split_results(
    original: Formula,
    paths: Iterable[PathLike],
    separator: str = ":",
    skip_unlabeled: bool = False
) -> List[SplitResult]:
    """
    Re-create split results from branch files.

    The split variables are recovered from the original formula: a label of
    length d fixes the first d variables of its prefix. Each branch keeps the
    original's declared header, since emitted branch headers are recomputed.

    Args:
        original: The formula the branches were split from.
        paths: Branch files.
        separator: String between branch label and source name.
        skip_unlabeled: Skip files without a branch label (such as the merge
            file matched by the same glob) instead of raising.

    Raises:
        ValueError: If a file name carries no branch label and skip_unlabeled is False.
        ParseError: If a branch file cannot be parsed.
        DepthOutOfRange: If a label is longer than the original prefix.
    """
    results = []
    for path in paths:
        path = Path(path)
        label = parse_branch_label(path.name, separator)
        if label is None:
            if skip_unlabeled:
                logger.warning("Skipping %s: not a branch file name", path)
                continue
            raise ValueError(f"Not a branch file name: {path.name}")

        variables = split_variables(original, len(label))
        assignment = Assignment(
            variables=tuple(v for v, _ in variables),
            values=tuple(c == "t" for c in label),
            quantifiers=tuple(q for _, q in variables),
        )
        formula = replace(read_qdimacs(path), header=original.header)
        results.append(SplitResult(assignment.index, assignment, formula))
    return sorted(results, key=lambda r: r.index)
