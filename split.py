"""
Split a QDIMACS formula into 2^depth sub-formulas, or merge split branches.

Usage:
    python split.py input=formula.qdimacs
    python split.py input=formula.qdimacs depth=3 merge=true output.dir=out
    python split.py input=formula.qdimacs mode=assume workers=4
    python split.py action=merge input=formula.qdimacs 'branches=["out/*:formula.qdimacs"]'
"""

import logging
import sys
from pathlib import Path

import hydra
from omegaconf import DictConfig, OmegaConf

from qdimacs_splitter import (
    QdimacsError,
    build_merge_formula,
    expand_patterns,
    iter_splits,
    load_split_results,
    merge_filename,
    read_qdimacs,
    write_formula,
    write_splits,
)

logger = logging.getLogger(__name__)


def resolve_path(path: str, orig_cwd: str) -> str:
    """Resolve a potentially relative path against the original working directory."""
    p = Path(path)
    if not p.is_absolute():
        p = Path(orig_cwd) / p
    return str(p)


def run_split(cfg: DictConfig, input_path: str, output_dir: str) -> None:
    formula = read_qdimacs(input_path)
    source_name = Path(input_path).name
    logger.info(
        "Read %s: %d prefix variable(s), %d clause(s)",
        source_name, len(formula.prefix_variables()), len(formula.clauses)
    )

    results = iter_splits(formula, cfg.depth, mode=cfg.mode, workers=cfg.workers)
    _, kept = write_splits(
        results,
        output_dir,
        source_name,
        separator=cfg.output.separator,
        comments=cfg.output.comments,
        keep=cfg.merge,
        total=2 ** cfg.depth,
    )

    if cfg.merge:
        merged = build_merge_formula(kept)
        path = Path(output_dir) / merge_filename(source_name, cfg.output.separator)
        write_formula(merged, path)
        logger.info("Wrote merge formula to %s", path)


def run_merge(cfg: DictConfig, input_path: str, output_dir: str, orig_cwd: str) -> None:
    original = read_qdimacs(input_path)
    source_name = Path(input_path).name
    paths = expand_patterns(cfg.branches, orig_cwd)
    for path in paths:
        logger.info("File: %s", path)

    # Globs over the output directory also match the merge file
    results = load_split_results(
        original, paths, separator=cfg.output.separator, skip_unlabeled=True
    )
    merged = build_merge_formula(results)

    Path(output_dir).mkdir(parents=True, exist_ok=True)
    path = Path(output_dir) / merge_filename(source_name, cfg.output.separator)
    write_formula(merged, path)
    logger.info("Wrote merge formula to %s", path)


@hydra.main(version_base=None, config_path="configs", config_name="default")
def main(cfg: DictConfig):
    # Ensure logging shows on console (Hydra can redirect it)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s", force=True)
    logger.debug("Configuration:\n%s", OmegaConf.to_yaml(cfg))

    # Hydra changes cwd; resolve all paths relative to the original cwd
    orig_cwd = hydra.utils.get_original_cwd()
    input_path = resolve_path(cfg.input, orig_cwd)
    output_dir = resolve_path(cfg.output.dir, orig_cwd)

    try:
        if cfg.action == "split":
            run_split(cfg, input_path, output_dir)
        elif cfg.action == "merge":
            run_merge(cfg, input_path, output_dir, orig_cwd)
        else:
            logger.error("Unknown action %r, expected 'split' or 'merge'", cfg.action)
            sys.exit(2)
    except (QdimacsError, OSError, ValueError) as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
