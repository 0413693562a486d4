#!/usr/bin/env python3
"""
Alteration Matrix Builder - gene x sample input for mutual-exclusivity search.

Stages (in this order, each on the settled output of the previous one):
1. Copy-number verification against expression (per gene)
2. Minor copy-number call removal (per gene)
3. Hyper-altered sample detection (whole cohort, once)
4. Frequency filter on non-hyper samples
5. Rank cap to the most altered genes
6. Encoding and writing of DataMatrix.txt

Outputs (under --output-dir):
- DataMatrix.txt: tab-delimited gene x sample alteration codes (0..5)
- diagnostics.tsv: non-fatal decisions per gene
- run_summary.json: counts per stage and the effective configuration
"""
import argparse
import json
import logging
import sys
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from alteration_model import Cohort
from cn_verifier import CopyNumberVerifier
from cohort_source import FileCohortSource, fetch_cohort, read_id_list
from diagnostics import Diagnostic, diagnostics_to_frame
from gene_selection import cap_by_rank, filter_by_frequency
from matrix_io import build_matrix, write_matrix
from minor_calls import resolve_minor_calls
from outliers import OUTLIER_METHODS, detect_hyper_altered

logger = logging.getLogger(__name__)

# camelCase parameter-file keys accepted alongside the field names
OPTION_ALIASES = {
    "expressionSignificanceThreshold": "expression_significance_threshold",
    "minAlterationFraction": "min_alteration_fraction",
    "geneCountLimit": "gene_count_limit",
    "outlierHighOnly": "outlier_high_only",
}


def setup_logging(verbosity: int = 1):
    """Setup logging with verbosity control."""
    level = logging.WARNING if verbosity <= 0 else (logging.INFO if verbosity == 1 else logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


# ============================================================================
# Configuration
# ============================================================================

@dataclass
class Config:
    """Pipeline configuration with the standard defaults."""
    # Verification
    expression_significance_threshold: float = 0.05
    min_expression_group_size: int = 2
    expression_log_transform: bool = True

    # Selection
    min_alteration_fraction: float = 0.01
    gene_count_limit: int = 500

    # Hyper-altered samples
    outlier_high_only: bool = True
    outlier_method: str = "iqr"
    outlier_iqr_k: float = 1.5
    outlier_mad_z: float = 3.5

    # Input
    cna_threshold: float = 2.0

    # Output
    output_dir: Path = Path("output")
    output_file_name: str = "DataMatrix.txt"

    def __post_init__(self):
        if not 0 < self.expression_significance_threshold < 1:
            raise ValueError("expression_significance_threshold must be in (0, 1)")
        if not 0 <= self.min_alteration_fraction <= 1:
            raise ValueError("min_alteration_fraction must be in [0, 1]")
        if self.gene_count_limit < 1:
            raise ValueError("gene_count_limit must be at least 1")
        if self.outlier_method not in OUTLIER_METHODS:
            raise ValueError(f"outlier_method must be one of {OUTLIER_METHODS}")
        if self.outlier_iqr_k <= 0 or self.outlier_mad_z <= 0:
            raise ValueError("outlier_iqr_k and outlier_mad_z must be positive")
        if self.min_expression_group_size < 2:
            raise ValueError("min_expression_group_size must be at least 2")
        if self.cna_threshold <= 0:
            raise ValueError("cna_threshold must be positive")
        self.output_dir = Path(self.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_json(cls, path, **overrides) -> "Config":
        """Read a JSON parameter file; keyword overrides win over file values."""
        with open(path) as f:
            raw = json.load(f)
        known = {f.name for f in fields(cls)}
        params = {}
        for key, value in raw.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ValueError(f"{path}: unknown parameter {key!r}")
            params[name] = value
        params.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**params)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["output_dir"] = str(self.output_dir)
        return d


@dataclass
class PipelineResult:
    matrix: pd.DataFrame
    hyper: np.ndarray
    counts: pd.Series
    cutoff_count: Optional[int]
    diagnostics: List[Diagnostic] = field(default_factory=list)
    summary: Dict = field(default_factory=dict)


# ============================================================================
# Pipeline
# ============================================================================

class Pipeline:
    """Main pipeline orchestrator."""

    def __init__(self, config: Config):
        self.config = config

    def make_verifier(self, source, samples) -> CopyNumberVerifier:
        expression = source if hasattr(source, "get_expression") else None
        return CopyNumberVerifier(
            expression,
            threshold=self.config.expression_significance_threshold,
            min_group_size=self.config.min_expression_group_size,
            take_log=self.config.expression_log_transform,
            samples=samples,
        )

    def normalize(self, cohort: Cohort, verifier: CopyNumberVerifier) -> List[Diagnostic]:
        """Per-gene stages: verification then minor call removal."""
        logger.info("=" * 80); logger.info("VERIFYING COPY NUMBER"); logger.info("=" * 80)
        diags: List[Diagnostic] = []
        for gene in sorted(cohort):
            rec = cohort[gene]
            diags.extend(verifier.verify(rec))
            d = resolve_minor_calls(rec, cohort.samples)
            if d is not None:
                diags.append(d)
            rec.complete_genomic()
        n_demoted = sum(1 for d in diags if d.kind == "unsupported_calls")
        n_ambiguous = sum(1 for d in diags if d.kind == "ambiguous_direction")
        logger.info(f"Unsupported call groups demoted: {n_demoted:,}; ambiguous genes: {n_ambiguous:,}")
        return diags

    def find_hyper_altered(self, cohort: Cohort) -> np.ndarray:
        cfg = self.config
        hyper = detect_hyper_altered(
            cohort.per_sample_alteration_counts(),
            high_only=cfg.outlier_high_only,
            method=cfg.outlier_method,
            iqr_k=cfg.outlier_iqr_k,
            mad_z=cfg.outlier_mad_z,
        )
        hyper.setflags(write=False)
        logger.info(f"Hyper altered size = {int(hyper.sum()):,}")
        return hyper

    def run(self, source, genes=None, write: bool = True) -> PipelineResult:
        cfg = self.config
        logger.info("=" * 80); logger.info("LOADING ALTERATIONS"); logger.info("=" * 80)
        cohort = fetch_cohort(source, genes)
        n_candidates = len(set(genes)) if genes is not None else len(source.genes())
        summary = {
            "initial_genes": n_candidates,
            "genes_with_data": len(cohort),
            "samples": cohort.n_samples,
        }

        diags = self.normalize(cohort, self.make_verifier(source, cohort.samples))

        logger.info("=" * 80); logger.info("SELECTING GENES"); logger.info("=" * 80)
        hyper = self.find_hyper_altered(cohort)
        summary["hyper_altered_samples"] = int(hyper.sum())

        retained, counts = filter_by_frequency(cohort.genes, hyper, cfg.min_alteration_fraction)
        summary["after_frequency_filter"] = len(retained)
        logger.info(f"After filtering out less-altered = {len(retained):,}")

        retained, cutoff = cap_by_rank(retained, counts, cfg.gene_count_limit)
        summary["cutoff_count"] = cutoff

        matrix = build_matrix(retained, hyper, cohort.samples)
        summary["final_genes"] = int(matrix.shape[0])
        summary["final_samples"] = int(matrix.shape[1])
        summary["config"] = cfg.to_dict()

        result = PipelineResult(matrix=matrix, hyper=hyper, counts=counts.reindex(matrix.index),
                                cutoff_count=cutoff, diagnostics=diags, summary=summary)
        if write:
            self.write_outputs(result)
        return result

    def write_outputs(self, result: PipelineResult):
        """Write matrix, diagnostics and summary."""
        out_dir = self.config.output_dir
        write_matrix(result.matrix, out_dir / self.config.output_file_name)
        diagnostics_to_frame(result.diagnostics).to_csv(out_dir / "diagnostics.tsv", sep="\t", index=False)
        with open(out_dir / "run_summary.json", "w") as f:
            json.dump(result.summary, f, indent=2, default=str)
        logger.info(f"Saved outputs to {out_dir}")


# ============================================================================
# CLI
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Build a filtered gene x sample alteration matrix for mutual-exclusivity search",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    p.add_argument("--cna", required=True, help="Discrete copy-number table (Hugo_Symbol + one column per sample)")
    p.add_argument("--mutations", required=True, help="MAF-like table with Hugo_Symbol,Tumor_Sample_Barcode")
    p.add_argument("--expression", default=None, help="Optional expression table (same layout as --cna)")
    p.add_argument("--samples", default=None, help="Optional file, one sample id per line, fixes cohort order")
    p.add_argument("--genes", default=None, help="Optional file, one gene symbol per line, candidate genes")
    p.add_argument("--config", default=None, help="Optional JSON parameter file")

    p.add_argument("--expression-threshold", type=float, default=None,
                   help="Significance threshold for expression support (default 0.05)")
    p.add_argument("--min-alteration-fraction", type=float, default=None,
                   help="Minimum fraction of non-hyper samples altered (default 0.01)")
    p.add_argument("--gene-limit", type=int, default=None, help="Maximum genes kept (default 500)")
    p.add_argument("--outlier-method", choices=list(OUTLIER_METHODS), default=None,
                   help="Hyper-altered sample test (default iqr)")
    p.add_argument("--outlier-both-sides", action="store_true",
                   help="Also flag samples with unusually few alterations")
    p.add_argument("--outlier-iqr-k", type=float, default=None, help="Tukey fence multiplier (default 1.5)")
    p.add_argument("--outlier-mad-z", type=float, default=None, help="Modified z-score cutoff (default 3.5)")
    p.add_argument("--min-expression-group", type=int, default=None,
                   help="Samples with expression needed per group to test a call direction (default 2)")
    p.add_argument("--cna-threshold", type=float, default=None,
                   help="Absolute GISTIC value counted as a call (default 2)")
    p.add_argument("--no-log-expression", action="store_true", help="Use expression values as given")
    p.add_argument("--all-variants", action="store_true", help="Count every MAF row, not only impactful classes")

    p.add_argument("--output-dir", default=None, help="Directory to write outputs (default output)")
    p.add_argument("--output-file", default=None, help="Matrix file name (default DataMatrix.txt)")
    p.add_argument("-v", "--verbose", action="count", default=1)
    p.add_argument("-q", "--quiet", action="store_true")
    return p


def config_from_args(args) -> Config:
    overrides = {
        "expression_significance_threshold": args.expression_threshold,
        "min_alteration_fraction": args.min_alteration_fraction,
        "gene_count_limit": args.gene_limit,
        "outlier_method": args.outlier_method,
        "outlier_iqr_k": args.outlier_iqr_k,
        "outlier_mad_z": args.outlier_mad_z,
        "min_expression_group_size": args.min_expression_group,
        "cna_threshold": args.cna_threshold,
        "output_dir": args.output_dir,
        "output_file_name": args.output_file,
        "outlier_high_only": False if args.outlier_both_sides else None,
        "expression_log_transform": False if args.no_log_expression else None,
    }
    if args.config:
        return Config.from_json(args.config, **overrides)
    return Config(**{k: v for k, v in overrides.items() if v is not None})


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(0 if args.quiet else args.verbose)

    cfg = config_from_args(args)
    source = FileCohortSource.from_files(
        args.cna, args.mutations,
        expression_path=args.expression,
        sample_list=args.samples,
        cna_threshold=cfg.cna_threshold,
        impactful_only=not args.all_variants,
    )
    genes = read_id_list(args.genes) if args.genes else None
    Pipeline(cfg).run(source, genes=genes)


if __name__ == "__main__":
    main()
