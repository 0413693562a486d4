#!/usr/bin/env python3
"""
File-backed cohort source.

Reads the flat files a cBioPortal study download ships:
- copy number: gene x sample table of discrete GISTIC values
  (Hugo_Symbol[, Entrez_Gene_Id], sample columns...)
- mutations: MAF-like long table (Hugo_Symbol, Tumor_Sample_Barcode,
  Variant_Classification)
- expression (optional): gene x sample table, same layout as copy number

and serves per-gene channel vectors in one fixed sample order.
"""
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from alteration_model import ACTIVATING, INHIBITING, NO_CHANGE, Cohort, GeneRecord
from diagnostics import EmptyCohortError

logger = logging.getLogger(__name__)

GENE_COLUMN_ALIASES = ["hugo_symbol", "gene", "gene_symbol", "symbol", "id"]
NON_SAMPLE_COLUMNS = {"entrez_gene_id", "cytoband", "locus_id", "gene_id"}

# Protein-impacting variant classes; everything else is ignored
IMPACTFUL_VARIANTS = {
    "Frame_Shift_Del",
    "Frame_Shift_Ins",
    "In_Frame_Del",
    "In_Frame_Ins",
    "Missense_Mutation",
    "Nonsense_Mutation",
    "Nonstop_Mutation",
    "Splice_Site",
    "Translation_Start_Site",
}


def _canon_cols(cols) -> Dict[str, str]:
    """Lower, strip, spaces to underscores."""
    return {c: str(c).strip().lower().replace(" ", "_") for c in cols}


def _find_column(df: pd.DataFrame, aliases, path) -> str:
    colmap = _canon_cols(df.columns)
    inv = {v: k for k, v in colmap.items()}
    for a in aliases:
        if a in inv:
            return inv[a]
    raise ValueError(f"{path}: none of the columns {aliases} found. Got columns: {list(df.columns)}")


def _check_exists(path) -> Path:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input file not found: {p}")
    return p


def load_gene_matrix(path, label: str = "matrix") -> pd.DataFrame:
    """
    Load a gene x sample table into a gene-indexed DataFrame of floats.
    Non-numeric cells become NaN; duplicated genes keep the first row.
    """
    p = _check_exists(path)
    df = pd.read_csv(p, sep="\t", comment="#", dtype=str)
    gene_col = _find_column(df, GENE_COLUMN_ALIASES, p)
    extra = [c for c, k in _canon_cols(df.columns).items() if k in NON_SAMPLE_COLUMNS]
    df = df.drop(columns=extra)
    df[gene_col] = df[gene_col].astype(str).str.strip()
    df = df[(df[gene_col].str.len() > 0) & (df[gene_col] != "nan")]

    samples = [c for c in df.columns if c != gene_col]
    if len(set(samples)) != len(samples):
        raise ValueError(f"{p}: duplicated sample columns")

    dups = df.duplicated(subset=[gene_col]).sum()
    if dups > 0:
        logger.warning(f"{p.name}: found {dups} duplicate genes in {label}, keeping first")
        df = df.drop_duplicates(subset=[gene_col], keep="first")

    out = df.set_index(gene_col)[samples].apply(pd.to_numeric, errors="coerce")
    out.index.name = "gene"
    logger.info(f"Loaded {label}: {out.shape[0]:,} genes x {out.shape[1]:,} samples")
    return out


def load_mutations(path, impactful_only: bool = True) -> pd.DataFrame:
    """Load (gene, sample) pairs carrying a mutation."""
    p = _check_exists(path)
    df = pd.read_csv(p, sep="\t", comment="#", dtype=str, low_memory=False)
    gene_col = _find_column(df, ["hugo_symbol", "gene"], p)
    sample_col = _find_column(df, ["tumor_sample_barcode", "sample_id", "sample"], p)

    n0 = len(df)
    if impactful_only:
        try:
            cls_col = _find_column(df, ["variant_classification"], p)
        except ValueError:
            logger.warning(f"{p.name}: no Variant_Classification column, keeping all rows")
        else:
            df = df[df[cls_col].isin(IMPACTFUL_VARIANTS)]
            logger.info(f"Impactful variants: {len(df):,} / {n0:,} rows kept")

    out = pd.DataFrame({
        "gene": df[gene_col].astype(str).str.strip(),
        "sample": df[sample_col].astype(str).str.strip(),
    }).dropna().drop_duplicates()
    logger.info(f"Loaded mutations: {len(out):,} gene-sample pairs, "
                f"{out['gene'].nunique():,} genes, {out['sample'].nunique():,} samples")
    return out


def read_id_list(path) -> List[str]:
    """One id per line; blank lines and '#' comments skipped, order kept."""
    p = _check_exists(path)
    ids = []
    with open(p) as f:
        for line in f:
            s = line.strip()
            if s and not s.startswith("#"):
                ids.append(s)
    return list(dict.fromkeys(ids))


def discretize_copy_number(values, threshold: float = 2) -> np.ndarray:
    """GISTIC values to channel states; NaN and sub-threshold values are NO_CHANGE."""
    v = np.asarray(values, dtype=float)
    states = np.full(v.shape, NO_CHANGE, dtype=np.int8)
    with np.errstate(invalid="ignore"):
        states[v >= threshold] = ACTIVATING
        states[v <= -threshold] = INHIBITING
    return states


class FileCohortSource:
    """
    Serves alteration channels and expression for one study.

    Sample order is the copy-number table's column order, or the order of
    `samples` when given (samples missing from the copy-number table are an
    error). Genes without a copy-number row have no data.
    """

    def __init__(self, copy_number: pd.DataFrame, mutations: pd.DataFrame,
                 expression: Optional[pd.DataFrame] = None, samples=None,
                 cna_threshold: float = 2):
        if samples is None:
            samples = list(copy_number.columns)
        else:
            samples = list(samples)
            missing = [s for s in samples if s not in copy_number.columns]
            if missing:
                raise ValueError(f"{len(missing)} samples have no copy-number column, e.g. {missing[:5]}")
        if not samples:
            raise EmptyCohortError("No samples in cohort")
        self.samples = samples
        self.cna_threshold = cna_threshold
        self._cn = copy_number.loc[:, samples]

        in_cohort = mutations[mutations["sample"].isin(set(samples))]
        n_out = mutations["sample"].nunique() - in_cohort["sample"].nunique()
        if n_out > 0:
            logger.info(f"Ignoring mutations of {n_out:,} samples outside the cohort")
        pos = {s: i for i, s in enumerate(samples)}
        self._mut: Dict[str, np.ndarray] = {}
        for gene, sub in in_cohort.groupby("gene", sort=False):
            self._mut[gene] = sub["sample"].map(pos).to_numpy(dtype=int)

        self._exp = None
        if expression is not None:
            shared = [s for s in samples if s in expression.columns]
            logger.info(f"Expression available for {len(shared):,} / {len(samples):,} samples")
            self._exp = expression.reindex(columns=samples)

    @classmethod
    def from_files(cls, cna_path, mutation_path, expression_path=None,
                   sample_list=None, cna_threshold: float = 2, impactful_only: bool = True):
        cn = load_gene_matrix(cna_path, label="copy number")
        mut = load_mutations(mutation_path, impactful_only=impactful_only)
        exp = load_gene_matrix(expression_path, label="expression") if expression_path else None
        samples = read_id_list(sample_list) if sample_list else None
        return cls(cn, mut, exp, samples=samples, cna_threshold=cna_threshold)

    def genes(self) -> List[str]:
        return sorted(self._cn.index)

    def get_alterations(self, gene) -> Optional[Tuple[np.ndarray, np.ndarray]]:
        """(mutation, copy_number) channels, or None without copy-number data."""
        if gene not in self._cn.index:
            return None
        cn = discretize_copy_number(self._cn.loc[gene].to_numpy(), self.cna_threshold)
        mut = np.zeros(len(self.samples), dtype=bool)
        idx = self._mut.get(gene)
        if idx is not None:
            mut[idx] = True
        return mut, cn

    def get_expression(self, gene) -> Optional[np.ndarray]:
        if self._exp is None or gene not in self._exp.index:
            return None
        vals = self._exp.loc[gene].to_numpy(dtype=float)
        if not np.isfinite(vals).any():
            return None
        return vals


def fetch_cohort(source, genes: Optional[Iterable[str]] = None) -> Cohort:
    """
    Build the cohort from a source, visiting candidate genes in sorted order.
    Genes the source has no data for are skipped.
    """
    candidates = sorted(set(genes)) if genes is not None else sorted(source.genes())
    logger.info(f"Initial gene size = {len(candidates):,}")
    cohort = Cohort(source.samples)
    for gene in candidates:
        alts = source.get_alterations(gene)
        if alts is None:
            continue
        mut, cn = alts
        cohort.add(GeneRecord(gene, mut, cn))
    logger.info(f"Genes with data = {len(cohort):,}")
    logger.info(f"Original sample size = {cohort.n_samples:,}")
    if len(cohort) == 0:
        raise EmptyCohortError("No candidate gene has both mutation and copy-number data")
    return cohort
