#!/usr/bin/env python3
"""
Gene selection by alteration frequency and rank.

Counts only samples outside the hyper-altered mask. The frequency filter drops
genes altered in fewer than min_fraction of those samples; the rank cap then
keeps at most `limit` genes, cutting the whole tie group that sits at the
boundary rank rather than splitting it.
"""
import logging
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd

from alteration_model import GeneRecord
from diagnostics import EmptyCohortError

logger = logging.getLogger(__name__)


def count_alterations(genes: Dict[str, GeneRecord], mask) -> pd.Series:
    """Per-gene number of non-hyper samples altered in the genomic channel."""
    keep = ~np.asarray(mask, dtype=bool)
    counts = {g: int(np.count_nonzero(rec.genomic & keep)) for g, rec in genes.items()}
    return pd.Series(counts, dtype=int, name="alt_count")


def filter_by_frequency(genes: Dict[str, GeneRecord], mask,
                        min_fraction: float = 0.01) -> Tuple[Dict[str, GeneRecord], pd.Series]:
    """
    Drop genes with count / non-hyper sample total < min_fraction.

    Returns the retained genes (original order) and the per-gene counts of the
    retained genes.
    """
    mask = np.asarray(mask, dtype=bool)
    total = int(np.count_nonzero(~mask))
    if total == 0:
        raise EmptyCohortError("All samples are hyper-altered; nothing left to count")

    counts = count_alterations(genes, mask)
    passing = counts[counts / total >= min_fraction]
    retained = {g: rec for g, rec in genes.items() if g in passing.index}
    logger.info(f"Frequency filter (>= {min_fraction:g} of {total} samples): "
                f"{len(retained):,} / {len(genes):,} genes kept")
    if not retained:
        raise EmptyCohortError(
            f"No gene is altered in at least {min_fraction:g} of the {total} non-hyper-altered samples"
        )
    return retained, passing


def rank_genes(counts: pd.Series) -> pd.Series:
    """Counts sorted descending, ties broken by gene id ascending."""
    by_id = counts.sort_index(kind="mergesort")
    return by_id.sort_values(ascending=False, kind="mergesort")


def cap_by_rank(genes: Dict[str, GeneRecord], counts: pd.Series,
                limit: int = 500) -> Tuple[Dict[str, GeneRecord], Optional[int]]:
    """
    Keep the most altered genes, at most `limit` of them.

    The count of the gene at 0-based rank `limit` is the cutoff; every gene at
    or below it is dropped, so a tie group straddling the boundary goes out
    entirely. Returns the retained genes and the cutoff (None when no cap was
    needed).
    """
    if len(genes) <= limit:
        return dict(genes), None

    logger.info(f"Genes before limit = {len(genes):,}")
    ranked = rank_genes(counts.reindex(list(genes)))
    cutoff = int(ranked.iloc[limit])
    retained = {g: rec for g, rec in genes.items() if counts[g] > cutoff}
    logger.info(f"Rank cap: cutoff count = {cutoff}, kept {len(retained):,} genes")
    return retained, cutoff
