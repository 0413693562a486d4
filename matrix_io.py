#!/usr/bin/env python3
"""
Gene x sample alteration matrix: build, write, read back, split.

File format (tab-delimited, UTF-8):
    ID      S1  S2  ...
    GENE_A  0   4   ...
Genes are rows in ascending id order, samples are the non-hyper-altered
cohort samples in cohort order, cells are alteration codes 0..5.
"""
import logging
from pathlib import Path
from typing import Dict, Tuple

import numpy as np
import pandas as pd

from alteration_codes import COPY_NUMBER_CODES, MUTATION_CODES, encode_record
from alteration_model import GeneRecord
from diagnostics import EmptyCohortError

logger = logging.getLogger(__name__)

ID_COLUMN = "ID"


def build_matrix(genes: Dict[str, GeneRecord], mask, samples) -> pd.DataFrame:
    """Encode retained genes over the unmasked samples."""
    mask = np.asarray(mask, dtype=bool)
    samples = list(samples)
    if len(mask) != len(samples):
        raise ValueError(f"Mask has {len(mask)} entries for {len(samples)} samples")
    columns = [s for s, hyper in zip(samples, mask) if not hyper]
    if not genes:
        raise EmptyCohortError("No genes to write")
    if not columns:
        raise EmptyCohortError("No samples left after removing hyper-altered ones")

    ids = sorted(genes)
    data = np.vstack([encode_record(genes[g], mask) for g in ids])
    matrix = pd.DataFrame(data, index=pd.Index(ids, name=ID_COLUMN), columns=columns)
    return matrix


def render_matrix(matrix: pd.DataFrame) -> str:
    """Matrix as tab-delimited text."""
    if matrix.empty:
        raise EmptyCohortError("Refusing to render an empty matrix")
    matrix = matrix.rename_axis(ID_COLUMN)
    return matrix.to_csv(sep="\t", lineterminator="\n")


def write_matrix(matrix: pd.DataFrame, path) -> Path:
    path = Path(path)
    text = render_matrix(matrix)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    logger.info(f"Wrote {matrix.shape[0]:,} genes x {matrix.shape[1]:,} samples to {path}")
    return path


def read_matrix(path) -> pd.DataFrame:
    """Load a matrix written by write_matrix; codes come back as ints."""
    df = pd.read_csv(path, sep="\t", dtype=str, keep_default_na=False)
    if df.columns[0] != ID_COLUMN:
        raise ValueError(f"{path}: first header column must be {ID_COLUMN!r}, got {df.columns[0]!r}")
    df = df.set_index(ID_COLUMN)
    if df.index.duplicated().any():
        dups = df.index[df.index.duplicated()].unique().tolist()
        raise ValueError(f"{path}: duplicated gene rows {dups[:5]}")
    codes = df.apply(pd.to_numeric, errors="coerce")
    if codes.isna().any().any() or not codes.isin([0, 1, 2, 3, 4, 5]).all().all():
        raise ValueError(f"{path}: alteration codes must be integers 0..5")
    return codes.astype(int)


def channel_burden(matrix: pd.DataFrame) -> pd.DataFrame:
    """Per-sample count of genes with a mutation and with a copy-number component."""
    mut = matrix.isin(MUTATION_CODES).sum(axis=0)
    cna = matrix.isin(COPY_NUMBER_CODES).sum(axis=0)
    return pd.DataFrame({"mut": mut.astype(int), "cna": cna.astype(int)},
                        index=matrix.columns.rename("sample"))


def split_by_dominant_channel(matrix: pd.DataFrame) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split samples into copy-number-dominant (cna >= mut) and
    mutation-dominant (cna < mut) sets, keeping all genes.
    """
    burden = channel_burden(matrix)
    cna_dominant = burden["cna"] >= burden["mut"]
    cna_cols = burden.index[cna_dominant].tolist()
    mut_cols = burden.index[~cna_dominant].tolist()
    logger.info(f"Split samples: {len(cna_cols):,} copy-number dominant, "
                f"{len(mut_cols):,} mutation dominant")
    return matrix.loc[:, cna_cols], matrix.loc[:, mut_cols]
