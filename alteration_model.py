#!/usr/bin/env python3
"""
Per-gene alteration records for a sample cohort.

A GeneRecord holds two independent channels over the N cohort samples:
- mutation: boolean (altered / no change)
- copy_number: int8 in {-1, 0, 1} (INHIBITING / NO_CHANGE / ACTIVATING)
and a derived genomic channel, the OR of both channels.

A Cohort owns the ordered sample ids and the gene -> record map for one run.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from diagnostics import InconsistentVectorLengthError

NO_CHANGE = 0
ACTIVATING = 1
INHIBITING = -1

CN_STATES = (INHIBITING, NO_CHANGE, ACTIVATING)
CN_LABELS = {ACTIVATING: "ACTIVATING", INHIBITING: "INHIBITING", NO_CHANGE: "NO_CHANGE"}


@dataclass
class GeneRecord:
    """Mutation and copy-number channels of one gene across the cohort."""
    gene: str
    mutation: np.ndarray
    copy_number: np.ndarray
    genomic: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        self.mutation = np.array(self.mutation, dtype=bool)
        cn = np.array(self.copy_number)
        if cn.size and not np.isin(cn, CN_STATES).all():
            bad = sorted(set(np.unique(cn)) - set(CN_STATES))
            raise ValueError(f"{self.gene}: copy-number states must be -1, 0 or 1, got {bad}")
        self.copy_number = cn.astype(np.int8)
        if self.mutation.ndim != 1 or self.copy_number.ndim != 1:
            raise InconsistentVectorLengthError(f"{self.gene}: channels must be 1-D vectors")
        if len(self.mutation) != len(self.copy_number):
            raise InconsistentVectorLengthError(
                f"{self.gene}: mutation has {len(self.mutation)} samples, "
                f"copy number has {len(self.copy_number)}"
            )
        self.complete_genomic()

    @property
    def size(self) -> int:
        return len(self.copy_number)

    def complete_genomic(self) -> np.ndarray:
        """Recompute the combined channel; call after mutating a channel."""
        self.genomic = self.mutation | (self.copy_number != NO_CHANGE)
        return self.genomic

    def count_copy_number(self) -> Tuple[int, int]:
        """Return (up, dw) call counts."""
        up = int(np.count_nonzero(self.copy_number == ACTIVATING))
        dw = int(np.count_nonzero(self.copy_number == INHIBITING))
        return up, dw


class Cohort:
    """Ordered samples plus the gene records measured over them."""

    def __init__(self, samples, records: Optional[List[GeneRecord]] = None):
        self.samples: List[str] = [str(s) for s in samples]
        if len(set(self.samples)) != len(self.samples):
            raise ValueError("Sample ids must be unique within a cohort")
        self.genes: Dict[str, GeneRecord] = {}
        for rec in records or []:
            self.add(rec)

    def __len__(self) -> int:
        return len(self.genes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.genes)

    def __contains__(self, gene) -> bool:
        return gene in self.genes

    def __getitem__(self, gene) -> GeneRecord:
        return self.genes[gene]

    @property
    def n_samples(self) -> int:
        return len(self.samples)

    def add(self, record: GeneRecord):
        if record.size != self.n_samples:
            raise InconsistentVectorLengthError(
                f"{record.gene}: {record.size} samples, cohort has {self.n_samples}"
            )
        if record.gene in self:
            raise ValueError(f"Duplicate gene record: {record.gene}")
        self.genes[record.gene] = record

    def per_sample_alteration_counts(self) -> np.ndarray:
        """Number of genes altered in the genomic channel, per sample."""
        counts = np.zeros(self.n_samples, dtype=int)
        for rec in self.genes.values():
            counts += rec.genomic
        return counts
