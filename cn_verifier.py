#!/usr/bin/env python3
"""
Copy-number verification against expression.

For each call direction of a gene, the expression of the called samples is
compared with the expression of the samples without a copy-number call
(one-sided Welch t-test: amplified samples should be higher, deleted samples
lower). When the difference is not significant at the configured threshold,
the calls of that direction are demoted to NO_CHANGE.

Samples without usable expression (NaN, inf or unparseable) neither take part
in the test nor get demoted. A gene without an expression vector, or with one
of the wrong length, is left untouched.
"""
import logging
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from alteration_model import ACTIVATING, INHIBITING, NO_CHANGE, CN_LABELS, GeneRecord
from diagnostics import Diagnostic

logger = logging.getLogger(__name__)

STAGE = "verify_copy_number"

# direction -> alternative hypothesis for (called, unaltered)
_ALTERNATIVE = {ACTIVATING: "greater", INHIBITING: "less"}


class CopyNumberVerifier:
    """
    Demote copy-number calls that expression does not support.

    expression_source: any object with get_expression(gene) returning a
        per-sample float vector in cohort order, or None when the gene has
        no expression data. None disables verification.
    """

    def __init__(self, expression_source=None, threshold: float = 0.05,
                 min_group_size: int = 2, take_log: bool = True, samples=None):
        self.expression_source = expression_source
        self.threshold = threshold
        self.min_group_size = min_group_size
        self.take_log = take_log
        self.samples = list(samples) if samples is not None else None

    def _expression(self, record: GeneRecord) -> Tuple[Optional[np.ndarray], str]:
        """Expression on the verification scale, or (None, reason) without usable data."""
        if self.expression_source is None:
            return None, "no expression source"
        exp = self.expression_source.get_expression(record.gene)
        if exp is None:
            return None, "no expression for gene"
        raw = np.asarray(exp, dtype=object)
        if raw.shape != (record.size,):
            logger.warning("%s: expression has shape %s, expected (%d,); calls kept",
                           record.gene, raw.shape, record.size)
            return None, f"expression length {raw.size} != {record.size} samples"
        # unparseable cells become NaN, i.e. no evidence for that sample
        exp = pd.to_numeric(pd.Series(raw), errors="coerce").to_numpy(dtype=float)
        finite = np.isfinite(exp)
        if self.take_log and finite.any() and (exp[finite] >= 0).all():
            exp = np.where(finite, np.log2(np.where(finite, exp, 0.0) + 1.0), np.nan)
        return exp, ""

    def _sample_ids(self, idx: np.ndarray):
        if self.samples is None:
            return tuple(str(i) for i in np.flatnonzero(idx))
        return tuple(self.samples[i] for i in np.flatnonzero(idx))

    def test_direction(self, copy_number: np.ndarray, exp: np.ndarray, direction: int) -> Optional[float]:
        """One-sided p-value for the direction, or None without enough evidence."""
        evidence = np.isfinite(exp)
        called = (copy_number == direction) & evidence
        reference = (copy_number == NO_CHANGE) & evidence
        if called.sum() < self.min_group_size or reference.sum() < self.min_group_size:
            return None
        res = stats.ttest_ind(exp[called], exp[reference], equal_var=False,
                              alternative=_ALTERNATIVE[direction])
        p = float(res.pvalue)
        return p if np.isfinite(p) else None

    def verify(self, record: GeneRecord) -> List[Diagnostic]:
        """Demote unsupported calls in place; return what was decided."""
        diags: List[Diagnostic] = []
        if not (record.copy_number != NO_CHANGE).any():
            return diags

        exp, reason = self._expression(record)
        if exp is None:
            diags.append(Diagnostic(STAGE, "missing_evidence", record.gene,
                                    f"{reason}; calls kept"))
            return diags

        # both directions are tested against the calls as they came in
        original = record.copy_number.copy()
        for direction in (ACTIVATING, INHIBITING):
            called = original == direction
            if not called.any():
                continue
            label = CN_LABELS[direction]
            p = self.test_direction(original, exp, direction)
            if p is None:
                diags.append(Diagnostic(STAGE, "missing_evidence", record.gene,
                                        f"{label}: too little expression to test; calls kept",
                                        self._sample_ids(called)))
                continue
            if p >= self.threshold:
                demote = called & np.isfinite(exp)
                record.copy_number[demote] = NO_CHANGE
                logger.debug("%s: %s calls unsupported by expression (p=%.3g), demoted %d",
                             record.gene, label, p, int(demote.sum()))
                diags.append(Diagnostic(STAGE, "unsupported_calls", record.gene,
                                        f"{label}: p={p:.3g} >= {self.threshold}; demoted to NO_CHANGE",
                                        self._sample_ids(demote)))

        record.complete_genomic()
        return diags
