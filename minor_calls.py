#!/usr/bin/env python3
"""
Minor copy-number call removal.

A gene should carry one copy-number direction across the cohort. When both
amplifications (up) and deletions (dw) are present, the minority direction is
set to NO_CHANGE. When up == dw neither direction wins and all calls are
cleared.
"""
import logging
from typing import Optional

import numpy as np

from alteration_model import ACTIVATING, INHIBITING, NO_CHANGE, CN_LABELS, GeneRecord
from diagnostics import Diagnostic

logger = logging.getLogger(__name__)

STAGE = "resolve_minor_calls"


def majority_direction(up: int, dw: int) -> Optional[int]:
    """Direction to keep, or None when the counts tie."""
    if up > dw:
        return ACTIVATING
    if dw > up:
        return INHIBITING
    return None


def resolve_minor_calls(record: GeneRecord, samples=None) -> Optional[Diagnostic]:
    """Drop minority-direction calls in place. Returns a diagnostic if anything changed."""
    up, dw = record.count_copy_number()
    if up == 0 or dw == 0:
        return None

    keep = majority_direction(up, dw)
    cn = record.copy_number
    dropped = (cn != NO_CHANGE) & (cn != keep) if keep is not None else cn != NO_CHANGE
    ids = tuple(samples[i] for i in np.flatnonzero(dropped)) if samples is not None else ()
    cn[dropped] = NO_CHANGE
    record.complete_genomic()

    if keep is None:
        logger.warning("Gene %s is equally altered (up: %d, dw: %d). Choosing none",
                       record.gene, up, dw)
        return Diagnostic(STAGE, "ambiguous_direction", record.gene,
                          f"up={up} dw={dw}; all copy-number calls cleared", ids)

    logger.debug("Gene %s: kept %s (up: %d, dw: %d)", record.gene, CN_LABELS[keep], up, dw)
    return Diagnostic(STAGE, "minor_calls_removed", record.gene,
                      f"up={up} dw={dw}; kept {CN_LABELS[keep]}", ids)
