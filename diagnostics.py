#!/usr/bin/env python3
"""
Diagnostics and fatal errors for the alteration-matrix pipeline.

Non-fatal conditions (missing expression evidence, ambiguous copy-number
direction, demoted calls) are returned by each stage as Diagnostic records.
Fatal conditions raise one of the errors below and abort the run before any
output is written.
"""
from dataclasses import dataclass
from typing import Iterable, Tuple

import pandas as pd

DIAGNOSTIC_COLUMNS = ["stage", "kind", "gene", "decision", "samples"]


class InconsistentVectorLengthError(ValueError):
    """A channel vector disagrees with the cohort sample count."""


class EmptyCohortError(ValueError):
    """No genes or no samples left to build a matrix from."""


@dataclass(frozen=True)
class Diagnostic:
    stage: str
    kind: str
    gene: str
    decision: str
    samples: Tuple[str, ...] = ()


def diagnostics_to_frame(diags: Iterable[Diagnostic]) -> pd.DataFrame:
    """Flatten diagnostics to a table; sample ids are comma-joined."""
    rows = [
        (d.stage, d.kind, d.gene, d.decision, ",".join(d.samples))
        for d in diags
    ]
    return pd.DataFrame(rows, columns=DIAGNOSTIC_COLUMNS)
