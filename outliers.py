#!/usr/bin/env python3
"""
Hyper-altered sample detection.

Given the number of altered genes per sample, flag samples whose burden is a
statistical outlier. Two robust tests are available:
- "iqr": Tukey fence, outlier if count > Q3 + k * IQR (or < Q1 - k * IQR)
- "mad": modified z-score on the normalized MAD, outlier if |z| > z_thr

Only the count distribution matters; sample identity and order do not.
Counts that are all equal flag nothing. When most samples share one value and
the IQR or MAD is zero, the mean absolute deviation around the median
(Iglewicz and Hoaglin) stands in as the scale.
"""
import logging

import numpy as np
from scipy import stats
from statsmodels.robust.scale import mad

logger = logging.getLogger(__name__)

OUTLIER_METHODS = ("iqr", "mad")

# Iglewicz-Hoaglin constant for the mean absolute deviation around the median
MEANAD_CONSTANT = 1.253314


def _meanad_scale(x: np.ndarray) -> float:
    """Scale used when most samples share a value and the IQR / MAD is zero."""
    return MEANAD_CONSTANT * float(np.mean(np.abs(x - np.median(x))))


def detect_hyper_altered(counts, high_only: bool = True, method: str = "iqr",
                         iqr_k: float = 1.5, mad_z: float = 3.5) -> np.ndarray:
    """Boolean mask over samples, True where the alteration count is an outlier."""
    x = np.asarray(counts, dtype=float)
    if x.ndim != 1:
        raise ValueError("counts must be a 1-D sequence")
    if np.any(x < 0) or not np.all(np.isfinite(x)):
        raise ValueError("counts must be finite and non-negative")
    if method not in OUTLIER_METHODS:
        raise ValueError(f"Unknown outlier method {method!r}; choose from {OUTLIER_METHODS}")
    mask = np.zeros(len(x), dtype=bool)
    if len(x) == 0 or np.ptp(x) == 0:
        return mask

    if method == "iqr":
        q1, q3 = np.percentile(x, [25, 75])
        spread = stats.iqr(x)
        if spread == 0:
            spread = _meanad_scale(x)
        high = x > q3 + iqr_k * spread
        low = x < q1 - iqr_k * spread
    else:
        scale = mad(x)
        if scale == 0:
            scale = _meanad_scale(x)
        z = (x - np.median(x)) / scale
        high = z > mad_z
        low = z < -mad_z

    mask = high if high_only else (high | low)
    logger.debug("Outlier test %s flagged %d / %d samples", method, int(mask.sum()), len(x))
    return mask
