#!/usr/bin/env python3
"""
Unit tests for minor copy-number call removal.
"""
import numpy as np
import pytest
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from alteration_model import ACTIVATING, INHIBITING, NO_CHANGE, GeneRecord
from minor_calls import majority_direction, resolve_minor_calls

SAMPLES = ["S1", "S2", "S3", "S4", "S5"]


def _rec(cn, mut=None):
    return GeneRecord("G", mut if mut is not None else [False] * len(cn), cn)


def test_single_direction_untouched():
    rec = _rec([ACTIVATING, NO_CHANGE, ACTIVATING, NO_CHANGE, NO_CHANGE])
    assert resolve_minor_calls(rec, SAMPLES) is None
    assert rec.copy_number.tolist() == [1, 0, 1, 0, 0]


def test_no_calls_untouched():
    rec = _rec([NO_CHANGE] * 5)
    assert resolve_minor_calls(rec, SAMPLES) is None


def test_minority_removed():
    """Deletions outnumber amplifications, so amplifications go"""
    rec = _rec([ACTIVATING, INHIBITING, INHIBITING, NO_CHANGE, INHIBITING])
    diag = resolve_minor_calls(rec, SAMPLES)
    assert rec.copy_number.tolist() == [0, -1, -1, 0, -1]
    assert diag.kind == "minor_calls_removed"
    assert diag.samples == ("S1",)


def test_tie_clears_everything():
    """Equal up and down counts: neither direction is kept"""
    rec = _rec([ACTIVATING, INHIBITING, ACTIVATING, INHIBITING, NO_CHANGE],
               mut=[False, False, False, True, False])
    diag = resolve_minor_calls(rec, SAMPLES)
    assert (rec.copy_number == NO_CHANGE).all()
    assert rec.genomic.tolist() == [False, False, False, True, False]
    assert diag.kind == "ambiguous_direction"
    assert diag.samples == ("S1", "S2", "S3", "S4")


def test_never_both_directions():
    rng = np.random.default_rng(7)
    for _ in range(200):
        cn = rng.choice([INHIBITING, NO_CHANGE, ACTIVATING], size=12)
        up0, dw0 = int((cn == ACTIVATING).sum()), int((cn == INHIBITING).sum())
        rec = _rec(cn)
        resolve_minor_calls(rec)
        up, dw = rec.count_copy_number()
        assert up == 0 or dw == 0
        if up0 == dw0:
            assert up == dw == 0
        elif up0 > dw0 and dw0 > 0:
            assert up == up0


def test_majority_direction():
    assert majority_direction(3, 1) == ACTIVATING
    assert majority_direction(1, 3) == INHIBITING
    assert majority_direction(2, 2) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
