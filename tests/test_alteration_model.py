#!/usr/bin/env python3
"""
Unit tests for gene records and the cohort container.
"""
import numpy as np
import pytest
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from alteration_model import ACTIVATING, INHIBITING, NO_CHANGE, Cohort, GeneRecord
from diagnostics import InconsistentVectorLengthError


def test_genomic_is_or_of_channels():
    """Genomic channel is altered where either channel is"""
    rec = GeneRecord("G", [True, False, False, False], [NO_CHANGE, ACTIVATING, INHIBITING, NO_CHANGE])
    assert rec.genomic.tolist() == [True, True, True, False]


def test_genomic_recomputed_after_channel_change():
    rec = GeneRecord("G", [False, False], [ACTIVATING, NO_CHANGE])
    rec.copy_number[0] = NO_CHANGE
    rec.complete_genomic()
    assert not rec.genomic.any()


def test_channel_length_mismatch():
    """Mutation and copy number must cover the same samples"""
    with pytest.raises(InconsistentVectorLengthError):
        GeneRecord("G", [True, False, True], [NO_CHANGE, NO_CHANGE])


def test_invalid_copy_number_state():
    with pytest.raises(ValueError):
        GeneRecord("G", [False, False], [2, 0])


def test_record_copies_input():
    cn = np.array([ACTIVATING, NO_CHANGE], dtype=np.int8)
    rec = GeneRecord("G", [False, False], cn)
    rec.copy_number[0] = NO_CHANGE
    assert cn[0] == ACTIVATING


def test_count_copy_number():
    rec = GeneRecord("G", [False] * 4, [ACTIVATING, ACTIVATING, INHIBITING, NO_CHANGE])
    assert rec.count_copy_number() == (2, 1)


def test_cohort_rejects_wrong_sample_count():
    """Record length must match the cohort"""
    cohort = Cohort(["S1", "S2", "S3"])
    with pytest.raises(InconsistentVectorLengthError):
        cohort.add(GeneRecord("G", [False, True], [NO_CHANGE, NO_CHANGE]))


def test_cohort_rejects_duplicates():
    cohort = Cohort(["S1"])
    cohort.add(GeneRecord("G", [True], [NO_CHANGE]))
    with pytest.raises(ValueError):
        cohort.add(GeneRecord("G", [False], [NO_CHANGE]))
    assert "G" in cohort and cohort["G"].mutation.tolist() == [True]
    with pytest.raises(ValueError):
        Cohort(["S1", "S1"])


def test_per_sample_alteration_counts():
    cohort = Cohort(["S1", "S2", "S3"], [
        GeneRecord("A", [True, False, False], [NO_CHANGE, NO_CHANGE, NO_CHANGE]),
        GeneRecord("B", [True, False, False], [NO_CHANGE, INHIBITING, NO_CHANGE]),
    ])
    assert cohort.per_sample_alteration_counts().tolist() == [2, 1, 0]
    assert len(cohort) == 2
    assert "A" in cohort


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
