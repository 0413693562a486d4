#!/usr/bin/env python3
"""
Unit tests for copy-number verification against expression.
"""
import numpy as np
import pytest
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from alteration_model import ACTIVATING, INHIBITING, NO_CHANGE, GeneRecord
from cn_verifier import CopyNumberVerifier


class DictExpression:
    def __init__(self, values):
        self.values = values

    def get_expression(self, gene):
        return self.values.get(gene)


def _verify(cn, exp, **kw):
    rec = GeneRecord("G", [False] * len(cn), cn)
    verifier = CopyNumberVerifier(DictExpression({"G": exp} if exp is not None else {}), **kw)
    diags = verifier.verify(rec)
    return rec, diags


def test_supported_amplification_kept():
    cn = [ACTIVATING] * 3 + [NO_CHANGE] * 4
    rec, diags = _verify(cn, [10, 11, 12, 1, 2, 1.5, 2.5])
    assert rec.copy_number.tolist() == cn
    assert diags == []


def test_unsupported_amplification_demoted():
    """Amplified samples with low expression lose their calls"""
    cn = [ACTIVATING] * 3 + [NO_CHANGE] * 4
    rec, diags = _verify(cn, [1, 2, 1.5, 10, 11, 12, 10.5])
    assert (rec.copy_number == NO_CHANGE).all()
    assert not rec.genomic.any()
    assert [d.kind for d in diags] == ["unsupported_calls"]


def test_deletion_checked_downward():
    cn = [INHIBITING] * 3 + [NO_CHANGE] * 4
    rec, _ = _verify(cn, [0.5, 0.2, 0.1, 9, 10, 11, 9.5])
    assert rec.copy_number.tolist() == cn
    rec, _ = _verify(cn, [9, 10, 11, 0.5, 0.2, 0.1, 0.3])
    assert (rec.copy_number == NO_CHANGE).all()


def test_sample_without_expression_keeps_call():
    cn = [ACTIVATING] * 3 + [NO_CHANGE] * 4
    rec, _ = _verify(cn, [1, 2, np.nan, 10, 11, 12, 10.5])
    assert rec.copy_number.tolist() == [NO_CHANGE, NO_CHANGE, ACTIVATING] + [NO_CHANGE] * 4


def test_no_expression_for_gene():
    """Verification is a no-op without expression data"""
    cn = [ACTIVATING, INHIBITING, NO_CHANGE]
    rec, diags = _verify(cn, None)
    assert rec.copy_number.tolist() == cn
    assert [d.kind for d in diags] == ["missing_evidence"]


def test_no_source_is_noop():
    rec = GeneRecord("G", [False, False], [ACTIVATING, NO_CHANGE])
    CopyNumberVerifier(None).verify(rec)
    assert rec.copy_number.tolist() == [ACTIVATING, NO_CHANGE]


def test_too_few_samples_to_test():
    cn = [ACTIVATING] + [NO_CHANGE] * 4
    rec, diags = _verify(cn, [0.1, 10, 11, 12, 13])
    assert rec.copy_number[0] == ACTIVATING
    assert diags[0].kind == "missing_evidence"


def test_threshold_is_configurable():
    cn = [ACTIVATING] * 3 + [NO_CHANGE] * 3
    exp = [5.0, 6.0, 7.0, 4.0, 5.5, 6.0]
    strict, _ = _verify(cn, exp, threshold=1e-6, take_log=False)
    assert (strict.copy_number == NO_CHANGE).all()
    loose, _ = _verify(cn, exp, threshold=0.99, take_log=False)
    assert loose.copy_number.tolist() == cn


def test_both_directions_tested_on_input_calls():
    cn = [ACTIVATING] * 3 + [INHIBITING] * 3 + [NO_CHANGE] * 4
    exp = [1, 1.2, 0.8, 0.1, 0.2, 0.15, 5, 5.5, 6, 5.2]
    rec, diags = _verify(cn, exp)
    assert (rec.copy_number[:3] == NO_CHANGE).all()
    assert (rec.copy_number[3:6] == INHIBITING).all()


def test_expression_length_mismatch_keeps_calls():
    """A vector of the wrong length counts as no expression for the gene"""
    cn = [ACTIVATING, NO_CHANGE, NO_CHANGE]
    rec, diags = _verify(cn, [1.0, 2.0])
    assert rec.copy_number.tolist() == cn
    assert [d.kind for d in diags] == ["missing_evidence"]
    assert "length" in diags[0].decision


def test_unparseable_expression_is_no_evidence():
    cn = [ACTIVATING] * 3 + [NO_CHANGE] * 3
    rec, diags = _verify(cn, [10.0, 11.0, "NA", 1.0, 2.0, 1.5])
    assert rec.copy_number.tolist() == cn
    assert diags == []
    # the unparseable sample is never demoted
    rec, _ = _verify(cn, [1.0, 2.0, "NA", 10.0, 11.0, 12.0])
    assert rec.copy_number.tolist() == [NO_CHANGE, NO_CHANGE, ACTIVATING] + [NO_CHANGE] * 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
