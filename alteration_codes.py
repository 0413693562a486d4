#!/usr/bin/env python3
"""
Compact alteration codes for the output matrix.

    code  mutation  copy number
    0     no        none
    1     yes       none
    2     no        activating
    3     no        inhibiting
    4     yes       activating
    5     yes       inhibiting
"""
from typing import Tuple

import numpy as np

from alteration_model import ACTIVATING, INHIBITING, NO_CHANGE, GeneRecord

ALTERATION_CODES = {
    (False, NO_CHANGE): 0,
    (True, NO_CHANGE): 1,
    (False, ACTIVATING): 2,
    (False, INHIBITING): 3,
    (True, ACTIVATING): 4,
    (True, INHIBITING): 5,
}
CODE_STATES = {code: state for state, code in ALTERATION_CODES.items()}

MUTATION_CODES = (1, 4, 5)
COPY_NUMBER_CODES = (2, 3, 4, 5)


def encode_state(mutated: bool, copy_number: int) -> int:
    return ALTERATION_CODES[(bool(mutated), int(copy_number))]


def decode(code: int) -> Tuple[bool, int]:
    """(mutated, copy-number state) for a code."""
    try:
        return CODE_STATES[int(code)]
    except KeyError:
        raise ValueError(f"Alteration code must be in 0..5, got {code!r}") from None


def encode(record: GeneRecord, sample_index: int) -> int:
    return encode_state(record.mutation[sample_index], record.copy_number[sample_index])


def encode_record(record: GeneRecord, mask=None) -> np.ndarray:
    """Codes for every sample of the gene, skipping samples where mask is True."""
    mut = record.mutation.astype(int)
    cn = record.copy_number
    codes = np.where(cn == ACTIVATING, 2 + 2 * mut,
                     np.where(cn == INHIBITING, 3 + 2 * mut, mut))
    if mask is not None:
        codes = codes[~np.asarray(mask, dtype=bool)]
    return codes.astype(int)
