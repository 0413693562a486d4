#!/usr/bin/env python3
"""
Split an alteration matrix by each sample's dominant channel.

Samples with at least as many copy-number altered genes as mutated genes go to
<out>/cna/DataMatrix.txt, the rest to <out>/mut/DataMatrix.txt.

Usage: python split_matrix.py output/DataMatrix.txt --output-dir output_split
"""
import argparse
import logging
from pathlib import Path

from build_alteration_matrix import setup_logging
from matrix_io import read_matrix, split_by_dominant_channel, write_matrix


def split_matrix_file(matrix_path, output_dir, file_name: str = "DataMatrix.txt") -> dict:
    matrix = read_matrix(matrix_path)
    cna, mut = split_by_dominant_channel(matrix)
    written = {}
    for ext, part in [("cna", cna), ("mut", mut)]:
        if part.shape[1] == 0:
            logging.warning("No %s-dominant samples; skipping %s", ext, ext)
            continue
        written[ext] = write_matrix(part, Path(output_dir) / ext / file_name)
    return written


def main(argv=None):
    p = argparse.ArgumentParser(description="Split a DataMatrix by dominant alteration channel")
    p.add_argument("matrix", help="DataMatrix.txt written by build_alteration_matrix.py")
    p.add_argument("--output-dir", required=True)
    p.add_argument("--file-name", default="DataMatrix.txt")
    args = p.parse_args(argv)
    setup_logging(1)
    split_matrix_file(args.matrix, args.output_dir, args.file_name)


if __name__ == "__main__":
    main()
