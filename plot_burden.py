#!/usr/bin/env python3
"""
Per-sample mutation vs copy-number burden of an alteration matrix.

Usage: python plot_burden.py output/DataMatrix.txt figs/burden.png
"""
import os
import sys

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns

from matrix_io import channel_burden, read_matrix


def plot_burden(matrix, out_path, bins: int = 5):
    burden = channel_burden(matrix)
    fig, ax = plt.subplots(figsize=(4.5, 4))
    sns.histplot(data=burden, x="cna", y="mut", bins=bins, cbar=True, ax=ax)
    ax.set_xlabel("Copy-number altered genes")
    ax.set_ylabel("Mutated genes")
    ax.set_title(f"{burden.shape[0]} samples")
    fig.tight_layout()
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    fig.savefig(out_path, dpi=150)
    if out_path.endswith(".png"):
        fig.savefig(out_path.replace(".png", ".pdf"))
    plt.close(fig)
    return burden


if __name__ == "__main__":
    MATRIX, OUT = sys.argv[1], sys.argv[2]
    plot_burden(read_matrix(MATRIX), OUT)
    print("wrote", OUT)
