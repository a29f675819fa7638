"""
Pytest configuration and shared fixtures.

This module provides synthetic table generators and shared fixtures for all
test suites.
"""

import numpy as np
import pandas as pd
import pytest

from assaykit.core.table import CoordinatedTable


def generate_synthetic_table(
    n_genes: int,
    n_samples: int,
    n_chromosomes: int = 3,
    seed: int = 42,
) -> CoordinatedTable:
    """
    Generate a synthetic expression table with genomic coordinates.

    Args:
        n_genes: Number of genes (features)
        n_samples: Number of samples
        n_chromosomes: Genes are spread round-robin over chr1..chrN
        seed: Random seed for reproducibility

    Design:
        - Log-normal expression values (realistic for RNA-seq)
        - Gene i on chr{i % N + 1}, starting at 1000 * (i // N), 500 bp wide
        - Alternating CASE/CTRL phenotype, 4 batches
    """
    rng = np.random.RandomState(seed)
    assay = rng.lognormal(mean=5, sigma=2, size=(n_genes, n_samples))

    positions = np.arange(n_genes)
    row_meta = pd.DataFrame({
        'symbol': [f"SYM{i}" for i in positions],
        'chromosome': [f"chr{i % n_chromosomes + 1}" for i in positions],
        'start': (positions // n_chromosomes) * 1000,
        'end': (positions // n_chromosomes) * 1000 + 500,
        'strand': ['+' if i % 2 == 0 else '-' for i in positions],
    }, index=pd.Index([f"GENE_{i:05d}" for i in positions], name='feature_id'))

    col_meta = pd.DataFrame({
        'phenotype': ["CASE" if j % 2 == 0 else "CTRL" for j in range(n_samples)],
        'batch': [j % 4 for j in range(n_samples)],
    }, index=pd.Index([f"S{j:03d}" for j in range(n_samples)], name='sample_id'))

    return CoordinatedTable(assay, row_meta, col_meta)


@pytest.fixture
def small_table():
    """Small table (30 genes x 8 samples) for fast unit tests."""
    return generate_synthetic_table(n_genes=30, n_samples=8, seed=42)


@pytest.fixture
def medium_table():
    """Medium table (2000 genes x 40 samples) for index tests."""
    return generate_synthetic_table(n_genes=2000, n_samples=40, n_chromosomes=5, seed=7)


@pytest.fixture
def toy_table():
    """Hand-written 3 x 3 table with known values and coordinates."""
    return CoordinatedTable(
        assay=np.array([
            [1.0, 2.0, 3.0],
            [4.0, 5.0, 6.0],
            [7.0, 8.0, 9.0],
        ]),
        row_meta=[
            {'feature_id': 'g1', 'chromosome': 'chr1', 'start': 50, 'end': 150},
            {'feature_id': 'g2', 'chromosome': 'chr1', 'start': 150, 'end': 250},
            {'feature_id': 'g3', 'chromosome': 'chr1', 'start': 300, 'end': 400},
        ],
        col_meta=pd.DataFrame(
            {'sample_id': ['s1', 's2', 's3'], 'phenotype': ['CASE', 'CTRL', 'CASE']}
        ),
    )
