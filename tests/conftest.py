"""
Pytest configuration and common fixtures for pwmmerge tests.
"""
from pathlib import Path

import numpy as np
import pytest

from pwmmerge.alignment import Aligner
from pwmmerge.models import Motif


@pytest.fixture
def examples_dir():
    """Return path to examples directory."""
    return Path(__file__).parent.parent / "examples"


@pytest.fixture
def abc_motifs():
    """Two near-identical single-position motifs and one unrelated one."""
    return [
        Motif("A", [[0.9, 0.1, 0.0, 0.0]]),
        Motif("B", [[0.85, 0.15, 0.0, 0.0]]),
        Motif("C", [[0.0, 0.0, 0.9, 0.1]]),
    ]


@pytest.fixture
def linear_aligner():
    """L1 combine with linear gap penalty 0.05."""
    return Aligner(gap_mode="linear", gap=0.05, avg_mode="l1")


@pytest.fixture
def random_motifs():
    """Reproducible random motifs of varying length."""
    rng = np.random.default_rng(127)
    return [
        Motif(f"m{i}", rng.dirichlet(np.full(4, 0.5), size=int(rng.integers(4, 9))))
        for i in range(8)
    ]
