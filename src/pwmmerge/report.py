"""Pairwise distance report (diagnostic mode, no merging)."""

from __future__ import annotations

import itertools
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from pwmmerge.alignment import Aligner, pairwise_scores
from pwmmerge.models import Motif

DistanceRow = Tuple[str, str, float]


def pairwise_distances(
    motifs: Sequence[Motif], aligner: Optional[Aligner] = None, n_jobs: int = 1
) -> List[DistanceRow]:
    """
    Distances of every unordered motif pair.

    Pairs are ordered with the first motif fixed while the remaining ones are
    iterated, then the same for the second motif, and so on.
    """
    scores = pairwise_scores([m.pwm for m in motifs], aligner or Aligner(), n_jobs=n_jobs)
    return [
        (motifs[i].name, motifs[j].name, float(scores[i, j]))
        for i, j in itertools.combinations(range(len(motifs)), 2)
    ]


def distance_table(motifs: Sequence[Motif], aligner: Optional[Aligner] = None, n_jobs: int = 1) -> pd.DataFrame:
    """Pairwise distances as a DataFrame with ``query``, ``target`` and ``distance`` columns."""
    rows = pairwise_distances(motifs, aligner, n_jobs=n_jobs)
    return pd.DataFrame(rows, columns=["query", "target", "distance"])


def format_distance_report(rows: Iterable[DistanceRow]) -> str:
    """One ``name_a<TAB>name_b<TAB>distance`` line per pair."""
    return "".join(f"{a}\t{b}\t{float(d)!r}\n" for a, b, d in rows)
