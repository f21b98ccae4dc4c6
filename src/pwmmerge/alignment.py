"""
alignment
=========

Alignment-aware distance between two PWMs.

Every relative offset that leaves at least one position overlapping is
scored as ``combine(divergences) + gap_penalty(n_gaps)``, where the
divergences are position-wise Jensen-Shannon divergences over the overlap and
``n_gaps`` counts the positions of both matrices left unaligned.  The lowest
score wins.
"""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
from joblib import Parallel, delayed

from pwmmerge.functions import column_divergence_table, gap_count, offsets_by_preference, overlap_divergences
from pwmmerge.models import AlignmentResult, as_pwm, reverse_complement
from pwmmerge.policies import CombineFn, GapPenaltyFn, combiners, gap_penalties

DEFAULT_GAP_MODE = "exp"
DEFAULT_GAP = 0.05
DEFAULT_AVG_MODE = "l1"


@dataclass(frozen=True)
class Aligner:
    """
    Configured PWM aligner.

    Policies are looked up once on construction, so an unknown name fails
    before any matrix is compared.  Instances are immutable and picklable and
    can be shipped to joblib workers.

    Parameters
    ----------
    gap_mode : str
        Gap-penalty policy: ``linear``, ``quadratic``, ``cubic`` or ``exp``.
    gap : float
        Base penalty constant.
    avg_mode : str
        Column-combine policy: ``l1``, ``l2``, ``l3`` or ``max``.
    revcomp : bool
        Also try the reverse complement of the second matrix.
    """

    gap_mode: str = DEFAULT_GAP_MODE
    gap: float = DEFAULT_GAP
    avg_mode: str = DEFAULT_AVG_MODE
    revcomp: bool = False
    _penalty: GapPenaltyFn = field(init=False, repr=False, compare=False)
    _combine: CombineFn = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.gap < 0:
            raise ValueError(f"gap must be non-negative, got {self.gap}")
        object.__setattr__(self, "_penalty", gap_penalties.get(self.gap_mode))
        object.__setattr__(self, "_combine", combiners.get(self.avg_mode))

    def __call__(self, a: np.ndarray, b: np.ndarray) -> AlignmentResult:
        return self.align(a, b)

    def align(self, a: np.ndarray, b: np.ndarray) -> AlignmentResult:
        """Align ``b`` against ``a`` and return the best score and offset."""
        a = as_pwm(a)
        b = as_pwm(b)

        score, offset = self._scan(a, b)
        if self.revcomp:
            rc_score, rc_offset = self._scan(a, reverse_complement(b))
            if rc_score < score:
                return AlignmentResult(rc_score, rc_offset, "+-")
        return AlignmentResult(score, offset, "++")

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return self.align(a, b).score

    def _scan(self, a: np.ndarray, b: np.ndarray) -> tuple[float, int]:
        """Evaluate all overlapping offsets of two validated matrices."""
        len_a, len_b = a.shape[0], b.shape[0]
        table = column_divergence_table(a, b)

        best_score = math.inf
        best_offset = 0
        found = False
        for offset in offsets_by_preference(len_a, len_b):
            divergences = overlap_divergences(table, offset)
            n_gaps = gap_count(len_a, len_b, divergences.size)
            score = self._combine(divergences) + self._penalty(self.gap, n_gaps)
            if not found or score < best_score:
                best_score = score
                best_offset = offset
                found = True

        return float(best_score), int(best_offset)


def _pair_score(aligner: Aligner, a: np.ndarray, b: np.ndarray) -> float:
    return aligner.align(a, b).score


def pairwise_scores(pwms: Sequence[np.ndarray], aligner: Aligner, n_jobs: int = 1) -> np.ndarray:
    """
    Score every unordered pair of matrices.

    Parameters
    ----------
    pwms : sequence of np.ndarray
        Matrices to compare.
    aligner : Aligner
        Configured aligner.
    n_jobs : int
        Number of parallel joblib workers. -1 to use all cores.

    Returns
    -------
    np.ndarray
        Square matrix; entry ``[i, j]`` with ``i < j`` holds the score of the
        pair, the diagonal and lower triangle are NaN.
    """
    n = len(pwms)
    scores = np.full((n, n), np.nan, dtype=np.float64)
    pairs = list(itertools.combinations(range(n), 2))
    if not pairs:
        return scores

    values = Parallel(n_jobs=n_jobs, backend="loky")(
        delayed(_pair_score)(aligner, pwms[i], pwms[j]) for i, j in pairs
    )
    for (i, j), value in zip(pairs, values):
        scores[i, j] = value
    return scores


def align_pwms(
    a: np.ndarray,
    b: np.ndarray,
    gap_mode: str = DEFAULT_GAP_MODE,
    gap: float = DEFAULT_GAP,
    avg_mode: str = DEFAULT_AVG_MODE,
    revcomp: bool = False,
) -> AlignmentResult:
    """Single-call alignment of two PWMs with the named policies."""
    return Aligner(gap_mode=gap_mode, gap=gap, avg_mode=avg_mode, revcomp=revcomp).align(a, b)
