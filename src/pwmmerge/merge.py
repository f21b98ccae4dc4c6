"""
Iterative greedy merging.

The globally closest pair of the working set is merged until the closest
pair is farther apart than the threshold.  After a merge only the distances
between the new member and the survivors are recomputed.

Tie rule: among pairs sharing the minimum distance, the pair whose earlier
working-set slot is smallest wins, then the one whose later slot is smallest.
The merged member takes over the earlier slot and the later slot is retired.
"""

from __future__ import annotations

import logging
from typing import List, NamedTuple, Optional, Sequence

import numpy as np

from pwmmerge.alignment import Aligner, pairwise_scores
from pwmmerge.dilution import check_weighting, combine_members
from pwmmerge.errors import DegenerateMergeError
from pwmmerge.models import MergedMotif, Motif


class MergeStep(NamedTuple):
    """One agglomeration: slots ``first < second`` merged at ``distance``."""

    first: int
    second: int
    distance: float
    merged: MergedMotif
    remaining: int


def closest_pair(scores: np.ndarray) -> tuple[int, int, float]:
    """Return ``(i, j, score)`` of the smallest non-NaN entry, first in row-major order."""
    flat = int(np.nanargmin(scores))
    i, j = divmod(flat, scores.shape[1])
    return i, j, float(scores[i, j])


class IterativeMerger:
    """
    Working set of merged motifs with its pairwise distance matrix.

    Parameters
    ----------
    motifs : sequence of Motif
        Input motifs, in the order that defines the working-set slots.
    aligner : Aligner
        Configured aligner.
    n_jobs : int
        joblib workers used for the initial distance matrix.
    weighting : str
        ``size`` or ``simple`` superposition weights.
    """

    def __init__(self, motifs: Sequence[Motif], aligner: Aligner, n_jobs: int = 1, weighting: str = "size"):
        self.logger = logging.getLogger(__name__)
        self.aligner = aligner
        self.weighting = check_weighting(weighting)
        self._slots: List[Optional[MergedMotif]] = [MergedMotif.from_motif(m) for m in motifs]
        self._scores = pairwise_scores([m.pwm for m in self._slots], aligner, n_jobs=n_jobs)
        self.n_steps = 0

    @property
    def members(self) -> List[MergedMotif]:
        """Surviving members in slot order."""
        return [m for m in self._slots if m is not None]

    def __len__(self) -> int:
        return sum(m is not None for m in self._slots)

    def step(self, threshold: float) -> Optional[MergeStep]:
        """Merge the closest pair if it is within ``threshold``; return None otherwise."""
        if len(self) < 2:
            return None

        i, j, distance = closest_pair(self._scores)
        if distance > threshold:
            return None

        first, second = self._slots[i], self._slots[j]
        if first is None or second is None:
            raise DegenerateMergeError(f"Distance matrix points at retired slot ({i}, {j})")

        merged = combine_members(first, second, self.aligner, weighting=self.weighting)
        self._slots[i] = merged
        self._slots[j] = None
        self._scores[j, :] = np.nan
        self._scores[:, j] = np.nan

        for k, other in enumerate(self._slots):
            if k == i or other is None:
                continue
            lo, hi = (i, k) if i < k else (k, i)
            self._scores[lo, hi] = self.aligner.align(self._slots[lo].pwm, self._slots[hi].pwm).score

        self.n_steps += 1
        step = MergeStep(i, j, distance, merged, len(self))
        self.logger.debug(
            f"Merged slot {j} into slot {i} at distance {distance:.6f}: {merged.name} ({step.remaining} left)"
        )
        return step

    def run(self, threshold: float) -> List[MergedMotif]:
        """Merge until no pair is within ``threshold``; return the surviving members."""
        while self.step(threshold) is not None:
            pass
        return self.members


def iterative_merge(
    motifs: Sequence[Motif],
    threshold: float,
    aligner: Optional[Aligner] = None,
    n_jobs: int = 1,
    weighting: str = "size",
) -> List[MergedMotif]:
    """Greedily merge the closest motifs until no pair is within ``threshold``."""
    logger = logging.getLogger(__name__)
    merger = IterativeMerger(motifs, aligner or Aligner(), n_jobs=n_jobs, weighting=weighting)
    members = merger.run(threshold)
    logger.info(f"Iterative merge: {len(motifs)} motifs -> {len(members)} after {merger.n_steps} merge(s)")
    return members
