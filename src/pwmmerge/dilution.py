"""Weighted superposition of aligned matrices and renormalization ("dilution")."""

from __future__ import annotations

import numpy as np

from pwmmerge.errors import InvalidInputError, UnknownPolicyError
from pwmmerge.models import BACKGROUND, MergedMotif, WeightedPWM, reverse_complement

WEIGHTING_MODES = ("size", "simple")


def check_weighting(weighting: str) -> str:
    if weighting not in WEIGHTING_MODES:
        raise UnknownPolicyError(f"Unknown weighting: {weighting!r}. Available: {list(WEIGHTING_MODES)}")
    return weighting


def _span(len_a: int, len_b: int, offset: int) -> tuple[int, int, int]:
    """Length of the union span and the start of each matrix inside it."""
    if not -(len_b - 1) <= offset <= len_a - 1:
        raise InvalidInputError(f"Offset {offset} leaves no overlap between lengths {len_a} and {len_b}")
    start = min(0, offset)
    end = max(len_a, offset + len_b)
    return end - start, -start, offset - start


def superpose_weights(first: np.ndarray, second: np.ndarray, offset: int) -> np.ndarray:
    """Add two per-position weight vectors with ``second`` shifted by ``offset``."""
    size, pos_a, pos_b = _span(first.size, second.size, offset)
    weights = np.zeros(size, dtype=np.float64)
    weights[pos_a : pos_a + first.size] += first
    weights[pos_b : pos_b + second.size] += second
    return weights


def superpose(first: WeightedPWM, second: WeightedPWM, offset: int) -> WeightedPWM:
    """
    Overlay two weighted matrices with ``second`` shifted by ``offset``.

    The result spans the union of both matrices.  Positions covered by a single
    member carry that member's contribution only.
    """
    size, pos_a, pos_b = _span(first.length, second.length, offset)

    matrix = np.zeros((size, 4), dtype=np.float64)
    matrix[pos_a : pos_a + first.length] += first.matrix
    matrix[pos_b : pos_b + second.length] += second.matrix

    return WeightedPWM(matrix, superpose_weights(first.weights, second.weights, offset))


def dilute(weighted: WeightedPWM) -> np.ndarray:
    """Renormalize every position of a weighted matrix into a probability distribution.

    Positions with zero weight become the uniform background.
    """
    matrix = weighted.matrix
    if np.any(matrix < 0):
        raise InvalidInputError("Weighted matrix contains negative entries")

    totals = matrix.sum(axis=1)
    empty = weighted.weights == 0
    bad = np.where(~empty & (totals <= 0))[0]
    if bad.size > 0:
        raise InvalidInputError(f"Positions {bad.tolist()} carry weight but no probability mass")

    pwm = np.empty_like(matrix)
    pwm[empty] = BACKGROUND
    pwm[~empty] = matrix[~empty] / totals[~empty, None]
    return pwm


def member_weights(counts: np.ndarray, weighting: str) -> np.ndarray:
    """Weights a member contributes to a superposition.

    ``size`` uses the accumulated counts, ``simple`` gives every covered
    position weight 1 so both members count equally.
    """
    if check_weighting(weighting) == "simple":
        return (np.asarray(counts) > 0).astype(np.float64)
    return np.asarray(counts, dtype=np.float64)


def combine_members(first: MergedMotif, second: MergedMotif, aligner, weighting: str = "size") -> MergedMotif:
    """Align two merged motifs, superpose them at the best offset and dilute the result."""
    result = aligner(first.pwm, second.pwm)

    second_pwm = np.asarray(second.pwm)
    second_counts = np.asarray(second.weights)
    if result.orientation == "+-":
        second_pwm = reverse_complement(second_pwm)
        second_counts = second_counts[::-1]

    first_weights = member_weights(first.weights, weighting)
    second_weights = member_weights(second_counts, weighting)
    stacked = superpose(
        WeightedPWM(np.asarray(first.pwm) * first_weights[:, None], first_weights),
        WeightedPWM(second_pwm * second_weights[:, None], second_weights),
        result.offset,
    )
    counts = superpose_weights(np.asarray(first.weights), second_counts, result.offset)

    return MergedMotif(first.names + second.names, dilute(stacked), counts)
