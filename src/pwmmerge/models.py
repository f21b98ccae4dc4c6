"""
Motif Models Module
===================

Immutable containers for motifs and the intermediate matrices produced while
merging them.

A PWM is stored as a float64 array of shape ``(length, 4)``: one row per motif
position, one column per nucleotide in ``A, C, G, T`` order.  Every row is a
probability distribution.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dc_field
from typing import NamedTuple, Optional, Sequence, Tuple

import numpy as np

from pwmmerge.errors import InvalidInputError

ALPHABET = "ACGT"
BACKGROUND = np.full(4, 0.25, dtype=np.float64)

_IUPAC_PAIRS = {
    frozenset("AC"): "M",
    frozenset("AG"): "R",
    frozenset("AT"): "W",
    frozenset("CG"): "S",
    frozenset("CT"): "Y",
    frozenset("GT"): "K",
}


def as_pwm(matrix) -> np.ndarray:
    """Validate a matrix and return it as a row-normalized float64 PWM."""
    try:
        pwm = np.array(matrix, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Matrix is not numeric: {exc}") from exc

    if pwm.ndim != 2 or pwm.shape[1] != 4:
        raise InvalidInputError(f"Expected matrix of shape (length, 4), got {pwm.shape}")
    if pwm.shape[0] == 0:
        raise InvalidInputError("Matrix has zero positions")
    if not np.all(np.isfinite(pwm)):
        raise InvalidInputError("Matrix contains non-finite values")
    if np.any(pwm < 0):
        raise InvalidInputError("Matrix contains negative probabilities")

    totals = pwm.sum(axis=1)
    bad = np.where(totals <= 0)[0]
    if bad.size > 0:
        raise InvalidInputError(f"Positions {bad.tolist()} do not sum to a positive total")

    return pwm / totals[:, None]


def _frozen(array: np.ndarray) -> np.ndarray:
    """Mark an array read-only and return it."""
    array.setflags(write=False)
    return array


def reverse_complement(pwm: np.ndarray) -> np.ndarray:
    """Return the reverse complement of a PWM (positions reversed, A<->T, C<->G)."""
    return np.ascontiguousarray(pwm[::-1, ::-1])


def iupac_consensus(pwm: np.ndarray) -> str:
    """
    Build the IUPAC consensus string of a PWM.

    A position gets a single base when its probability exceeds 0.5 and is more
    than twice the runner-up, a two-base code when the two most likely bases
    together exceed 0.75, and ``N`` otherwise.
    """
    symbols = []
    for row in np.asarray(pwm):
        order = np.argsort(-row, kind="stable")
        first, second = row[order[0]], row[order[1]]
        if first > 0.5 and first > 2 * second:
            symbols.append(ALPHABET[order[0]])
        elif first + second > 0.75:
            symbols.append(_IUPAC_PAIRS[frozenset((ALPHABET[order[0]], ALPHABET[order[1]]))])
        else:
            symbols.append("N")
    return "".join(symbols)


@dataclass(frozen=True)
class Motif:
    """Named PWM.

    The matrix is validated, row-normalized and made read-only on construction,
    so a motif handed to the merging engine is never modified.

    Attributes
    ----------
    name : str
        Motif identifier.
    pwm : np.ndarray
        Probability matrix of shape ``(length, 4)``.
    """

    name: str
    pwm: np.ndarray = dc_field(hash=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "pwm", _frozen(as_pwm(self.pwm)))

    @property
    def length(self) -> int:
        return self.pwm.shape[0]

    def consensus(self) -> str:
        return iupac_consensus(self.pwm)


class AlignmentResult(NamedTuple):
    """Best alignment of two PWMs.

    ``offset`` is the position of the second matrix's first row relative to
    the first matrix's first row.  ``orientation`` is ``"++"`` for the second
    matrix as given and ``"+-"`` for its reverse complement.
    """

    score: float
    offset: int
    orientation: str = "++"


@dataclass
class WeightedPWM:
    """Weight-scaled matrix paired with per-position weights.

    Row ``i`` of ``matrix`` is the sum of the contributing distributions, each
    scaled by its weight; ``weights[i]`` is the total weight at that position.
    """

    matrix: np.ndarray
    weights: np.ndarray

    def __post_init__(self):
        self.matrix = np.asarray(self.matrix, dtype=np.float64)
        self.weights = np.asarray(self.weights, dtype=np.float64)
        if self.matrix.ndim != 2 or self.matrix.shape[1] != 4 or self.matrix.shape[0] == 0:
            raise InvalidInputError(f"Expected weighted matrix of shape (length, 4), got {self.matrix.shape}")
        if self.weights.shape != (self.matrix.shape[0],):
            raise InvalidInputError(
                f"Weights of shape {self.weights.shape} do not match {self.matrix.shape[0]} positions"
            )
        if np.any(self.weights < 0):
            raise InvalidInputError("Weights must be non-negative")

    @classmethod
    def from_pwm(cls, pwm: np.ndarray, weights: Optional[Sequence[float]] = None) -> "WeightedPWM":
        """Scale a proper PWM by per-position weights (ones by default)."""
        pwm = as_pwm(pwm)
        if weights is None:
            weights = np.ones(pwm.shape[0], dtype=np.float64)
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (pwm.shape[0],):
            raise InvalidInputError(f"Weights of shape {weights.shape} do not match {pwm.shape[0]} positions")
        return cls(pwm * weights[:, None], weights)

    @property
    def length(self) -> int:
        return self.matrix.shape[0]


@dataclass(frozen=True)
class MergedMotif:
    """Result of merging one or more original motifs.

    Attributes
    ----------
    names : tuple of str
        Names of the constituent original motifs, in merge order.
    pwm : np.ndarray
        Diluted consensus matrix.
    weights : np.ndarray
        Accumulated per-position weights (number of contributing motifs).
    """

    names: Tuple[str, ...]
    pwm: np.ndarray = dc_field(hash=False, compare=False)
    weights: np.ndarray = dc_field(hash=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "names", tuple(self.names))
        object.__setattr__(self, "pwm", _frozen(np.array(self.pwm, dtype=np.float64)))
        object.__setattr__(self, "weights", _frozen(np.array(self.weights, dtype=np.float64)))

    @classmethod
    def from_motif(cls, motif: Motif) -> "MergedMotif":
        return cls((motif.name,), motif.pwm, np.ones(motif.length, dtype=np.float64))

    @property
    def name(self) -> str:
        return "+".join(self.names)

    @property
    def length(self) -> int:
        return self.pwm.shape[0]

    def to_weighted(self) -> WeightedPWM:
        return WeightedPWM(self.pwm * self.weights[:, None], self.weights)

    def to_motif(self, name: Optional[str] = None) -> Motif:
        return Motif(name if name is not None else self.name, self.pwm)
