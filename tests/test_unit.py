"""
Unit tests for key computational functions in pwmmerge.

These tests validate the correctness of individual functions from:
- pwmmerge/models.py
- pwmmerge/policies.py
- pwmmerge/functions.py
- pwmmerge/alignment.py
- pwmmerge/dilution.py
- pwmmerge/io.py
"""

import math

import numpy as np
import pytest

from pwmmerge.alignment import Aligner, align_pwms, pairwise_scores
from pwmmerge.dilution import combine_members, dilute, superpose
from pwmmerge.errors import InvalidInputError, UnknownPolicyError
from pwmmerge.functions import column_divergence_table, column_jsd, offsets_by_preference
from pwmmerge.io import read_matrix_fasta, read_meme, read_motifs, write_meme
from pwmmerge.models import MergedMotif, Motif, WeightedPWM, as_pwm, iupac_consensus, reverse_complement
from pwmmerge.policies import combiners, gap_penalties

X = [0.97, 0.01, 0.01, 0.01]
Y = [0.01, 0.97, 0.01, 0.01]
Z = [0.01, 0.01, 0.97, 0.01]
W = [0.01, 0.01, 0.01, 0.97]


def test_as_pwm_normalizes_rows():
    """Rows are rescaled to sum to one"""
    pwm = as_pwm([[2.0, 1.0, 1.0, 0.0], [0.25, 0.25, 0.25, 0.25]])

    np.testing.assert_allclose(pwm.sum(axis=1), 1.0)
    np.testing.assert_allclose(pwm[0], [0.5, 0.25, 0.25, 0.0])


@pytest.mark.parametrize(
    "matrix",
    [
        np.zeros((0, 4)),
        [[0.0, 0.0, 0.0, 0.0]],
        [[0.5, 0.5, 0.0]],
        [[-0.1, 0.6, 0.3, 0.2]],
        [[np.nan, 0.5, 0.25, 0.25]],
    ],
)
def test_as_pwm_rejects_invalid(matrix):
    """Empty, zero-mass, misshapen, negative and NaN matrices are refused"""
    with pytest.raises(InvalidInputError):
        as_pwm(matrix)


def test_invalid_input_is_value_error():
    """InvalidInputError can be caught as ValueError"""
    with pytest.raises(ValueError):
        Motif("empty", np.zeros((0, 4)))


def test_motif_matrix_is_read_only():
    """Motifs never expose a writable matrix"""
    source = np.array([[0.25, 0.25, 0.25, 0.25]])
    motif = Motif("m", source)

    with pytest.raises(ValueError):
        motif.pwm[0, 0] = 1.0

    # the caller's array is untouched and still writable
    source[0, 0] = 0.7
    assert motif.pwm[0, 0] == 0.25


def test_iupac_consensus():
    """Single, two-base and ambiguous positions"""
    pwm = [
        [0.9, 0.05, 0.03, 0.02],
        [0.45, 0.4, 0.1, 0.05],
        [0.05, 0.1, 0.4, 0.45],
        [0.25, 0.25, 0.25, 0.25],
    ]
    assert iupac_consensus(pwm) == "AMKN"


def test_reverse_complement():
    """Positions reversed, A<->T and C<->G swapped"""
    pwm = np.array([[0.7, 0.1, 0.1, 0.1], [0.1, 0.6, 0.2, 0.1]])

    rc = reverse_complement(pwm)

    np.testing.assert_array_equal(rc, [[0.1, 0.2, 0.6, 0.1], [0.1, 0.1, 0.1, 0.7]])
    np.testing.assert_array_equal(reverse_complement(rc), pwm)


def test_merged_motif_from_motif():
    """Singletons carry unit weights and their own name"""
    motif = Motif("solo", [X, Y])
    merged = MergedMotif.from_motif(motif)

    assert merged.names == ("solo",)
    assert merged.name == "solo"
    np.testing.assert_array_equal(merged.weights, [1.0, 1.0])
    np.testing.assert_array_equal(merged.pwm, motif.pwm)


def test_gap_penalties_values():
    """Known values of every gap penalty"""
    assert gap_penalties.get("linear")(0.05, 3) == pytest.approx(0.15)
    assert gap_penalties.get("quadratic")(0.05, 3) == pytest.approx(0.45)
    assert gap_penalties.get("cubic")(0.05, 3) == pytest.approx(1.35)
    assert gap_penalties.get("exp")(0.05, 3) == pytest.approx(0.35)


@pytest.mark.parametrize("name", ["linear", "quadratic", "cubic", "exp"])
def test_gap_penalties_zero_and_monotone(name):
    """Zero at length 0 and non-decreasing"""
    penalty = gap_penalties.get(name)
    values = [penalty(0.05, n) for n in range(12)]

    assert values[0] == 0.0
    assert all(b >= a for a, b in zip(values, values[1:]))


def test_exp_penalty_saturates():
    """Huge gaps give an infinite, not an erroring, penalty"""
    assert gap_penalties.get("exp")(0.05, 5000) == math.inf
    assert gap_penalties.get("exp")(0.0, 5000) == 0.0


def test_combiners_values():
    """Known values of every combine function"""
    d = np.array([0.1, 0.3])

    assert combiners.get("l1")(d) == pytest.approx(0.2)
    assert combiners.get("l2")(d) == pytest.approx(math.sqrt(0.05))
    assert combiners.get("l3")(d) == pytest.approx(0.014 ** (1.0 / 3.0))
    assert combiners.get("max")(d) == pytest.approx(0.3)


def test_policy_registry_unknown():
    """Unknown names fail with the available names listed"""
    with pytest.raises(UnknownPolicyError, match="linear"):
        gap_penalties.get("sigmoid")
    with pytest.raises(UnknownPolicyError):
        combiners.get("l4")
    with pytest.raises(UnknownPolicyError):
        Aligner(gap_mode="bogus")

    assert combiners.available() == ["l1", "l2", "l3", "max"]


def test_column_jsd_bounds():
    """Identical distributions give 0, disjoint ones give 1"""
    p = np.array([0.9, 0.1, 0.0, 0.0])
    q = np.array([0.0, 0.0, 0.9, 0.1])

    assert column_jsd(p, p) == 0.0
    assert column_jsd(p, q) == pytest.approx(1.0)
    assert column_jsd(p, q) == column_jsd(q, p)


def test_column_divergence_table_shape():
    """One entry per pair of positions"""
    a = as_pwm([X, Y, Z])
    b = as_pwm([Y, Z])

    table = column_divergence_table(a, b)

    assert table.shape == (3, 2)
    assert table[1, 0] == 0.0
    assert table[2, 1] == 0.0
    assert table[0, 0] > 0.5


def test_offsets_by_preference():
    """Every overlapping offset, smallest shift first, leftmost first on ties"""
    assert offsets_by_preference(3, 2) == [0, -1, 1, 2]
    assert offsets_by_preference(1, 1) == [0]


def test_self_distance_is_zero():
    """A matrix aligns to itself at offset 0 with score 0"""
    a = [X, Y, Z, W, [0.4, 0.3, 0.2, 0.1]]

    result = align_pwms(a, a, gap=0.0)

    assert result.score == 0.0
    assert result.offset == 0
    assert result.orientation == "++"


def test_alignment_symmetry(random_motifs):
    """Swapping the arguments keeps the score and negates the offset"""
    aligner = Aligner()
    for a in random_motifs[:5]:
        for b in random_motifs[3:]:
            if a is b:
                continue
            forward = aligner.align(a.pwm, b.pwm)
            backward = aligner.align(b.pwm, a.pwm)
            assert forward.score == backward.score
            assert forward.offset == -backward.offset


def test_alignment_offset_convention():
    """Offset is where the second matrix starts inside the first"""
    result = align_pwms([X, Y, Z], [Y, Z], gap_mode="linear", gap=0.05)

    assert result.offset == 1
    assert result.score == pytest.approx(0.05)


def test_alignment_prefers_smallest_shift():
    """Equal scores at offsets 0 and -2: the smaller shift wins"""
    result = align_pwms([X], [X, W, X], gap_mode="linear", gap=0.05)

    assert result.offset == 0
    assert result.score == pytest.approx(0.1)


def test_alignment_prefers_leftmost_offset():
    """Equal scores at offsets -1 and +1: the leftmost wins"""
    result = align_pwms([X, Y], [Y, X], gap_mode="linear", gap=0.05)

    assert result.offset == -1
    assert result.score == pytest.approx(0.1)


def test_alignment_reverse_complement():
    """The reverse complement is used only when asked for and strictly better"""
    a = np.array([X, X, X, Z, Y])
    b = reverse_complement(a)

    forward_only = align_pwms(a, b)
    with_rc = align_pwms(a, b, revcomp=True)

    assert forward_only.orientation == "++"
    assert forward_only.score > 0.0
    assert with_rc.orientation == "+-"
    assert with_rc.offset == 0
    assert with_rc.score == pytest.approx(0.0, abs=1e-12)


def test_alignment_rejects_empty():
    """Zero-position matrices cannot be aligned"""
    with pytest.raises(InvalidInputError):
        align_pwms(np.zeros((0, 4)), [X])


def test_pairwise_scores_layout(random_motifs):
    """Upper triangle filled, everything else NaN"""
    pwms = [m.pwm for m in random_motifs[:4]]
    aligner = Aligner()

    scores = pairwise_scores(pwms, aligner)

    assert scores.shape == (4, 4)
    assert np.isnan(scores[np.tril_indices(4)]).all()
    assert scores[1, 3] == aligner.align(pwms[1], pwms[3]).score


def test_superpose_positive_offset():
    """Second matrix starting inside the first"""
    first = WeightedPWM.from_pwm([[1, 0, 0, 0], [0, 1, 0, 0]])
    second = WeightedPWM.from_pwm([[0, 0, 1, 0]])

    stacked = superpose(first, second, 1)

    np.testing.assert_array_equal(stacked.matrix, [[1, 0, 0, 0], [0, 1, 1, 0]])
    np.testing.assert_array_equal(stacked.weights, [1, 2])


def test_superpose_negative_offset_extends_left():
    """Second matrix hanging off the left end"""
    first = WeightedPWM.from_pwm([[1, 0, 0, 0], [0, 1, 0, 0]])
    second = WeightedPWM.from_pwm([[0, 0, 1, 0]])

    stacked = superpose(first, second, -1)

    np.testing.assert_array_equal(stacked.matrix, [[0, 0, 1, 0], [1, 0, 0, 0], [0, 1, 0, 0]])
    np.testing.assert_array_equal(stacked.weights, [1, 1, 1])


def test_superpose_rejects_disjoint_offset():
    """Offsets without overlap are refused"""
    first = WeightedPWM.from_pwm([X, Y])
    second = WeightedPWM.from_pwm([Z])

    with pytest.raises(InvalidInputError):
        superpose(first, second, 2)


def test_dilute_normalizes(random_motifs):
    """Every diluted row sums to one"""
    rng = np.random.default_rng(7)
    for motif in random_motifs:
        weights = rng.integers(0, 5, size=motif.length).astype(float)
        weighted = WeightedPWM(motif.pwm * weights[:, None] * 3.0, weights)

        pwm = dilute(weighted)

        np.testing.assert_allclose(pwm.sum(axis=1), 1.0, atol=1e-9)
        for row in pwm[weights == 0]:
            np.testing.assert_array_equal(row, [0.25, 0.25, 0.25, 0.25])


def test_dilute_zero_weight_is_background():
    """Weightless positions become exactly uniform"""
    weighted = WeightedPWM(np.array([[0.0, 0.0, 0.0, 0.0], [2.0, 0.0, 0.0, 2.0]]), np.array([0.0, 4.0]))

    pwm = dilute(weighted)

    np.testing.assert_array_equal(pwm, [[0.25, 0.25, 0.25, 0.25], [0.5, 0.0, 0.0, 0.5]])


def test_dilute_is_idempotent_on_pwm(random_motifs):
    """A proper PWM with unit weights is returned unchanged"""
    for motif in random_motifs:
        np.testing.assert_allclose(dilute(WeightedPWM.from_pwm(motif.pwm)), motif.pwm, atol=1e-12)


def test_dilute_rejects_massless_weighted_row():
    """Weight without probability mass cannot be normalized"""
    weighted = WeightedPWM(np.zeros((1, 4)), np.array([1.0]))

    with pytest.raises(InvalidInputError):
        dilute(weighted)


def test_combine_members_end_to_end(abc_motifs, linear_aligner):
    """Two near-identical motifs average into one"""
    a, b, _ = (MergedMotif.from_motif(m) for m in abc_motifs)

    merged = combine_members(a, b, linear_aligner)

    assert merged.names == ("A", "B")
    np.testing.assert_allclose(merged.pwm, [[0.875, 0.125, 0.0, 0.0]])
    np.testing.assert_array_equal(merged.weights, [2.0])


def test_combine_members_weighting(linear_aligner):
    """Size weighting counts constituents, simple weighting does not"""
    big = MergedMotif(("x", "y", "z"), [[0.9, 0.1, 0.0, 0.0]], [3.0])
    small = MergedMotif.from_motif(Motif("w", [[0.5, 0.5, 0.0, 0.0]]))

    by_size = combine_members(big, small, linear_aligner, weighting="size")
    simple = combine_members(big, small, linear_aligner, weighting="simple")

    np.testing.assert_allclose(by_size.pwm, [[0.8, 0.2, 0.0, 0.0]])
    np.testing.assert_allclose(simple.pwm, [[0.7, 0.3, 0.0, 0.0]])
    np.testing.assert_array_equal(by_size.weights, [4.0])
    np.testing.assert_array_equal(simple.weights, [4.0])

    with pytest.raises(UnknownPolicyError):
        combine_members(big, small, linear_aligner, weighting="median")


def test_combine_members_reverse_complement():
    """A reverse-complement match is flipped before superposition"""
    aligner = Aligner(revcomp=True)
    a = Motif("fwd", [X, X, Z, Y])
    b = Motif("rev", reverse_complement(a.pwm))

    merged = combine_members(MergedMotif.from_motif(a), MergedMotif.from_motif(b), aligner)

    np.testing.assert_allclose(merged.pwm, a.pwm)
    assert merged.names == ("fwd", "rev")


def test_meme_write_then_read(tmp_path, abc_motifs):
    """Names and matrices survive a MEME file"""
    path = tmp_path / "out.meme"

    write_meme(abc_motifs, path)
    motifs = read_meme(path)

    assert [m.name for m in motifs] == ["A", "B", "C"]
    for original, loaded in zip(abc_motifs, motifs):
        np.testing.assert_allclose(loaded.pwm, original.pwm, atol=1e-6)


def test_read_motifs_by_suffix(examples_dir):
    """MEME and FASTA-style matrix files are both understood"""
    meme = read_motifs(examples_dir / "motifs.meme")
    fasta = read_matrix_fasta(examples_dir / "motifs.fasta")

    assert [m.name for m in meme] == ["GATA1", "GATA2", "EBOX_A", "EBOX_B", "POLYT"]
    assert [m.length for m in meme] == [6, 6, 6, 6, 5]
    assert [m.name for m in fasta] == ["A", "B", "C"]


def test_read_meme_without_motifs(tmp_path):
    """Files without motifs are an input error"""
    path = tmp_path / "empty.meme"
    path.write_text("MEME version 4\n\nALPHABET= ACGT\n")

    with pytest.raises(InvalidInputError):
        read_meme(path)


if __name__ == "__main__":
    pytest.main([__file__])
