"""
Integration tests for the pwmmerge command line.

These tests run the CLI end to end on the bundled example motifs.
"""

import subprocess
import sys

import numpy as np
import pytest

from pwmmerge.io import read_motifs


def run_cli(args: list[str]) -> subprocess.CompletedProcess:
    """Run CLI through current Python env to avoid global PATH contamination."""
    return subprocess.run([sys.executable, "-m", "pwmmerge.cli", *args], capture_output=True, text=True)


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary directory for test outputs."""
    return tmp_path


def test_iterative_merge_meme(examples_dir, temp_dir):
    """Iterative merging of the example MEME file"""
    output = temp_dir / "merged.meme"

    result = run_cli([str(examples_dir / "motifs.meme"), "-o", str(output), "-v"])

    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"
    motifs = read_motifs(output)
    assert [m.name for m in motifs] == ["GATA1+GATA2", "EBOX_A+EBOX_B", "POLYT"]
    for motif in motifs:
        np.testing.assert_allclose(motif.pwm.sum(axis=1), 1.0, atol=1e-5)


def test_tree_merge_with_tree_output(examples_dir, temp_dir):
    """Tree merging writes prefixed motifs and a scipy linkage matrix"""
    output = temp_dir / "nested" / "tree.meme"
    tree_out = temp_dir / "tree.tsv"

    result = run_cli(
        [
            str(examples_dir / "motifs.meme"),
            "-m",
            "tree",
            "-p",
            "family",
            "-o",
            str(output),
            "--tree-out",
            str(tree_out),
        ]
    )

    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"
    motifs = read_motifs(output)
    assert len(motifs) == 3
    assert all(m.name.startswith(f"family_{i}_") for i, m in enumerate(motifs))
    assert any(m.name.endswith("(GATA1+GATA2)") for m in motifs)

    linkage = np.loadtxt(tree_out, delimiter="\t")
    assert linkage.shape == (4, 4)
    assert linkage[-1, 3] == 5


def test_dump_dist(examples_dir, temp_dir):
    """Diagnostic mode prints every pair and writes no motifs"""
    output = temp_dir / "unused.meme"

    result = run_cli(
        [str(examples_dir / "motifs.meme"), "--dump-dist", "--gap-mode", "linear", "--avg-mode", "l2", "-o", str(output)]
    )

    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"
    lines = result.stdout.strip().split("\n")
    assert len(lines) == 10
    first = lines[0].split("\t")
    assert first[:2] == ["GATA1", "GATA2"]
    assert float(first[2]) >= 0
    assert not output.exists()


def test_fasta_input_and_output(examples_dir, temp_dir):
    """FASTA-style matrices in and out"""
    output = temp_dir / "merged.fa"

    result = run_cli([str(examples_dir / "motifs.fasta"), "-o", str(output), "--jobs", "2"])

    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"
    motifs = read_motifs(output)
    assert [m.name for m in motifs] == ["A+B", "C"]
    np.testing.assert_allclose(motifs[0].pwm, [[0.875, 0.125, 0.0, 0.0]], atol=1e-6)


def test_revcomp_flag(examples_dir, temp_dir):
    """Reverse-complement search accepted on the command line"""
    output = temp_dir / "rc.meme"

    result = run_cli([str(examples_dir / "motifs.meme"), "--revcomp", "-t", "0.1", "-o", str(output)])

    assert result.returncode == 0, f"Command failed with stderr: {result.stderr}"
    assert len(read_motifs(output)) >= 3


def test_unknown_gap_mode_rejected(examples_dir):
    """argparse refuses unknown strategies"""
    result = run_cli([str(examples_dir / "motifs.meme"), "--gap-mode", "sigmoid"])

    assert result.returncode == 2
    assert "sigmoid" in result.stderr


def test_missing_input_file(temp_dir):
    """A missing motif file fails cleanly"""
    result = run_cli([str(temp_dir / "absent.meme")])

    assert result.returncode == 1
    assert "not found" in result.stderr


def test_malformed_input_file(temp_dir):
    """A file without motifs is reported as a failed merge"""
    path = temp_dir / "broken.meme"
    path.write_text("MEME version 4\n")

    result = run_cli([str(path), "-o", str(temp_dir / "out.meme")])

    assert result.returncode == 1
    assert "Merging failed" in result.stderr


if __name__ == "__main__":
    pytest.main([__file__])
