from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np

from pwmmerge.errors import InvalidInputError
from pwmmerge.models import Motif

FASTA_SUFFIXES = (".fasta", ".fa")


def _parse_row(line: str) -> Optional[List[float]]:
    """Return the numbers of a matrix row, or None if the line is not one."""
    parts = line.split()
    if len(parts) != 4:
        return None
    try:
        return [float(x) for x in parts]
    except ValueError:
        return None


def read_meme(path: str | Path) -> List[Motif]:
    """Read every motif of a MEME formatted file."""
    motifs: List[Motif] = []

    with open(path) as handle:
        name: Optional[str] = None
        line = handle.readline()
        while line:
            if line.startswith("MOTIF"):
                parts = line.strip().split()
                if len(parts) < 2:
                    raise InvalidInputError(f"MOTIF line without a name in {path}: {line.strip()!r}")
                name = parts[1]

            elif line.startswith("letter-probability matrix") and name is not None:
                header = line.strip().split()
                try:
                    length = int(header[header.index("w=") + 1])
                except (ValueError, IndexError):
                    length = None

                rows = []
                line = handle.readline()
                while line and (length is None or len(rows) < length):
                    if not line.strip():
                        if rows:
                            break
                        line = handle.readline()
                        continue
                    row = _parse_row(line)
                    if row is None:
                        break
                    rows.append(row)
                    line = handle.readline()

                if length is not None and len(rows) != length:
                    raise InvalidInputError(f"Motif {name} in {path}: expected {length} rows, found {len(rows)}")
                motifs.append(Motif(name, np.array(rows, dtype=np.float64)))
                name = None
                continue

            line = handle.readline()

    if not motifs:
        raise InvalidInputError(f"No motifs found in {path}")

    logging.getLogger(__name__).debug(f"Read {len(motifs)} motif(s) from {path}")
    return motifs


def write_meme(motifs: Sequence[Motif], path: str | Path) -> None:
    """Write a list of motifs to a MEME formatted file."""
    with open(path, "w") as out:
        out.write("MEME version 4\n\n")
        out.write("ALPHABET= ACGT\n\n")
        out.write("strands: + -\n\n")
        out.write("Background letter frequencies\n")
        out.write("A 0.25 C 0.25 G 0.25 T 0.25\n\n")
        for motif in motifs:
            out.write(f"MOTIF {motif.name}\n")
            out.write(f"letter-probability matrix: alength= 4 w= {motif.length}\n")
            for row in motif.pwm:
                out.write(" " + " ".join(f"{val:.6f}" for val in row) + "\n")
            out.write("\n")


def read_matrix_fasta(path: str | Path) -> List[Motif]:
    """Read motifs stored as ``>name`` headers followed by one row of four probabilities per position."""
    motifs: List[Motif] = []
    name: Optional[str] = None
    rows: List[List[float]] = []

    with open(path) as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            if line.startswith(">"):
                if name is not None:
                    motifs.append(Motif(name, np.array(rows, dtype=np.float64)))
                name = line[1:].strip()
                rows = []
            else:
                row = _parse_row(line)
                if row is None or name is None:
                    raise InvalidInputError(f"Malformed matrix row in {path}: {line!r}")
                rows.append(row)

    if name is not None:
        motifs.append(Motif(name, np.array(rows, dtype=np.float64)))
    if not motifs:
        raise InvalidInputError(f"No motifs found in {path}")
    return motifs


def write_matrix_fasta(motifs: Sequence[Motif], path: str | Path) -> None:
    """Write motifs as ``>name`` headers followed by tab-separated rows."""
    with open(path, "w") as out:
        for motif in motifs:
            out.write(f">{motif.name}\n")
            np.savetxt(out, motif.pwm, fmt="%.8f", delimiter="\t")


def _is_fasta(path: str | Path) -> bool:
    _, ext = os.path.splitext(str(path).lower())
    return ext in FASTA_SUFFIXES


def read_motifs(path: str | Path) -> List[Motif]:
    """Read motifs, choosing the format from the file suffix (FASTA matrices or MEME)."""
    return read_matrix_fasta(path) if _is_fasta(path) else read_meme(path)


def write_motifs(motifs: Sequence[Motif], path: str | Path) -> None:
    """Write motifs, choosing the format from the file suffix (FASTA matrices or MEME)."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    if _is_fasta(path):
        write_matrix_fasta(motifs, path)
    else:
        write_meme(motifs, path)
