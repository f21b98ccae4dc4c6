"""Configuration for a merge run."""

from __future__ import annotations

from dataclasses import dataclass

from pwmmerge.alignment import DEFAULT_AVG_MODE, DEFAULT_GAP, DEFAULT_GAP_MODE, Aligner
from pwmmerge.dilution import check_weighting
from pwmmerge.errors import UnknownPolicyError
from pwmmerge.policies import combiners, gap_penalties
from pwmmerge.tree import check_linkage

_MODE_ALIASES = {
    "iter": "iterative",
    "iterative": "iterative",
    "tree": "tree",
}


@dataclass(frozen=True)
class MergeConfig:
    """Immutable settings of a merge run."""

    mode: str = "iterative"
    threshold: float = 0.2
    gap_mode: str = DEFAULT_GAP_MODE
    gap: float = DEFAULT_GAP
    avg_mode: str = DEFAULT_AVG_MODE
    prefix: str = "merged"
    dump_dist: bool = False
    linkage: str = "representative"
    weighting: str = "size"
    revcomp: bool = False
    n_jobs: int = 1

    def aligner(self) -> Aligner:
        return Aligner(gap_mode=self.gap_mode, gap=self.gap, avg_mode=self.avg_mode, revcomp=self.revcomp)


def _normalize_mode(mode: str) -> str:
    resolved = _MODE_ALIASES.get(mode.lower())
    if resolved is None:
        available = ", ".join(sorted(_MODE_ALIASES))
        raise UnknownPolicyError(f"Unknown merge mode: {mode!r}. Available: {available}")
    return resolved


def create_merge_config(
    mode: str = "iterative",
    threshold: float = 0.2,
    gap_mode: str = DEFAULT_GAP_MODE,
    gap: float = DEFAULT_GAP,
    avg_mode: str = DEFAULT_AVG_MODE,
    prefix: str = "merged",
    dump_dist: bool = False,
    linkage: str = "representative",
    weighting: str = "size",
    revcomp: bool = False,
    n_jobs: int = 1,
) -> MergeConfig:
    """Build a validated merge config; every strategy name is resolved here."""

    gap_penalties.get(gap_mode)
    combiners.get(avg_mode)
    check_linkage(linkage)
    check_weighting(weighting)

    if threshold < 0:
        raise ValueError(f"threshold must be non-negative, got {threshold}")
    if gap < 0:
        raise ValueError(f"gap must be non-negative, got {gap}")
    if n_jobs == 0:
        raise ValueError("n_jobs must be non-zero")

    return MergeConfig(
        mode=_normalize_mode(mode),
        threshold=float(threshold),
        gap_mode=gap_mode,
        gap=float(gap),
        avg_mode=avg_mode,
        prefix=prefix,
        dump_dist=dump_dist,
        linkage=linkage,
        weighting=weighting,
        revcomp=revcomp,
        n_jobs=n_jobs,
    )
