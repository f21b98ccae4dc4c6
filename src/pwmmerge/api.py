"""High-level public API for motif merging."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import pandas as pd

from pwmmerge.config import MergeConfig, create_merge_config
from pwmmerge.merge import iterative_merge
from pwmmerge.models import Motif
from pwmmerge.report import distance_table
from pwmmerge.tree import Dendrogram, tree_merge


@dataclass
class MergeOutcome:
    """Result of a merge run.

    ``motifs`` is empty and ``distances`` is set in diagnostic mode;
    ``dendrogram`` is only set in tree mode.
    """

    motifs: List[Motif] = field(default_factory=list)
    dendrogram: Optional[Dendrogram] = None
    distances: Optional[pd.DataFrame] = None


def run_merge(motifs: Sequence[Motif], config: MergeConfig) -> MergeOutcome:
    """Execute a merge (or the pairwise report) using the given config."""

    aligner = config.aligner()

    if config.dump_dist:
        return MergeOutcome(distances=distance_table(motifs, aligner, n_jobs=config.n_jobs))

    if config.mode == "tree":
        merged, tree = tree_merge(
            motifs,
            config.threshold,
            aligner,
            prefix=config.prefix,
            linkage=config.linkage,
            weighting=config.weighting,
            n_jobs=config.n_jobs,
        )
        return MergeOutcome(motifs=merged, dendrogram=tree)

    members = iterative_merge(motifs, config.threshold, aligner, n_jobs=config.n_jobs, weighting=config.weighting)
    return MergeOutcome(motifs=[m.to_motif() for m in members])


def merge_motifs(motifs: Sequence[Motif], config: Optional[MergeConfig] = None, **config_kwargs) -> List[Motif]:
    """Single-call entry point for motif merging."""

    if config is not None and config_kwargs:
        raise ValueError("Use either 'config' or config kwargs, not both.")

    resolved = config or create_merge_config(**config_kwargs)
    return run_merge(motifs, resolved).motifs
