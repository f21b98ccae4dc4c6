"""
pwmmerge
==================

This package merges a collection of position weight matrices (PWMs) into a
smaller set of consensus motifs by grouping matrices that are similar under
an alignment-aware distance.  Strategies (gap penalties, column-combine
functions, linkage rules) are named and resolved once, so that new ones can
be added with minimal effort.

The top level modules expose the following key components:

``models``
    Immutable containers: :class:`Motif`, :class:`MergedMotif` and the
    weighted matrices produced while merging.

``policies``
    Registries of gap-penalty and column-combine functions.

``alignment``
    The :class:`Aligner`, which finds the best relative offset of two PWMs
    and scores it with position-wise Jensen-Shannon divergences.

``dilution``
    Weighted superposition of aligned matrices and renormalization into
    valid PWMs.

``merge``
    Iterative greedy merging of the closest pair.

``tree``
    Agglomerative dendrogram construction, threshold cut and cluster
    collapse.

``report``
    Pairwise distances without merging.

``io`` and ``cli``
    MEME / FASTA-style matrix files and the ``pwmmerge`` command line.
"""

from pwmmerge.alignment import Aligner, align_pwms
from pwmmerge.api import MergeOutcome, merge_motifs, run_merge
from pwmmerge.config import MergeConfig, create_merge_config
from pwmmerge.dilution import dilute, superpose
from pwmmerge.errors import DegenerateMergeError, InvalidInputError, MergeError, UnknownPolicyError
from pwmmerge.merge import iterative_merge
from pwmmerge.models import AlignmentResult, MergedMotif, Motif, WeightedPWM
from pwmmerge.report import pairwise_distances
from pwmmerge.tree import Dendrogram, build_tree, tree_merge

__all__ = [
    "Aligner",
    "AlignmentResult",
    "DegenerateMergeError",
    "Dendrogram",
    "InvalidInputError",
    "MergeConfig",
    "MergeError",
    "MergeOutcome",
    "MergedMotif",
    "Motif",
    "UnknownPolicyError",
    "WeightedPWM",
    "align_pwms",
    "build_tree",
    "create_merge_config",
    "dilute",
    "iterative_merge",
    "merge_motifs",
    "pairwise_distances",
    "run_merge",
    "superpose",
    "tree_merge",
]
