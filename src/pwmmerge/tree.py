"""
tree
====

Hierarchical merging.  A complete agglomerative dendrogram is built over all
motifs, cut at a distance threshold, and every resulting cluster is collapsed
into one diluted consensus motif.

The dendrogram is an arena of nodes addressed by index: leaves occupy
``0 .. n-1`` in input order and merge step ``s`` appends internal node
``n + s``, which is also the cluster id used by ``scipy.cluster.hierarchy``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.cluster import hierarchy

from pwmmerge.alignment import Aligner, pairwise_scores
from pwmmerge.dilution import check_weighting, combine_members
from pwmmerge.errors import DegenerateMergeError, InvalidInputError, UnknownPolicyError
from pwmmerge.merge import closest_pair
from pwmmerge.models import MergedMotif, Motif, iupac_consensus

LINKAGE_MODES = ("representative", "average")


def check_linkage(linkage: str) -> str:
    if linkage not in LINKAGE_MODES:
        raise UnknownPolicyError(f"Unknown linkage: {linkage!r}. Available: {list(LINKAGE_MODES)}")
    return linkage


@dataclass
class DendrogramNode:
    """Leaf (``left == right == -1``) or internal node of a dendrogram."""

    left: int = -1
    right: int = -1
    height: float = 0.0
    size: int = 1
    motif: Optional[Motif] = None
    merged: Optional[MergedMotif] = None

    @property
    def is_leaf(self) -> bool:
        return self.left < 0


@dataclass
class Dendrogram:
    """Binary merge tree over a motif set, stored as a node arena."""

    nodes: List[DendrogramNode]
    aligner: Aligner = field(default_factory=Aligner)
    weighting: str = "size"

    @property
    def root(self) -> int:
        return len(self.nodes) - 1

    @property
    def n_leaves(self) -> int:
        return (len(self.nodes) + 1) // 2

    def leaves(self, index: Optional[int] = None) -> List[Motif]:
        """Leaf motifs under ``index`` (the root by default), left to right."""
        stack = [self.root if index is None else index]
        motifs = []
        while stack:
            node = self.nodes[stack.pop()]
            if node.is_leaf:
                motifs.append(node.motif)
            else:
                stack.append(node.right)
                stack.append(node.left)
        return motifs

    def subtree_heights(self) -> np.ndarray:
        """Largest merge height found anywhere in each node's subtree (0 for leaves)."""
        heights = np.zeros(len(self.nodes), dtype=np.float64)
        # children always precede their parent in the arena
        for index, node in enumerate(self.nodes):
            if not node.is_leaf:
                heights[index] = max(node.height, heights[node.left], heights[node.right])
        return heights

    def cut(self, threshold: float) -> List[int]:
        """
        Indices of the maximal subtrees whose merge heights all stay within ``threshold``.

        A node is a cluster only when no merge inside its subtree lies above
        the threshold, so an inversion (a parent lower than one of its
        children) never pulls the higher child's members together.  This is
        the ``criterion="distance"`` rule of ``scipy.cluster.hierarchy.fcluster``.
        Leaves are always clusters.  Clusters come out in left-to-right order.
        """
        heights = self.subtree_heights()
        stack = [self.root]
        clusters = []
        while stack:
            index = stack.pop()
            node = self.nodes[index]
            if node.is_leaf or heights[index] <= threshold:
                clusters.append(index)
            else:
                stack.append(node.right)
                stack.append(node.left)
        return clusters

    def collapse(self, index: int) -> MergedMotif:
        """
        Combined motif of the subtree at ``index``.

        Child representatives are merged from the leaves upward; every visited
        node is annotated with its combined motif.
        """
        stack = [(index, False)]
        while stack:
            current, expanded = stack.pop()
            node = self.nodes[current]
            if node.merged is not None:
                continue
            if node.is_leaf:
                if node.motif is None:
                    raise DegenerateMergeError(f"Leaf {current} holds no motif")
                node.merged = MergedMotif.from_motif(node.motif)
            elif not expanded:
                stack.append((current, True))
                stack.append((node.right, False))
                stack.append((node.left, False))
            else:
                node.merged = combine_members(
                    self.nodes[node.left].merged, self.nodes[node.right].merged, self.aligner, self.weighting
                )

        merged = self.nodes[index].merged
        if merged is None:
            raise DegenerateMergeError(f"Subtree {index} collapsed to nothing")
        return merged

    def to_linkage_matrix(self) -> np.ndarray:
        """Return the tree in ``scipy.cluster.hierarchy`` linkage format."""
        internal = self.nodes[self.n_leaves :]
        matrix = np.empty((len(internal), 4), dtype=np.float64)
        for row, node in enumerate(internal):
            matrix[row] = (node.left, node.right, node.height, node.size)
        if len(internal) > 0 and not hierarchy.is_valid_linkage(matrix):
            raise DegenerateMergeError("Dendrogram arena does not form a valid linkage")
        return matrix


def build_tree(
    motifs: Sequence[Motif],
    aligner: Optional[Aligner] = None,
    linkage: str = "representative",
    weighting: str = "size",
    n_jobs: int = 1,
) -> Dendrogram:
    """
    Agglomerate all motifs into a single dendrogram.

    Parameters
    ----------
    motifs : sequence of Motif
        Motifs to cluster; at least one.
    aligner : Aligner, optional
        Configured aligner (default policies when omitted).
    linkage : str
        ``representative`` compares the weighted-combined matrices of two
        clusters; ``average`` is UPGMA on the leaf distances, computed by
        ``scipy.cluster.hierarchy.linkage``.
    weighting : str
        ``size`` or ``simple`` weights when combining representatives.
    n_jobs : int
        joblib workers for the initial distance matrix.

    Returns
    -------
    Dendrogram
        Tree whose internal node heights are the linkage distances.
    """
    if len(motifs) == 0:
        raise InvalidInputError("Cannot build a tree over zero motifs")
    check_linkage(linkage)
    check_weighting(weighting)
    aligner = aligner or Aligner()

    nodes = [DendrogramNode(motif=m, merged=MergedMotif.from_motif(m)) for m in motifs]
    scores = pairwise_scores([m.pwm for m in motifs], aligner, n_jobs=n_jobs)

    if len(nodes) > 1:
        if linkage == "average":
            _average_linkage(nodes, scores)
        else:
            _representative_linkage(nodes, scores, aligner, weighting)

    logging.getLogger(__name__).debug(f"Built {linkage}-linkage tree over {len(motifs)} motifs")
    return Dendrogram(nodes, aligner=aligner, weighting=weighting)


def _average_linkage(nodes: List[DendrogramNode], scores: np.ndarray) -> None:
    """Append the UPGMA merges of ``scores`` (upper triangle) to the leaf arena."""
    n = len(nodes)
    condensed = scores[np.triu_indices(n, 1)]
    if not np.all(np.isfinite(condensed)):
        raise InvalidInputError("Average linkage needs finite distances; lower the gap penalty or use representative")

    Z = hierarchy.linkage(condensed, method="average")
    for left, right, height, size in Z:
        nodes.append(DendrogramNode(left=int(left), right=int(right), height=float(height), size=int(size)))


def _representative_linkage(
    nodes: List[DendrogramNode], scores: np.ndarray, aligner: Aligner, weighting: str
) -> None:
    """
    Agglomerate by re-aligning the combined matrix of every new cluster.

    ``scores`` is consumed: slot ``i`` of a merged pair holds the new
    cluster, slot ``j`` is retired with NaN.
    """
    n = len(nodes)
    slot_node = list(range(n))

    for _ in range(n - 1):
        i, j, distance = closest_pair(scores)
        left, right = nodes[slot_node[i]], nodes[slot_node[j]]
        node = DendrogramNode(
            left=slot_node[i],
            right=slot_node[j],
            height=distance,
            size=left.size + right.size,
            merged=combine_members(left.merged, right.merged, aligner, weighting),
        )
        nodes.append(node)

        for k in range(n):
            if k in (i, j) or slot_node[k] < 0:
                continue
            lo, hi = (i, k) if i < k else (k, i)
            other = nodes[slot_node[k]].merged
            pair = (node.merged, other) if i < k else (other, node.merged)
            scores[lo, hi] = aligner.align(pair[0].pwm, pair[1].pwm).score

        slot_node[i] = len(nodes) - 1
        slot_node[j] = -1
        scores[j, :] = np.nan
        scores[:, j] = np.nan


def tree_merge(
    motifs: Sequence[Motif],
    threshold: float,
    aligner: Optional[Aligner] = None,
    prefix: str = "merged",
    linkage: str = "representative",
    weighting: str = "size",
    n_jobs: int = 1,
) -> Tuple[List[Motif], Dendrogram]:
    """
    Build the dendrogram, cut it at ``threshold`` and collapse every cluster.

    Each output motif is named ``{prefix}_{i}_{consensus}({names})`` where
    ``names`` joins the cluster's leaf names left to right with ``+``.
    """
    logger = logging.getLogger(__name__)
    tree = build_tree(motifs, aligner, linkage=linkage, weighting=weighting, n_jobs=n_jobs)

    merged_motifs = []
    for i, index in enumerate(tree.cut(threshold)):
        merged = tree.collapse(index)
        names = "+".join(m.name for m in tree.leaves(index))
        merged_motifs.append(Motif(f"{prefix}_{i}_{iupac_consensus(merged.pwm)}({names})", merged.pwm))

    logger.info(f"Tree merge: {len(motifs)} motifs -> {len(merged_motifs)} cluster(s) at threshold {threshold}")
    return merged_motifs, tree
