import numpy as np
from numba import njit


@njit(cache=True)
def column_jsd(p, q):
    """Jensen-Shannon divergence (base 2) between two distributions."""
    total = 0.0
    for k in range(p.shape[0]):
        m = 0.5 * (p[k] + q[k])
        kl_p = 0.0
        kl_q = 0.0
        if p[k] > 0.0:
            kl_p = p[k] * np.log2(p[k] / m)
        if q[k] > 0.0:
            kl_q = q[k] * np.log2(q[k] / m)
        total += 0.5 * (kl_p + kl_q)
    if total < 0.0:
        return 0.0
    return total


@njit(cache=True)
def _divergence_table_jit(a, b):
    """Fill the (len_a, len_b) table of position-to-position divergences."""
    n_a = a.shape[0]
    n_b = b.shape[0]
    table = np.empty((n_a, n_b), dtype=np.float64)
    for i in range(n_a):
        for j in range(n_b):
            table[i, j] = column_jsd(a[i], b[j])
    return table


def column_divergence_table(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Return JSD between every position of ``a`` and every position of ``b``."""
    a = np.ascontiguousarray(a, dtype=np.float64)
    b = np.ascontiguousarray(b, dtype=np.float64)
    return _divergence_table_jit(a, b)


def offsets_by_preference(len_a: int, len_b: int) -> list[int]:
    """All offsets with at least one overlapping position, smallest shift first, leftmost on ties."""
    return sorted(range(-(len_b - 1), len_a), key=lambda k: (abs(k), k))


def overlap_divergences(table: np.ndarray, offset: int) -> np.ndarray:
    """Divergences of the positions overlapping at ``offset`` (row ``j + offset`` against column ``j``)."""
    return np.diagonal(table, offset=-offset)


def gap_count(len_a: int, len_b: int, overlap: int) -> int:
    """Number of positions of either matrix left unaligned."""
    return len_a + len_b - 2 * overlap
