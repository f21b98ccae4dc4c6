"""
Gap-penalty and column-combine strategies.

Both families are closed sets of named functions kept in registries and
resolved once, when an aligner is configured.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List

import numpy as np

from pwmmerge.errors import UnknownPolicyError

GapPenaltyFn = Callable[[float, int], float]
CombineFn = Callable[[np.ndarray], float]


class PolicyRegistry:
    """Registry of named strategy functions."""

    def __init__(self, kind: str):
        self.kind = kind
        self._policies: Dict[str, Callable] = {}

    def register(self, key: str):
        """Decorator to register a strategy function under ``key``."""

        def decorator(fn):
            self._policies[key] = fn
            logging.getLogger(__name__).debug(f"Registered {self.kind} policy: {key} -> {fn.__name__}")
            return fn

        return decorator

    def get(self, key: str) -> Callable:
        """Get strategy function by key."""
        if key not in self._policies:
            raise UnknownPolicyError(f"Unknown {self.kind} policy: {key!r}. Available: {self.available()}")
        return self._policies[key]

    def available(self) -> List[str]:
        return sorted(self._policies)

    def __contains__(self, key: str) -> bool:
        return key in self._policies


gap_penalties = PolicyRegistry("gap penalty")
combiners = PolicyRegistry("combine")


@gap_penalties.register("linear")
def linear_penalty(base: float, n: int) -> float:
    return base * n


@gap_penalties.register("quadratic")
def quadratic_penalty(base: float, n: int) -> float:
    return base * n**2


@gap_penalties.register("cubic")
def cubic_penalty(base: float, n: int) -> float:
    return base * n**3


@gap_penalties.register("exp")
def exponential_penalty(base: float, n: int) -> float:
    """``base * (2**n - 1)``; saturates to ``inf`` on overflow."""
    if n == 0 or base == 0:
        return 0.0
    try:
        return base * (math.pow(2.0, n) - 1.0)
    except OverflowError:
        return math.inf


@combiners.register("l1")
def l1(divergences: np.ndarray) -> float:
    return float(np.sum(np.abs(divergences)) / divergences.size)


@combiners.register("l2")
def l2(divergences: np.ndarray) -> float:
    return float(np.sqrt(np.sum(divergences**2) / divergences.size))


@combiners.register("l3")
def l3(divergences: np.ndarray) -> float:
    return float(np.cbrt(np.sum(np.abs(divergences) ** 3) / divergences.size))


@combiners.register("max")
def l_inf(divergences: np.ndarray) -> float:
    return float(np.max(divergences))
