"""
Deterministic RNG for Agent Rogue.

A 32-bit linear congruential generator. The same seed always yields the
same sequence, which keeps event rolls reproducible in tests and saves.
"""

from typing import Dict, Any

LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 2 ** 32


class LcgRng:
    """
    Callable generator producing floats in [0, 1).

    Single-owner: one instance per run, never shared between runs.
    """

    def __init__(self, seed: int):
        self._seed = int(seed) % LCG_MODULUS

    def __call__(self) -> float:
        self._seed = (self._seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self._seed / LCG_MODULUS

    def export_state(self) -> Dict[str, Any]:
        """Return a JSON-friendly snapshot of the generator position."""
        return {'seed': self._seed}

    def restore_state(self, payload: Dict[str, Any]) -> None:
        """Restore a snapshot produced by export_state()."""
        if not isinstance(payload, dict):
            raise ValueError("RNG state must be a mapping")
        seed = payload.get('seed')
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise ValueError("RNG seed must be an integer")
        if not 0 <= seed < LCG_MODULUS:
            raise ValueError(f"RNG seed out of range: {seed}")
        self._seed = seed


def create_rng(seed: int) -> LcgRng:
    """Create a seeded generator. Negative seeds wrap like an unsigned cast."""
    return LcgRng(seed)
