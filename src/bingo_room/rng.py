from __future__ import annotations

import hashlib
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CARD_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass
class RandomSource:
    engine: str

    def randint(self, a: int, b: int) -> int:
        raise NotImplementedError

    def random(self) -> float:
        raise NotImplementedError

    def choice(self, seq: Sequence[T]) -> T:
        raise NotImplementedError

    def shuffle(self, arr: List[T]) -> None:
        """Uniform in-place permutation (Fisher-Yates)."""
        raise NotImplementedError

    def sample(self, seq: Sequence[T], k: int) -> List[T]:
        raise NotImplementedError

    def token(self, alphabet: str, length: int) -> str:
        return "".join(alphabet[self.randint(0, len(alphabet) - 1)] for _ in range(length))


class PyRandomSource(RandomSource):
    def __init__(self, seed: Optional[int] = None):
        super().__init__(engine="py_random")
        self._rng = random.Random(seed)

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def random(self) -> float:
        return self._rng.random()

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(list(seq))

    def shuffle(self, arr: List[T]) -> None:
        self._rng.shuffle(arr)

    def sample(self, seq: Sequence[T], k: int) -> List[T]:
        return self._rng.sample(list(seq), k)


class NumpyPCG64Source(RandomSource):  # pragma: no cover - covered when numpy present
    def __init__(self, seed: Optional[int] = None):
        try:
            import numpy as np
        except ImportError as exc:
            raise RuntimeError("numpy is not installed; install bingo-room[pcg]") from exc
        super().__init__(engine="numpy_pcg64")
        self._rng = np.random.Generator(np.random.PCG64(seed))

    def randint(self, a: int, b: int) -> int:
        return int(self._rng.integers(low=a, high=b + 1))

    def random(self) -> float:
        return float(self._rng.random())

    def choice(self, seq: Sequence[T]) -> T:
        return seq[int(self._rng.integers(low=0, high=len(seq)))]

    def shuffle(self, arr: List[T]) -> None:
        # Generator.shuffle would coerce ints to numpy scalars; permute indices instead
        order = self._rng.permutation(len(arr))
        arr[:] = [arr[int(i)] for i in order]

    def sample(self, seq: Sequence[T], k: int) -> List[T]:
        idxs = self._rng.choice(len(seq), size=k, replace=False)
        return [seq[int(i)] for i in idxs]


def create_rng(engine: str = "py_random", seed: Optional[int] = None) -> RandomSource:
    engine = (engine or "py_random").strip().lower()
    if engine == "py_random":
        return PyRandomSource(seed)
    if engine == "numpy_pcg64":
        return NumpyPCG64Source(seed)
    raise ValueError(f"Unsupported RNG engine: {engine}")


def derive_seed(base_seed: int, index: int, purpose: str) -> int:
    """Derive a per-task seed from base seed, index, and purpose using sha256.

    Returns a 63-bit positive integer suitable for seeding common RNGs.
    """
    s = f"{base_seed}|{index}|{purpose}".encode("utf-8")
    digest = hashlib.sha256(s).digest()
    return int.from_bytes(digest[:8], byteorder="big") & ((1 << 63) - 1)


def room_code(rng: RandomSource, length: int = 6) -> str:
    """Shareable room code without look-alike characters (no I, O, 0, 1)."""
    return rng.token(ROOM_CODE_ALPHABET, length)


def card_id(rng: RandomSource) -> str:
    return rng.token(CARD_ID_ALPHABET, 9)
