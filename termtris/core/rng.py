from __future__ import annotations

import random
from typing import Protocol

from termtris.core.pieces import ALL_PIECES, PieceType


class PieceRandomizer(Protocol):
    def next_piece(self) -> PieceType:  # pragma: no cover
        ...


class UniformPieceRandomizer:
    """Bag-less randomizer: independent uniform draws over the seven pieces.

    Pass a seed for reproducible sequences (tests, replays).
    """

    def __init__(self, seed: int | None = None) -> None:
        if seed is None:
            seed = random.SystemRandom().randint(1, 2**31 - 1)
        self.seed = seed
        self._rng = random.Random(seed)

    def next_piece(self) -> PieceType:
        return self._rng.choice(ALL_PIECES)


class SequenceRandomizer:
    """Replays a fixed piece sequence, cycling when exhausted."""

    def __init__(self, pieces: list[PieceType]) -> None:
        if not pieces:
            raise ValueError("at least one piece is required")
        self._pieces = list(pieces)
        self._idx = 0

    def next_piece(self) -> PieceType:
        piece = self._pieces[self._idx % len(self._pieces)]
        self._idx += 1
        return piece
