from __future__ import annotations

from enum import StrEnum

Shape = tuple[tuple[int, ...], ...]


class PieceType(StrEnum):
    I = "I"
    O = "O"
    T = "T"
    S = "S"
    Z = "Z"
    J = "J"
    L = "L"


# Rotation states, in clockwise order. Pieces with fewer distinct orientations
# simply list fewer entries; the rotation index wraps modulo the length.
PIECE_SHAPES: dict[PieceType, tuple[Shape, ...]] = {
    PieceType.I: (
        ((1, 1, 1, 1),),
        ((1,), (1,), (1,), (1,)),
    ),
    PieceType.O: (
        ((1, 1), (1, 1)),
    ),
    PieceType.T: (
        ((0, 1, 0), (1, 1, 1)),
        ((1, 0), (1, 1), (1, 0)),
        ((1, 1, 1), (0, 1, 0)),
        ((0, 1), (1, 1), (0, 1)),
    ),
    PieceType.S: (
        ((0, 1, 1), (1, 1, 0)),
        ((1, 0), (1, 1), (0, 1)),
    ),
    PieceType.Z: (
        ((1, 1, 0), (0, 1, 1)),
        ((0, 1), (1, 1), (1, 0)),
    ),
    PieceType.J: (
        ((1, 0, 0), (1, 1, 1)),
        ((1, 1), (1, 0), (1, 0)),
        ((1, 1, 1), (0, 0, 1)),
        ((0, 1), (0, 1), (1, 1)),
    ),
    PieceType.L: (
        ((0, 0, 1), (1, 1, 1)),
        ((1, 0), (1, 0), (1, 1)),
        ((1, 1, 1), (1, 0, 0)),
        ((1, 1), (0, 1), (0, 1)),
    ),
}

ALL_PIECES: tuple[PieceType, ...] = tuple(PieceType)


def shapes_of(piece: PieceType) -> tuple[Shape, ...]:
    return PIECE_SHAPES[piece]


def rotation_count(piece: PieceType) -> int:
    return len(PIECE_SHAPES[piece])


def shape_at(piece: PieceType, rotation: int) -> Shape:
    shapes = PIECE_SHAPES[piece]
    return shapes[rotation % len(shapes)]


def occupied_cells(shape: Shape) -> list[tuple[int, int]]:
    """(row, col) offsets of the filled cells of a shape, top-left origin."""

    return [(r, c) for r, row in enumerate(shape) for c, v in enumerate(row) if v]
