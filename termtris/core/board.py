from __future__ import annotations

from collections.abc import Iterable

from termtris.core.pieces import PieceType, Shape, occupied_cells

ROWS = 20
COLS = 10

Cell = PieceType | None


class Board:
    """Settled cells of one game, indexed `cells[row][col]`, row 0 at the top."""

    def __init__(self, rows: Iterable[Iterable[Cell]] | None = None) -> None:
        if rows is None:
            self.cells: list[list[Cell]] = [[None] * COLS for _ in range(ROWS)]
        else:
            self.cells = [list(row) for row in rows]
            if len(self.cells) != ROWS or any(len(row) != COLS for row in self.cells):
                raise ValueError(f"board must be {ROWS}x{COLS}")

    def collides(self, origin_x: int, origin_y: int, shape: Shape) -> bool:
        for r, c in occupied_cells(shape):
            x, y = origin_x + c, origin_y + r
            if x < 0 or x >= COLS or y >= ROWS:
                return True
            # Rows above the visible board are never checked against content.
            if y >= 0 and self.cells[y][x] is not None:
                return True
        return False

    def place(self, origin_x: int, origin_y: int, shape: Shape, piece: PieceType) -> None:
        for r, c in occupied_cells(shape):
            y = origin_y + r
            if y >= 0:
                self.cells[y][origin_x + c] = piece

    def is_row_full(self, row: int) -> bool:
        return all(cell is not None for cell in self.cells[row])

    def clear_full_lines(self) -> int:
        cleared = 0
        y = ROWS - 1
        while y >= 0:
            if self.is_row_full(y):
                del self.cells[y]
                self.cells.insert(0, [None] * COLS)
                cleared += 1
                # Same index again: the row above has shifted down into it.
            else:
                y -= 1
        return cleared

    def rows(self) -> tuple[tuple[Cell, ...], ...]:
        return tuple(tuple(row) for row in self.cells)
