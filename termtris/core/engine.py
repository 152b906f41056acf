from __future__ import annotations

from dataclasses import dataclass, replace

from termtris.core.board import COLS, Board, Cell
from termtris.core.pieces import PieceType, Shape, occupied_cells, rotation_count, shape_at
from termtris.core.rng import PieceRandomizer, UniformPieceRandomizer

LINE_CLEAR_POINTS: dict[int, int] = {1: 100, 2: 300, 3: 500, 4: 800}
HARD_DROP_POINTS_PER_ROW = 2
SOFT_DROP_POINTS = 1

BASE_DROP_INTERVAL_MS = 1000
MIN_DROP_INTERVAL_MS = 100
DROP_INTERVAL_STEP_MS = 100
LINES_PER_LEVEL = 10


def level_for_lines(lines: int) -> int:
    return lines // LINES_PER_LEVEL + 1


def drop_interval_for_level(level: int) -> int:
    return max(MIN_DROP_INTERVAL_MS, BASE_DROP_INTERVAL_MS - (level - 1) * DROP_INTERVAL_STEP_MS)


@dataclass(slots=True)
class GameStats:
    score: int = 0
    level: int = 1
    lines: int = 0
    drop_interval_ms: int = BASE_DROP_INTERVAL_MS


@dataclass(frozen=True, slots=True)
class ActivePiece:
    type: PieceType
    rotation: int
    x: int
    y: int

    @property
    def shape(self) -> Shape:
        return shape_at(self.type, self.rotation)

    def cells(self) -> list[tuple[int, int]]:
        """Absolute (row, col) board coordinates covered by this piece."""

        return [(self.y + r, self.x + c) for r, c in occupied_cells(self.shape)]


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """Read-only view of an engine, handed to the renderer."""

    board: tuple[tuple[Cell, ...], ...]
    current: ActivePiece | None
    next_type: PieceType
    stats: GameStats
    over: bool


class GameEngine:
    """One game run: the falling piece, the queued piece, scoring and drop timing.

    Gameplay conditions never raise. Blocked moves return False; a spawn that
    collides sets `over` and leaves the board untouched.
    """

    def __init__(self, *, randomizer: PieceRandomizer | None = None, board: Board | None = None) -> None:
        self.board = board if board is not None else Board()
        self.randomizer = randomizer if randomizer is not None else UniformPieceRandomizer()
        self.stats = GameStats()
        self.current: ActivePiece | None = None
        self.next_type: PieceType = self.randomizer.next_piece()
        self.over = False

    @classmethod
    def start(cls, *, randomizer: PieceRandomizer | None = None, board: Board | None = None) -> GameEngine:
        engine = cls(randomizer=randomizer, board=board)
        engine.spawn_next()
        return engine

    def spawn_next(self) -> bool:
        """Promote the queued piece. Returns False (game over) on spawn collision."""

        piece = self.next_type
        self.next_type = self.randomizer.next_piece()

        shape = shape_at(piece, 0)
        x = (COLS - len(shape[0])) // 2
        if self.board.collides(x, 0, shape):
            self.current = None
            self.over = True
            return False

        self.current = ActivePiece(type=piece, rotation=0, x=x, y=0)
        return True

    def try_move(self, dx: int, dy: int) -> bool:
        cur = self.current
        if cur is None or self.over:
            return False
        if self.board.collides(cur.x + dx, cur.y + dy, cur.shape):
            return False
        self.current = replace(cur, x=cur.x + dx, y=cur.y + dy)
        return True

    def rotate(self) -> bool:
        cur = self.current
        if cur is None or self.over:
            return False
        rotation = (cur.rotation + 1) % rotation_count(cur.type)
        if self.board.collides(cur.x, cur.y, shape_at(cur.type, rotation)):
            return False
        self.current = replace(cur, rotation=rotation)
        return True

    def soft_drop_tick(self) -> bool:
        """One row down (+1 point), or lock when blocked. Returns True if the piece moved."""

        if self.current is None or self.over:
            return False
        if self.try_move(0, 1):
            self.stats.score += SOFT_DROP_POINTS
            return True
        self.lock()
        return False

    def hard_drop(self) -> int:
        if self.current is None or self.over:
            return 0
        dropped = 0
        while self.try_move(0, 1):
            dropped += 1
        self.stats.score += dropped * HARD_DROP_POINTS_PER_ROW
        self.lock()
        return dropped

    def lock(self) -> int:
        """Settle the current piece, clear lines, rescore and spawn. Returns lines cleared."""

        cur = self.current
        if cur is None or self.over:
            return 0

        self.board.place(cur.x, cur.y, cur.shape, cur.type)
        cleared = self.board.clear_full_lines()

        stats = self.stats
        if cleared:
            stats.score += LINE_CLEAR_POINTS[cleared] * stats.level
            stats.lines += cleared
        stats.level = level_for_lines(stats.lines)
        stats.drop_interval_ms = drop_interval_for_level(stats.level)

        self.spawn_next()
        return cleared

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            board=self.board.rows(),
            current=self.current,
            next_type=self.next_type,
            stats=replace(self.stats),
            over=self.over,
        )
