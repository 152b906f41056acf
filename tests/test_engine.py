from __future__ import annotations

import pytest

from termtris.core.board import COLS, Board
from termtris.core.engine import (
    MIN_DROP_INTERVAL_MS,
    GameEngine,
    drop_interval_for_level,
    level_for_lines,
)
from termtris.core.pieces import PieceType, rotation_count, shapes_of
from termtris.core.rng import SequenceRandomizer, UniformPieceRandomizer

from conftest import fill_rows


def _engine(pieces: list[PieceType], board: Board | None = None) -> GameEngine:
    return GameEngine.start(randomizer=SequenceRandomizer(pieces), board=board)


def test_catalog_rotation_counts() -> None:
    assert rotation_count(PieceType.O) == 1
    assert rotation_count(PieceType.I) == 2
    assert rotation_count(PieceType.S) == 2
    assert rotation_count(PieceType.Z) == 2
    for piece in (PieceType.T, PieceType.J, PieceType.L):
        assert rotation_count(piece) == 4
    for piece in PieceType:
        for shape in shapes_of(piece):
            assert sum(sum(row) for row in shape) == 4
            assert len({len(row) for row in shape}) == 1


def test_seeded_randomizer_is_deterministic() -> None:
    a = UniformPieceRandomizer(seed=42)
    b = UniformPieceRandomizer(seed=42)
    assert [a.next_piece() for _ in range(30)] == [b.next_piece() for _ in range(30)]


def test_spawn_is_centered_at_top() -> None:
    engine = _engine([PieceType.I, PieceType.T])

    assert engine.current is not None
    assert engine.current.type == PieceType.I
    assert (engine.current.x, engine.current.y, engine.current.rotation) == ((COLS - 4) // 2, 0, 0)
    assert engine.next_type == PieceType.T


def test_try_move_blocked_leaves_state_unchanged() -> None:
    engine = _engine([PieceType.O])
    assert engine.try_move(-4, 0)
    before = engine.current

    assert not engine.try_move(-1, 0)
    assert engine.current == before


def test_rotate_without_wall_kick_fails_at_wall() -> None:
    engine = _engine([PieceType.I])
    assert engine.rotate()
    assert engine.try_move(6, 0)
    assert engine.current is not None and engine.current.x == COLS - 1

    assert not engine.rotate()
    assert engine.current.rotation == 1


def test_soft_drop_scores_and_locks_when_blocked() -> None:
    engine = _engine([PieceType.O])
    assert engine.soft_drop_tick()
    assert engine.stats.score == 1

    while engine.soft_drop_tick():
        pass

    # Locked at the floor and a fresh piece spawned.
    assert engine.board.cells[19][4] == PieceType.O
    assert engine.current is not None and engine.current.y == 0


def test_single_line_clear_scenario() -> None:
    board = Board()
    board.cells[19][0] = PieceType.T
    board.cells[19][1] = PieceType.T
    engine = _engine([PieceType.I, PieceType.I, PieceType.O], board=board)

    assert engine.try_move(-1, 0)
    dropped = engine.hard_drop()
    assert dropped == 19
    assert engine.stats.score == 38
    assert engine.stats.lines == 0

    assert engine.try_move(3, 0)
    before = engine.stats.score
    dropped = engine.hard_drop()

    assert engine.stats.lines == 1
    assert engine.stats.level == 1
    assert engine.stats.score - before == 2 * dropped + 100 * 1
    assert all(cell is None for row in engine.board.cells for cell in row)


def test_tetris_scores_800_times_level() -> None:
    board = Board()
    fill_rows(board, range(16, 20), hole_col=COLS - 1)
    engine = _engine([PieceType.I, PieceType.O], board=board)
    engine.stats.level = 3

    assert engine.rotate()
    assert engine.try_move(6, 0)
    before = engine.stats.score
    dropped = engine.hard_drop()

    assert dropped == 16
    assert engine.stats.lines == 4
    assert engine.stats.score - before == 2 * dropped + 800 * 3
    assert all(cell is None for row in engine.board.cells for cell in row)


def test_spawn_collision_is_game_over_without_touching_board() -> None:
    board = Board()
    fill_rows(board, [0, 1])
    engine = GameEngine(randomizer=SequenceRandomizer([PieceType.T]), board=board)
    before = board.rows()

    assert engine.spawn_next() is False
    assert engine.over
    assert engine.current is None
    assert board.rows() == before

    # Nothing moves once the game is over.
    assert not engine.try_move(0, 1)
    assert not engine.rotate()
    assert engine.hard_drop() == 0


@pytest.mark.parametrize("lines", [0, 1, 9, 10, 11, 19, 20, 55, 99, 100, 137, 199, 200])
def test_level_follows_lines_after_lock(lines: int) -> None:
    engine = _engine([PieceType.O])
    engine.stats.lines = lines

    engine.lock()

    assert engine.stats.level == lines // 10 + 1
    assert engine.stats.drop_interval_ms == drop_interval_for_level(engine.stats.level)


def test_drop_interval_is_non_increasing_and_floored() -> None:
    intervals = [drop_interval_for_level(level_for_lines(lines)) for lines in range(0, 201)]

    assert intervals[0] == 1000
    assert all(a >= b for a, b in zip(intervals, intervals[1:]))
    assert min(intervals) == MIN_DROP_INTERVAL_MS
