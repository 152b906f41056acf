from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from termtris.api.models import AccountExport, LeaderboardEntry, PlayerRecord, SessionState
from termtris.core.board import COLS, ROWS
from termtris.core.engine import GameSnapshot
from termtris.core.pieces import PieceType, occupied_cells, shape_at
from termtris.identity import PlayerIdentity

# https://en.wikipedia.org/wiki/ANSI_escape_code
ESC = "\x1b"
CSI = ESC + "["
CLEAR_SCREEN = CSI + "2J"
CURSOR_HOME = CSI + "H"
HIDE_CURSOR = CSI + "?25l"
SHOW_CURSOR = CSI + "?25h"
ENTER_ALT_SCREEN = CSI + "?1049h"
LEAVE_ALT_SCREEN = CSI + "?1049l"
RESET = CSI + "0m"

CYAN = CSI + "96m"
YELLOW = CSI + "93m"
GREEN = CSI + "92m"
RED = CSI + "91m"

TERMINAL_SETUP = (ENTER_ALT_SCREEN + CLEAR_SCREEN + HIDE_CURSOR + CURSOR_HOME).encode()
TERMINAL_RESTORE = (SHOW_CURSOR + LEAVE_ALT_SCREEN + CLEAR_SCREEN + CURSOR_HOME).encode()

PIECE_COLORS: dict[PieceType, str] = {
    PieceType.I: CSI + "96m",
    PieceType.O: CSI + "93m",
    PieceType.T: CSI + "95m",
    PieceType.S: CSI + "92m",
    PieceType.Z: CSI + "91m",
    PieceType.J: CSI + "94m",
    PieceType.L: CSI + "97m",
}

TITLE = "TERMTRIS"
EMPTY_CELL = "  "
FILLED_CELL = "[]"

LEADERBOARD_ROWS = 10
EXPORT_VISIBLE_LINES = 20
EXPORT_WIDTH = 70


@dataclass(frozen=True, slots=True)
class ScreenWrite:
    row: int
    col: int
    text: str


@dataclass(frozen=True, slots=True)
class GameOverSummary:
    score: int
    level: int
    lines: int
    previous_best: int
    rank: int | None = None

    @property
    def new_best(self) -> bool:
        return self.score > self.previous_best


@dataclass(frozen=True, slots=True)
class ScreenView:
    """Everything one screen needs, gathered by the session before rendering."""

    state: SessionState
    identity: PlayerIdentity
    player_best: int = 0
    game: GameSnapshot | None = None
    summary: GameOverSummary | None = None
    leaderboard: list[LeaderboardEntry] = field(default_factory=list)
    player: PlayerRecord | None = None
    export: AccountExport | None = None
    deleted: bool = False


def _colored(text: str, color: str) -> str:
    return f"{color}{text}{RESET}"


def _row(width: int, *parts: str | tuple[str, str]) -> str:
    """A `|...|` panel line padded to `width` visible characters.

    Parts are plain strings or (text, color) pairs; padding is computed on the
    visible text so escape codes don't break the layout.
    """

    plain = ""
    rendered = ""
    for part in parts:
        if isinstance(part, tuple):
            text, color = part
            plain += text
            rendered += _colored(text, color)
        else:
            plain += part
            rendered += part
    return "|" + rendered + " " * max(width - len(plain), 0) + "|"


def _border(width: int, fill: str = "=") -> str:
    return "+" + fill * width + "+"


def _centered(width: int, text: str, color: str) -> str:
    left = (width - len(text)) // 2
    return _row(width, " " * left, (text, color))


def render_welcome(view: ScreenView) -> list[ScreenWrite]:
    w, col = 64, 8
    name = view.identity.display_name
    return [
        ScreenWrite(2, col, _border(w)),
        ScreenWrite(3, col, _centered(w, TITLE, CYAN)),
        ScreenWrite(4, col, _border(w)),
        ScreenWrite(6, col, _row(w, "  Welcome back, ", (name, YELLOW), "!")),
        ScreenWrite(7, col, _row(w, "  Your best score: ", (f"{view.player_best:,}", GREEN))),
        ScreenWrite(9, col, _row(w, "  Controls: A/D-Move  W-Rotate  S-Drop  Space-Hard Drop")),
        ScreenWrite(10, col, _row(w, "            P-Pause   R-Restart Q-Quit")),
        ScreenWrite(12, col, _row(w, "  ", ("H", YELLOW), " - View Leaderboard")),
        ScreenWrite(13, col, _row(w, "  ", ("A", YELLOW), " - Account Settings")),
        ScreenWrite(15, col, _row(w, "  Goal: Complete horizontal lines to clear them!")),
        ScreenWrite(17, col, _border(w)),
        ScreenWrite(19, 20, _colored("Press any key to start playing!", YELLOW)),
    ]


def _cells_text(cells: Sequence[PieceType | None]) -> str:
    out = ""
    for cell in cells:
        out += EMPTY_CELL if cell is None else _colored(FILLED_CELL, PIECE_COLORS[cell])
    return out


def render_game(view: ScreenView) -> list[ScreenWrite]:
    game = view.game
    if game is None:
        return []

    writes = [ScreenWrite(1, 20, _colored(TITLE, CYAN)), ScreenWrite(3, 5, _border(COLS * 2, "-"))]

    grid = [list(row) for row in game.board]
    # The falling piece is hidden while paused.
    if game.current is not None and view.state == SessionState.playing:
        for y, x in game.current.cells():
            if 0 <= y < ROWS and 0 <= x < COLS:
                grid[y][x] = game.current.type

    for y, row in enumerate(grid):
        writes.append(ScreenWrite(4 + y, 5, "|" + _cells_text(row) + "|"))
    writes.append(ScreenWrite(4 + ROWS, 5, _border(COLS * 2, "-")))

    writes.append(ScreenWrite(3, 30, "NEXT:"))
    preview = shape_at(game.next_type, 0)
    filled = set(occupied_cells(preview))
    for r, shape_row in enumerate(preview):
        cells = [game.next_type if (r, c) in filled else None for c in range(len(shape_row))]
        writes.append(ScreenWrite(5 + r, 30, _cells_text(cells)))

    stats = game.stats
    writes += [
        ScreenWrite(10, 30, f"Score: {stats.score:,}"),
        ScreenWrite(11, 30, f"Level: {stats.level}"),
        ScreenWrite(12, 30, f"Lines: {stats.lines}"),
        ScreenWrite(15, 30, "H - Leaderboard"),
        ScreenWrite(16, 30, "P - Pause"),
        ScreenWrite(17, 30, "R - Restart"),
        ScreenWrite(18, 30, "Q - Quit"),
    ]

    if view.state == SessionState.paused:
        writes.append(ScreenWrite(26, 10, _colored("*** PAUSED - Press P to continue ***", YELLOW)))
    return writes


def render_game_over(view: ScreenView) -> list[ScreenWrite]:
    writes = render_game(view)
    summary = view.summary
    if summary is None:
        return writes

    w, col = 20, 8

    def boxed(row: int, text: str) -> ScreenWrite:
        return ScreenWrite(row, col, _colored(_row(w, text), RED))

    writes += [
        ScreenWrite(10, col, _colored(_border(w), RED)),
        boxed(11, "     GAME OVER!"),
        ScreenWrite(12, col, _colored(_border(w), RED)),
        boxed(13, f" Score: {summary.score:>10}"),
        boxed(14, f" Level: {summary.level:>10}"),
        boxed(15, f" Lines: {summary.lines:>10}"),
    ]
    row = 16
    if summary.new_best:
        writes.append(boxed(row, "  NEW BEST SCORE!"))
        row += 1
    if summary.rank is not None:
        writes.append(boxed(row, f" Rank: {'#' + str(summary.rank):>11}"))
        row += 1
    writes += [
        ScreenWrite(row, col, _colored(_border(w), RED)),
        boxed(row + 1, " R-Restart H-Scores"),
        boxed(row + 2, " Any key - Menu"),
        ScreenWrite(row + 3, col, _colored(_border(w), RED)),
    ]
    return writes


def _leaderboard_line(rank: str, player: str, score: str, level: str) -> str:
    return f" {rank:>4} | {player:<18} | {score:>9} | {level:>5} "


def render_leaderboard(view: ScreenView) -> list[ScreenWrite]:
    w, col = 50, 15
    writes = [
        ScreenWrite(2, col, _border(w)),
        ScreenWrite(3, col, _centered(w, "LEADERBOARD", CYAN)),
        ScreenWrite(4, col, _border(w)),
        ScreenWrite(5, col, _row(w, _leaderboard_line("Rank", "Player", "Score", "Level"))),
        ScreenWrite(6, col, _border(w, "-")),
    ]

    entries = view.leaderboard[:LEADERBOARD_ROWS]
    for i in range(LEADERBOARD_ROWS):
        if i < len(entries):
            e = entries[i]
            line = _leaderboard_line(str(i + 1), e.display_name[:18], f"{e.score:,}", str(e.level))
            text = _row(w, (line, YELLOW)) if e.player_id == view.identity.id else _row(w, line)
        else:
            text = _row(w, _leaderboard_line("", "", "", ""))
        writes.append(ScreenWrite(7 + i, col, text))

    writes += [
        ScreenWrite(7 + LEADERBOARD_ROWS, col, _border(w)),
        ScreenWrite(19, 25, _colored("Press any key to continue", YELLOW)),
    ]
    return writes


def render_account_menu(view: ScreenView) -> list[ScreenWrite]:
    w, col = 60, 10
    writes = [
        ScreenWrite(3, col, _border(w)),
        ScreenWrite(4, col, _centered(w, "ACCOUNT SETTINGS", CYAN)),
        ScreenWrite(5, col, _border(w)),
        ScreenWrite(7, col, _row(w, f"  Player ID: {view.identity.id}")),
        ScreenWrite(8, col, _row(w, f"  Display Name: {view.identity.display_name}")),
    ]
    if view.player is not None:
        writes += [
            ScreenWrite(9, col, _row(w, f"  Member Since: {view.player.first_seen.date().isoformat()}")),
            ScreenWrite(10, col, _row(w, f"  Games Played: {len(view.player.score_history)}")),
            ScreenWrite(11, col, _row(w, f"  Best Score: {view.player_best:,}")),
        ]
    writes += [
        ScreenWrite(13, col, _row(w)),
        ScreenWrite(14, col, _row(w, "  Account Management:")),
        ScreenWrite(15, col, _row(w)),
        ScreenWrite(16, col, _row(w, "  ", ("E", YELLOW), " - Export your game data and statistics")),
        ScreenWrite(17, col, _row(w, "  ", ("D", YELLOW), " - Delete your account (WARNING: Permanent!)")),
        ScreenWrite(18, col, _row(w)),
        ScreenWrite(19, col, _row(w, "  Your data includes: scores, statistics, and gameplay")),
        ScreenWrite(20, col, _row(w, "  history. We only store what is necessary for the game.")),
        ScreenWrite(21, col, _row(w)),
        ScreenWrite(22, col, _border(w)),
        ScreenWrite(24, 20, _colored("Press E, D, or any other key to return", YELLOW)),
    ]
    return writes


def export_lines(export: AccountExport) -> list[str]:
    return export.model_dump_json(indent=2).split("\n")


def render_account_export(view: ScreenView) -> list[ScreenWrite]:
    writes = [
        ScreenWrite(2, 5, _colored("Your Complete Game Data Export:", CYAN)),
        ScreenWrite(3, 5, "=" * EXPORT_WIDTH),
    ]
    if view.export is None:
        writes.append(ScreenWrite(4, 5, "Export unavailable right now. Please try again later."))
    else:
        lines = export_lines(view.export)
        for i, line in enumerate(lines[:EXPORT_VISIBLE_LINES]):
            writes.append(ScreenWrite(4 + i, 5, line[:EXPORT_WIDTH]))
        if len(lines) > EXPORT_VISIBLE_LINES:
            hidden = len(lines) - EXPORT_VISIBLE_LINES
            writes.append(ScreenWrite(24, 5, _colored(f"(Data truncated for display - {hidden} more lines)", YELLOW)))
    writes.append(ScreenWrite(26, 5, _colored("Press any key to return to menu", YELLOW)))
    return writes


def render_account_delete(view: ScreenView) -> list[ScreenWrite]:
    w, col = 44, 15

    def boxed(row: int, text: str = "") -> ScreenWrite:
        return ScreenWrite(row, col, _colored(_row(w, text), RED))

    border = _colored(_border(w), RED)
    if view.deleted:
        return [
            ScreenWrite(8, col, border),
            boxed(9, "          ACCOUNT DELETED"),
            boxed(10),
            boxed(11, "   All your data has been removed."),
            boxed(12, "   Disconnecting..."),
            ScreenWrite(13, col, border),
        ]
    return [
        ScreenWrite(8, col, border),
        boxed(9, "        DELETE ACCOUNT CONFIRMATION"),
        boxed(10),
        boxed(11, "   This will permanently delete:"),
        boxed(12, "   • All your high scores"),
        boxed(13, "   • Your game statistics"),
        boxed(14, "   • Your account data"),
        boxed(15),
        boxed(16, "   This action CANNOT be undone!"),
        boxed(17),
        boxed(18, "   Type Y to confirm, any other key to"),
        boxed(19, "   cancel and return to menu."),
        ScreenWrite(20, col, border),
    ]


_RENDERERS: dict[SessionState, Callable[[ScreenView], list[ScreenWrite]]] = {
    SessionState.welcome: render_welcome,
    SessionState.playing: render_game,
    SessionState.paused: render_game,
    SessionState.game_over: render_game_over,
    SessionState.leaderboard: render_leaderboard,
    SessionState.account_menu: render_account_menu,
    SessionState.account_export: render_account_export,
    SessionState.account_delete: render_account_delete,
}


def render(view: ScreenView) -> list[ScreenWrite]:
    renderer = _RENDERERS.get(view.state)
    if renderer is None:
        return []
    return renderer(view)


def encode_frame(writes: list[ScreenWrite]) -> bytes:
    """Full redraw: clear the screen, then position and print every write."""

    out = CLEAR_SCREEN + CURSOR_HOME
    for w in writes:
        out += f"{CSI}{w.row};{w.col}H{w.text}"
    return out.encode("utf-8")
