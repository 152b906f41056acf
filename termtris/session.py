from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from termtris.api.models import AccountExport, LeaderboardEntry, PlayerRecord, ScoreEntry, SessionState
from termtris.core.engine import GameEngine
from termtris.core.rng import PieceRandomizer, UniformPieceRandomizer
from termtris.fsm import SessionFSM
from termtris.identity import PlayerIdentity
from termtris.keys import DOWN, LEFT, QUIT, RIGHT, UP
from termtris.render import LEADERBOARD_ROWS, GameOverSummary, ScreenView
from termtris.stores.accounts import build_account_export, delete_account
from termtris.stores.base import LeaderboardStore, PlayerStore

logger = logging.getLogger(__name__)

DEFAULT_DELETE_GRACE_S = 3.0

_MOVES: dict[str, tuple[int, int]] = {
    "a": (-1, 0),
    LEFT: (-1, 0),
    "d": (1, 0),
    RIGHT: (1, 0),
}
_SOFT_DROP_KEYS = frozenset({"s", DOWN})
_ROTATE_KEYS = frozenset({"w", UP})
_HARD_DROP_KEY = " "
_QUIT_KEYS = frozenset({QUIT, "q"})


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of one input or gravity event.

    - `changed`: the screen must be redrawn.
    - `close`: end the session now.
    - `close_after_s`: end the session after this delay.
    - `reset_gravity`: (re)entered active play; restart the drop timer.
    """

    changed: bool
    close: bool = False
    close_after_s: float | None = None
    reset_gravity: bool = False


UNCHANGED = DispatchResult(changed=False)
CHANGED = DispatchResult(changed=True)


def _now() -> datetime:
    return datetime.now(tz=UTC)


class GameSession:
    """Screen-level state machine of one connection.

    Routes logical keys by current screen, drives the GameEngine and talks to the
    shared stores. Store failures are logged and never interrupt play.
    """

    def __init__(
        self,
        *,
        identity: PlayerIdentity,
        players: PlayerStore,
        leaderboard: LeaderboardStore,
        randomizer_factory: Callable[[], PieceRandomizer] = UniformPieceRandomizer,
        delete_grace_s: float = DEFAULT_DELETE_GRACE_S,
    ) -> None:
        self.identity = identity
        self.players = players
        self.leaderboard = leaderboard
        self.randomizer_factory = randomizer_factory
        self.delete_grace_s = delete_grace_s

        self.fsm = SessionFSM()
        self.engine: GameEngine | None = None
        self.player_best = 0
        self.best_before_game = 0
        self.summary: GameOverSummary | None = None
        self.export: AccountExport | None = None
        self.deleted = False

        self._handlers: dict[SessionState, Callable[[str], DispatchResult]] = {
            SessionState.welcome: self._on_welcome,
            SessionState.playing: self._on_playing,
            SessionState.paused: self._on_paused,
            SessionState.game_over: self._on_game_over,
            SessionState.leaderboard: self._on_leaderboard,
            SessionState.account_menu: self._on_account_menu,
            SessionState.account_export: self._on_account_export,
            SessionState.account_delete: self._on_account_delete,
        }

        try:
            self.players.upsert(identity.id, identity.display_name)
        except Exception:
            logger.exception("Failed to register player %s", identity.id)
        self._refresh_best()

    @property
    def state(self) -> SessionState:
        return self.fsm.screen

    @property
    def has_active_game(self) -> bool:
        return self.engine is not None and not self.engine.over

    def handle_key(self, key: str) -> DispatchResult:
        if self.state == SessionState.closed:
            return UNCHANGED
        if key in _QUIT_KEYS:
            return self.quit()
        # After a confirmed deletion only quit is honoured until the grace delay ends.
        if self.deleted:
            return UNCHANGED
        return self._handlers[self.state](key)

    def gravity_tick(self) -> DispatchResult:
        if self.state != SessionState.playing or self.engine is None:
            return UNCHANGED
        self.engine.soft_drop_tick()
        self._check_game_over()
        return CHANGED

    def quit(self) -> DispatchResult:
        if self.state != SessionState.closed:
            self.fsm.close()
        return DispatchResult(changed=False, close=True)

    # Screen handlers

    def _on_welcome(self, key: str) -> DispatchResult:
        if key == "h":
            self.fsm.show_leaderboard()
            return CHANGED
        if key == "a":
            self.fsm.open_account()
            return CHANGED
        return self._start_game()

    def _on_playing(self, key: str) -> DispatchResult:
        engine = self.engine
        if engine is None:
            return UNCHANGED

        if key == "p":
            self.fsm.pause()
            return CHANGED
        if key == "r":
            return self._start_game()
        if key == "h":
            self.fsm.show_leaderboard()
            return CHANGED

        if key in _MOVES:
            dx, dy = _MOVES[key]
            changed = engine.try_move(dx, dy)
        elif key in _ROTATE_KEYS:
            changed = engine.rotate()
        elif key in _SOFT_DROP_KEYS:
            engine.soft_drop_tick()
            changed = True
        elif key == _HARD_DROP_KEY:
            engine.hard_drop()
            changed = True
        else:
            return UNCHANGED

        self._check_game_over()
        return CHANGED if changed else UNCHANGED

    def _on_paused(self, key: str) -> DispatchResult:
        if key == "p":
            self.fsm.resume()
            return DispatchResult(changed=True, reset_gravity=True)
        return UNCHANGED

    def _on_game_over(self, key: str) -> DispatchResult:
        if key == "r":
            return self._start_game()
        if key == "h":
            self.fsm.show_leaderboard()
            return CHANGED
        self.fsm.back_to_welcome()
        return CHANGED

    def _on_leaderboard(self, key: str) -> DispatchResult:
        if self.has_active_game:
            self.fsm.resume()
            return DispatchResult(changed=True, reset_gravity=True)
        self.fsm.back_to_welcome()
        return CHANGED

    def _on_account_menu(self, key: str) -> DispatchResult:
        if key == "e":
            self.export = self._build_export()
            self.fsm.export_account()
            return CHANGED
        if key == "d":
            self.fsm.confirm_delete()
            return CHANGED
        self.fsm.back_to_welcome()
        return CHANGED

    def _on_account_export(self, key: str) -> DispatchResult:
        self.export = None
        self.fsm.back_to_welcome()
        return CHANGED

    def _on_account_delete(self, key: str) -> DispatchResult:
        if key != "y":
            self.fsm.back_to_welcome()
            return CHANGED

        try:
            delete_account(players=self.players, leaderboard=self.leaderboard, player_id=self.identity.id)
        except Exception:
            logger.exception("Failed to delete account %s", self.identity.id)
        self.deleted = True
        self.engine = None
        self.player_best = 0
        return DispatchResult(changed=True, close_after_s=self.delete_grace_s)

    # Game lifecycle

    def _start_game(self) -> DispatchResult:
        self.best_before_game = self.player_best
        self.summary = None
        self.engine = GameEngine.start(randomizer=self.randomizer_factory())
        self.fsm.new_game()
        self._check_game_over()
        return DispatchResult(changed=True, reset_gravity=True)

    def _check_game_over(self) -> None:
        engine = self.engine
        if engine is None or not engine.over or self.state != SessionState.playing:
            return
        self._finalize(engine)
        self.fsm.finish()

    def _finalize(self, engine: GameEngine) -> None:
        stats = engine.stats
        date = _now()
        player_id = self.identity.id

        try:
            self.players.append_score(
                player_id,
                ScoreEntry(score=stats.score, level=stats.level, lines=stats.lines, date=date),
            )
        except Exception:
            logger.exception("Failed to record score history for %s", player_id)

        rank: int | None = None
        try:
            rank = self.leaderboard.upsert_if_better(
                LeaderboardEntry(
                    player_id=player_id,
                    display_name=self.identity.display_name,
                    score=stats.score,
                    level=stats.level,
                    lines=stats.lines,
                    date=date,
                )
            )
        except Exception:
            logger.exception("Failed to update leaderboard for %s", player_id)

        self.summary = GameOverSummary(
            score=stats.score,
            level=stats.level,
            lines=stats.lines,
            previous_best=self.best_before_game,
            rank=rank,
        )
        self.player_best = max(self.player_best, stats.score)
        self._refresh_best()

        logger.info(
            "Game over for %s (%s): score=%d level=%d lines=%d rank=%s",
            self.identity.display_name,
            player_id,
            stats.score,
            stats.level,
            stats.lines,
            rank,
        )

    # Store reads

    def _refresh_best(self) -> None:
        try:
            self.player_best = max(self.player_best, self.leaderboard.best_score_of(self.identity.id))
        except Exception:
            logger.exception("Failed to read best score for %s", self.identity.id)

    def _build_export(self) -> AccountExport | None:
        try:
            return build_account_export(players=self.players, leaderboard=self.leaderboard, player_id=self.identity.id)
        except Exception:
            logger.exception("Failed to export account %s", self.identity.id)
            return None

    def _top_entries(self) -> list[LeaderboardEntry]:
        try:
            return self.leaderboard.top_n(LEADERBOARD_ROWS)
        except Exception:
            logger.exception("Failed to read leaderboard")
            return []

    def _player_record(self) -> PlayerRecord | None:
        try:
            return self.players.get(self.identity.id)
        except Exception:
            logger.exception("Failed to read player %s", self.identity.id)
            return None

    def view(self) -> ScreenView:
        state = self.state
        return ScreenView(
            state=state,
            identity=self.identity,
            player_best=self.player_best,
            game=self.engine.snapshot() if self.engine is not None else None,
            summary=self.summary,
            leaderboard=self._top_entries() if state == SessionState.leaderboard else [],
            player=self._player_record() if state == SessionState.account_menu else None,
            export=self.export,
            deleted=self.deleted,
        )
