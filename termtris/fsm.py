from __future__ import annotations

from statemachine import State, StateMachine

from termtris.api.models import SessionState


class SessionFSM(StateMachine):
    """Screen graph of one connection.

    The FSM only guards transitions; the session layer decides which event to send
    and applies engine/store side effects around it.
    """

    welcome = State(SessionState.welcome.value, value=SessionState.welcome.value, initial=True)
    playing = State(SessionState.playing.value, value=SessionState.playing.value)
    paused = State(SessionState.paused.value, value=SessionState.paused.value)
    game_over = State(SessionState.game_over.value, value=SessionState.game_over.value)
    leaderboard = State(SessionState.leaderboard.value, value=SessionState.leaderboard.value)
    account_menu = State(SessionState.account_menu.value, value=SessionState.account_menu.value)
    account_export = State(SessionState.account_export.value, value=SessionState.account_export.value)
    account_delete = State(SessionState.account_delete.value, value=SessionState.account_delete.value)
    closed = State(SessionState.closed.value, value=SessionState.closed.value, final=True)

    new_game = welcome.to(playing) | game_over.to(playing) | playing.to.itself()
    pause = playing.to(paused)
    resume = paused.to(playing) | leaderboard.to(playing)
    finish = playing.to(game_over)
    show_leaderboard = welcome.to(leaderboard) | playing.to(leaderboard) | game_over.to(leaderboard)
    open_account = welcome.to(account_menu)
    export_account = account_menu.to(account_export)
    confirm_delete = account_menu.to(account_delete)
    back_to_welcome = (
        game_over.to(welcome)
        | leaderboard.to(welcome)
        | account_menu.to(welcome)
        | account_export.to(welcome)
        | account_delete.to(welcome)
    )
    close = (
        welcome.to(closed)
        | playing.to(closed)
        | paused.to(closed)
        | game_over.to(closed)
        | leaderboard.to(closed)
        | account_menu.to(closed)
        | account_export.to(closed)
        | account_delete.to(closed)
    )

    def __init__(self, start: SessionState = SessionState.welcome):
        super().__init__(start_value=start.value)

    @property
    def screen(self) -> SessionState:
        return SessionState(str(self.current_state.value))
