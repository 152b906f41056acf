from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class SessionState(StrEnum):
    welcome = "welcome"
    playing = "playing"
    paused = "paused"
    game_over = "game_over"
    leaderboard = "leaderboard"
    account_menu = "account_menu"
    account_export = "account_export"
    account_delete = "account_delete"
    closed = "closed"


class ScoreEntry(BaseModel):
    score: int = Field(..., ge=0)
    level: int = Field(..., ge=1)
    lines: int = Field(..., ge=0)
    date: datetime


class PlayerRecord(BaseModel):
    player_id: str
    display_name: str
    first_seen: datetime
    last_seen: datetime

    # Most recent first, bounded by the store's history cap.
    score_history: list[ScoreEntry] = Field(default_factory=list)


class LeaderboardEntry(BaseModel):
    player_id: str
    display_name: str
    score: int = Field(..., ge=0)
    level: int = Field(..., ge=1)
    lines: int = Field(..., ge=0)
    date: datetime


class AccountExport(BaseModel):
    player_id: str
    player_info: PlayerRecord | None = None
    high_scores: list[LeaderboardEntry] = Field(default_factory=list)
    export_date: datetime
    note: str = "Complete export of your game data and statistics."


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
