"""Shared persistence for player records and the global leaderboard.

Sessions only see the protocols in `base`; the Redis implementations are injected at connection time.
"""
