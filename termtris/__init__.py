"""Terminal Tetris server: per-session game engine, screen state machine and renderer."""
