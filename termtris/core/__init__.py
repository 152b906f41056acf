"""Core gameplay primitives (pieces, board, engine).

Kept free of FastAPI and Redis concerns so it can be reused by the session layer and tests.
"""
