"""Core gameplay primitives (board model, movement, request guarding).

Kept free of FastAPI and asyncio concerns so it can be reused by the session,
API routes and tests.
"""
