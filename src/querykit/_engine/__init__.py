"""Executor internals for :class:`querykit.engine.QueryEngine`.

These functions keep `engine.py` small without changing the public API.
"""
