"""Optimize: compress assistant config files without losing critical anchors.

Deterministic preprocessing, heuristic anchor extraction, optional
model-based compression, and a content-hash keyed result cache.
"""
