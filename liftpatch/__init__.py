"""
LiftPatch: structured program edits for AI-assisted training program building.

A language model reads a human-readable program snapshot and answers with a
small batch of add/edit/delete/reorder operations over weeks, days and
exercises. LiftPatch validates that batch against the snapshot and the
exercise catalog, applies it all-or-nothing, and persists the result.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
