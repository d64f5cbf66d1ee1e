"""
Core components for LiftPatch.

This package contains the snapshot and operation schemas, the patch validator
and applier, persistence, and the turn orchestrator.
"""

__all__ = []
