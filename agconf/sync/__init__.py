"""Sync engine: lockfile state, schema gating, orphan cleanup, and the orchestrator.

This package provides:
- Lockfile: the record of what the previous sync wrote
- Schema gating: refusing to touch state written by an incompatible version
- Orphans: safe deletion of artifacts no longer present upstream
- Orchestrator: the sync/check/status operations composed from the parts
"""
