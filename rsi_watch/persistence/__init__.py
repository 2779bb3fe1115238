"""Append-only audit trail of indicator snapshots and position outcomes."""
