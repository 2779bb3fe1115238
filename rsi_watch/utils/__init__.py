"""
Utility functions module.

Time Semantics:
- All timestamps are timezone-aware UTC datetimes
- Wall-clock time is read through an injectable clock so that cooldown and
  duration logic can be exercised with a simulated clock
"""
