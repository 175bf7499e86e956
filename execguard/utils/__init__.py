"""
Utility functions module.

Time Semantics:
- Exchange timestamps are integer epoch milliseconds
- Signed requests always use drift-corrected time (local + server offset)
- Local wall-clock time is read only through utils.time.current_time_ms
"""
