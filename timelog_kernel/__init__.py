"""
Time Log Kernel - intern hour reconciliation engine

Tracks intern clock-in/clock-out sessions with:
- Tiered splitting into regular, overtime and extended overtime
- Continuous session grouping for display and editing
- Atomic edit-request approval, rejection and revert
- Truncation-exact progress totals for certification
"""

__version__ = "0.1.0"
