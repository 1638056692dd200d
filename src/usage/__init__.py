"""
Usage Module
----------
Per-client, per-day usage counters and the guard that enforces the daily quota.
"""
