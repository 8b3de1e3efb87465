"""Rate limiting adapters.

Limiters keep their counters in an ``AbstractKeyValueStore``, so the same
Redis instance that caches weather data also enforces per-identity budgets
across every worker.
"""
