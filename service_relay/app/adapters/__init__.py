"""
Adapters package for the Relay Service.

Contains the HTTP client wrapper for ClickHouse. The adapter encapsulates:

- Endpoint and authentication shape
- The fixed request timeout
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .clickhouse_client import ClickHouseClient

__all__ = [
    "ClickHouseClient",
]
