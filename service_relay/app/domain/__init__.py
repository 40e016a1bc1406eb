"""
Domain layer for the Relay Service.

Request/result models live here; ``normalizer`` decodes ClickHouse replies
and ``commands`` holds the facade the HTTP routes call into.
"""

from .models import (
    ConnectionDescriptor,
    ConnectionStatus,
    QueryRequest,
    SchemaTableItem,
    SchemaTables,
    SortDirection,
    TablePreview,
    TablePreviewRequest,
)

__all__ = [
    "ConnectionDescriptor",
    "ConnectionStatus",
    "QueryRequest",
    "SchemaTableItem",
    "SchemaTables",
    "SortDirection",
    "TablePreview",
    "TablePreviewRequest",
]
