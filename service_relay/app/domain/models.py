"""
Data models for the relay commands.

Request and result models are frozen pydantic models built per call. Field
names are snake_case in Python and camelCase on the wire.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RelayModel(BaseModel):
    """Base model: immutable, camelCase aliases, accepts either spelling."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SortDirection(str, Enum):
    """Sort direction for table previews."""
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortDirection":
        """Resolve a caller-supplied direction; only "desc" sorts descending."""
        if value is not None and str(value).strip().lower() == cls.DESC.value:
            return cls.DESC
        return cls.ASC


class ConnectionDescriptor(RelayModel):
    """One ClickHouse endpoint and its credentials.

    Host and username are checked when a command runs, not here, so that a
    blank value surfaces as a relay validation error.
    """

    host: str = Field(..., description="ClickHouse host name")
    port: int = Field(8123, ge=0, le=65535, description="ClickHouse HTTP port")
    username: str = Field(..., description="User for HTTP basic auth")
    password: str = Field("", repr=False, description="Password for HTTP basic auth")
    database: Optional[str] = Field(None, description="Restrict schema listing to this database")
    secure: bool = Field(False, description="Use https")

    @property
    def scheme(self) -> str:
        return "https" if self.secure else "http"

    @property
    def endpoint(self) -> str:
        return f"{self.scheme}://{self.host.strip()}:{self.port}/"


class SchemaTableItem(RelayModel):
    """A table and its reported row count."""

    name: str
    row_count: Optional[int] = Field(None, ge=0)


class SchemaTables(RelayModel):
    """Tables of one schema, ordered by name."""

    schema_name: str = Field(..., alias="schema")
    tables: List[SchemaTableItem] = Field(default_factory=list)


class TablePreview(RelayModel):
    """Tabular result: server-ordered columns and opaque row values."""

    columns: List[str] = Field(default_factory=list)
    rows: List[Any] = Field(default_factory=list)


class ConnectionStatus(RelayModel):
    """Outcome of a status probe."""

    connected: bool
    latency_ms: int = Field(..., ge=0)
    version: str
    current_database: str


class QueryRequest(RelayModel):
    """Arbitrary query request."""

    connection: ConnectionDescriptor
    query: str
    limit: Optional[int] = Field(None, ge=0)


class TablePreviewRequest(RelayModel):
    """Table preview request."""

    connection: ConnectionDescriptor
    schema_name: str = Field(..., alias="schema")
    table: str
    limit: Optional[int] = Field(None, ge=0)
    sort_column: Optional[str] = None
    sort_direction: Optional[str] = None
