from datetime import datetime  # For timestamp fields
from typing import Optional  # For optional fields

from sqlalchemy import DateTime, Index, String, UniqueConstraint  # For explicit column types
from sqlmodel import Column, Field, SQLModel  # For ORM and table definition

from accessguard.utils.clock import utc_now


class RateLimitWindow(SQLModel, table=True):
    """A fixed request window counted against one identifier and operation.

    One row exists per (identifier, identifier_type, function_name,
    window_granularity, window_start). Rows are created on the first request
    in a window, incremented by later requests in the same window and purged
    once ``window_start`` is more than an hour old. No row is ever shared
    across identifiers.

    Attributes:
        id: Surrogate primary key.
        identifier: User id or IP address the window is counted against.
        identifier_type: ``user`` or ``ip``.
        function_name: Name of the protected operation.
        window_granularity: ``minute`` or ``hour``.
        window_start: Start of the window, truncated to the minute or hour.
        request_count: Requests recorded in the window so far.
        updated_at: Last time the count was written.
    """

    __tablename__ = "rate_limit_windows"

    id: Optional[int] = Field(
        default=None,  # Auto-incremented by database
        primary_key=True,
        description="Surrogate key for the window row.",
    )
    identifier: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="User id or IP address.",
    )
    identifier_type: str = Field(
        sa_column=Column(String(16), nullable=False),
        description="Kind of identifier: user or ip.",
    )
    function_name: str = Field(
        sa_column=Column(String(128), nullable=False),
        description="Protected operation the window belongs to.",
    )
    window_granularity: str = Field(
        sa_column=Column(String(16), nullable=False),
        description="Window size: minute or hour.",
    )
    window_start: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="Minute- or hour-aligned start of the window.",
    )
    request_count: int = Field(
        default=1,
        nullable=False,
        description="Requests recorded in this window.",
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
        description="Last write to this row.",
    )

    __table_args__ = (
        UniqueConstraint(
            "identifier",
            "identifier_type",
            "function_name",
            "window_granularity",
            "window_start",
            name="uq_rate_limit_windows_key",
        ),
        Index(
            "ix_rate_limit_windows_lookup",
            "identifier",
            "identifier_type",
            "function_name",
            "window_granularity",
            "window_start",
        ),  # Index for the per-request window lookup
        Index("ix_rate_limit_windows_window_start", "window_start"),  # Index for cleanup sweep
        {"extend_existing": True},
    )
