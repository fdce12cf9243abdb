"""
LifeMon Backend — Shared Response Schemas
===========================================

What:  The response envelope used by every endpoint, plus the health report.

Envelope:
    success  always present
    data     payload on success
    message  human-readable note on some successes
    error    description of the failure (success = false)

Success responses are serialized with exclude_unset, so keys that an endpoint
does not set are omitted rather than sent as null.
"""

from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None


class ErrorResponse(BaseModel):
    """Body of every failed request."""

    success: bool = False
    error: str = Field(description="Human-readable error description")


class RouteGroupStatus(BaseModel):
    """
    Load state of one entry of the route-group registration table.

    state:
        available    module imported, router mounted under prefix
        unavailable  module missing or broken; prefix answers 404, `error` says why
    """

    name: str
    prefix: str
    state: Literal["available", "unavailable"]
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """
    GET /health report.

    status:
        healthy    database reachable, all route groups mounted
        degraded   database reachable, at least one route group unavailable
        unhealthy  database unreachable
    """

    status: str
    version: str
    database: str = Field(description="connected | disconnected")
    route_groups: List[RouteGroupStatus]
    uptime_seconds: float
