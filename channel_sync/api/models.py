"""
Immutable data models for API responses and requests.
"""
from typing import Optional, Dict, Any, List
from datetime import datetime, date, timezone
from pydantic import BaseModel, Field, ConfigDict, field_serializer

from ..utils.models import CancellationPolicyType, SyncResult


def _now() -> datetime:
    return datetime.now(timezone.utc)


class APIResponse(BaseModel):
    """Base API response model."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    success: bool = Field(..., description="Whether the request was successful")
    message: str = Field(..., description="Response message")
    timestamp: datetime = Field(default_factory=_now, description="Response timestamp")

    @field_serializer('timestamp')
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()


class ErrorResponse(APIResponse):
    """Error response model."""
    error_code: Optional[str] = Field(None, description="Error code for debugging")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response model."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(default_factory=_now, description="Health check timestamp")
    version: str = Field(..., description="API version")
    dependencies: Dict[str, str] = Field(default_factory=dict, description="Dependency statuses")

    @field_serializer('timestamp')
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()


class SyncResultData(BaseModel):
    """Outcome of one unit sync."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    unit_id: Optional[str] = Field(None, description="Rental unit id")
    processed: int = Field(..., ge=0, description="Connections ingested successfully")
    conflicts: int = Field(..., ge=0, description="Genuine booking conflicts detected")
    errors: List[str] = Field(default_factory=list, description="Per-connection error messages")

    @classmethod
    def from_result(cls, result: SyncResult) -> 'SyncResultData':
        return cls(**result.to_dict())


class SyncResponse(APIResponse):
    """Response model for a unit sync."""
    data: SyncResultData = Field(..., description="Sync result")


class CycleData(BaseModel):
    """Aggregate outcome of a sync cycle over all units."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    units: int = Field(..., ge=0)
    processed: int = Field(..., ge=0)
    conflicts: int = Field(..., ge=0)
    errors: List[str] = Field(default_factory=list)
    offline: bool = Field(False, description="True when the cycle was skipped for lack of network")


class CycleResponse(APIResponse):
    """Response model for a manual sync cycle."""
    data: CycleData


class IntervalRequest(BaseModel):
    """Scheduler interval change."""
    interval: str = Field(..., description="15, 30, 60 or manual")


class IntervalResponse(APIResponse):
    """Scheduler state after an interval change."""
    interval: str
    running: bool


class CancellationRuleModel(BaseModel):
    days_before: float = Field(..., ge=0, description="Minimum days before check-in")
    refund_percent: float = Field(..., ge=0, le=100, description="Refund percent granted")


class CancellationRequest(BaseModel):
    """Cancellation quote request."""
    policy_type: CancellationPolicyType
    rules: List[CancellationRuleModel] = Field(default_factory=list, description="Rules for CUSTOM policies")
    check_in: date
    total_price: float = Field(..., ge=0)
    requested_at: Optional[datetime] = Field(None, description="Defaults to now")


class CancellationOutcomeData(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    refund_percent: float
    refund_amount: float
    fee: float
    explanation: str


class CancellationResponse(APIResponse):
    data: CancellationOutcomeData
