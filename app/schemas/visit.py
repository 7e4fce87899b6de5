from datetime import datetime

from pydantic import BaseModel, Field


class VisitCreate(BaseModel):
    visitorId: str
    visitDate: datetime
    purpose: str = ""
    hostName: str = ""
    hostDepartment: str = ""
    expectedArrivalTime: datetime | None = None
    expectedDepartureTime: datetime | None = None
    notes: str = ""


class VisitDeny(BaseModel):
    reason: str = ""


class BulkApproveRequest(BaseModel):
    visitIds: list[str] = Field(default_factory=list)
