import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class RecordFields(BaseModel):
    """Patient, doctor and inventory bodies pass through to the API as sent."""

    model_config = ConfigDict(extra="allow")


class RestockRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    quantity: int = Field(ge=1)
    batch_number: str | None = Field(default=None, alias="batchNumber")
    expiry_date: dt.date | None = Field(default=None, alias="expiryDate")


class ReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    type: str
    start_date: dt.date | None = Field(default=None, alias="startDate")
    end_date: dt.date | None = Field(default=None, alias="endDate")
