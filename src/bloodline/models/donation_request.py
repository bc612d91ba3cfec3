import uuid
from datetime import datetime, timezone
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


DonationStatus = Literal["pending", "inprogress", "done", "canceled"]

DONATION_STATUSES: tuple[str, ...] = get_args(DonationStatus)
CLOSING_STATUSES = frozenset({"done", "canceled"})


class DonorInfo(BaseModel):
    name: str | None = None
    email: EmailStr


class RequestDetails(BaseModel):
    """Descriptive fields supplied by whoever files the request."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    recipient_name: str = Field(min_length=1)
    recipient_district: str = Field(min_length=1)
    recipient_upazila: str = Field(min_length=1)
    hospital_name: str = Field(min_length=1)
    full_address: str = Field(min_length=1)
    blood_group: str = Field(min_length=1)
    donation_date: str = Field(min_length=1)
    donation_time: str = Field(min_length=1)
    request_message: str | None = None


class RequestDetailsPatch(BaseModel):
    """Partial edit of the descriptive fields; unset fields are left alone."""
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    recipient_name: str | None = Field(default=None, min_length=1)
    recipient_district: str | None = Field(default=None, min_length=1)
    recipient_upazila: str | None = Field(default=None, min_length=1)
    hospital_name: str | None = Field(default=None, min_length=1)
    full_address: str | None = Field(default=None, min_length=1)
    blood_group: str | None = Field(default=None, min_length=1)
    donation_date: str | None = Field(default=None, min_length=1)
    donation_time: str | None = Field(default=None, min_length=1)
    request_message: str | None = None

    @field_validator(
        "recipient_name", "recipient_district", "recipient_upazila", "hospital_name",
        "full_address", "blood_group", "donation_date", "donation_time",
    )
    @classmethod
    def required_fields_stay_set(cls, value):
        # omitted fields skip validation, so None here is an explicit null
        if value is None:
            raise ValueError("cannot be cleared")
        return value


class DonationRequest(RequestDetails):
    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    requester_email: EmailStr
    requester_name: str

    donation_status: DonationStatus = "pending"
    donor_info: DonorInfo | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None


class RequestPage(BaseModel):
    requests: list[DonationRequest]
    total_pages: int
    current_page: int
    total_requests: int
