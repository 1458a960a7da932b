"""
Validation - Arsenal Module
Request bodies for the lease analysis and profile API.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AnalyzeLeaseRequest(BaseModel):
    """Lease analysis request. The length rule lives in the analysis service."""

    model_config = ConfigDict(populate_by_name=True)

    lease_text: Optional[str] = Field(default=None, alias="leaseText", max_length=500_000)
    file_name: Optional[str] = Field(default=None, alias="fileName", max_length=255)
    location: Optional[str] = Field(default=None, max_length=200)

    @field_validator("file_name", "location")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class UpdateProfileRequest(BaseModel):
    """Profile edit. Omitted or blank fields leave the stored value alone."""

    name: Optional[str] = Field(default=None, max_length=200)
    preferences: Optional[Dict[str, Any]] = None

    @field_validator("name")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v.strip() if v is not None else None
