"""
Partner registration request schema.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PartnerRegistration(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    company_name: str = Field(..., alias="companyName", min_length=1, max_length=255)
    institution_type: str = Field(..., alias="institutionType", min_length=1, max_length=50)
    website: Optional[str] = Field(default=None, max_length=255)
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=100)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=20)
    job_title: Optional[str] = Field(default=None, alias="title", max_length=100)
    plan: Optional[str] = Field(default="free", max_length=20)
    subdomain: Optional[str] = Field(default=None, max_length=63)
    primary_color: Optional[str] = Field(default=None, alias="primaryColor", pattern=r"^#[0-9a-fA-F]{6}$")
    secondary_color: Optional[str] = Field(default=None, alias="secondaryColor", pattern=r"^#[0-9a-fA-F]{6}$")
