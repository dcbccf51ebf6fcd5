"""
Lead submission schema - the JSON body accepted by POST /api/leads.
Calculators and partner widgets post camelCase keys; snake_case is accepted too.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# Keys that must be present and non-empty, in the order they are reported
REQUIRED_FIELDS = ("email", "homePrice", "loanAmount", "state")


class LeadSubmission(BaseModel):
    """A lead as submitted by a calculator form or partner widget."""
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    # Contact
    email: str = Field(..., max_length=255)
    phone: Optional[str] = Field(default=None, max_length=30)
    first_name: Optional[str] = Field(default=None, alias="firstName", max_length=100)
    last_name: Optional[str] = Field(default=None, alias="lastName", max_length=100)

    # Loan scenario
    home_price: float = Field(..., alias="homePrice", gt=0)
    loan_amount: float = Field(..., alias="loanAmount", gt=0)
    down_payment: Optional[float] = Field(default=None, alias="downPayment", ge=0)
    credit_score: Optional[int] = Field(default=None, alias="creditScore", ge=300, le=850)
    property_type: Optional[str] = Field(default=None, alias="propertyType", max_length=50)
    property_use: Optional[str] = Field(default=None, alias="propertyUse", max_length=50)
    state: str = Field(..., max_length=20)
    zip_code: Optional[str] = Field(default=None, alias="zipCode", max_length=10)
    loan_type: Optional[str] = Field(default=None, alias="loanType", max_length=30)
    loan_term: Optional[int] = Field(default=None, alias="loanTerm", gt=0, le=50)
    interest_rate: Optional[float] = Field(default=None, alias="interestRate", ge=0, le=30)
    monthly_payment: Optional[float] = Field(default=None, alias="monthlyPayment", ge=0)

    # Attribution
    calculator: Optional[str] = Field(default=None, max_length=50)
    partner_id: Optional[str] = Field(default=None, alias="partnerId", max_length=64)
    utm_source: Optional[str] = Field(default=None, alias="utmSource", max_length=100)
    utm_medium: Optional[str] = Field(default=None, alias="utmMedium", max_length=100)
    utm_campaign: Optional[str] = Field(default=None, alias="utmCampaign", max_length=100)


def missing_required_fields(body: dict) -> list[str]:
    """Return the required camelCase keys that are absent, null or blank."""
    missing = []
    for key in REQUIRED_FIELDS:
        snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in key)
        value = body.get(key, body.get(snake))
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(key)
    return missing
