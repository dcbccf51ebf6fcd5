"""
Calculator request/response schemas.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    loan_amount: float = Field(..., alias="loanAmount", gt=0)
    interest_rate: float = Field(..., alias="interestRate", ge=0, le=30)
    loan_term: int = Field(default=30, alias="loanTerm", gt=0, le=50)
    months_elapsed: Optional[int] = Field(default=None, alias="monthsElapsed", ge=0)


class PaymentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    monthly_payment: float = Field(..., serialization_alias="monthlyPayment")
    total_interest: float = Field(..., serialization_alias="totalInterest")
    principal_paid: Optional[float] = Field(default=None, serialization_alias="principalPaid")
    interest_paid: Optional[float] = Field(default=None, serialization_alias="interestPaid")
    remaining_balance: Optional[float] = Field(default=None, serialization_alias="remainingBalance")


class ArmVsFixedRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    loan_amount: float = Field(..., alias="loanAmount", gt=0)
    fixed_rate: float = Field(..., alias="fixedRate", ge=0, le=30)
    arm_initial_rate: float = Field(..., alias="armInitialRate", ge=0, le=30)
    arm_type: str = Field(default="5/1", alias="armType", pattern=r"^\d{1,2}/\d{1,2}$")
    loan_term: int = Field(default=30, alias="loanTerm", gt=0, le=50)
    plan_to_stay: int = Field(default=7, alias="planToStay", gt=0, le=50)
    periodic_cap: float = Field(default=2.0, alias="periodicCap", ge=0, le=10)
    lifetime_cap: float = Field(default=5.0, alias="lifetimeCap", ge=0, le=15)

    @property
    def fixed_period_years(self) -> int:
        return int(self.arm_type.split("/")[0])


class ArmVsFixedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fixed_monthly: float = Field(..., serialization_alias="fixedMonthly")
    arm_initial_monthly: float = Field(..., serialization_alias="armInitialMonthly")
    fixed_total_5_year: float = Field(..., serialization_alias="fixedTotal5Year")
    arm_total_5_year: float = Field(..., serialization_alias="armTotal5Year")
    savings_5_year: float = Field(..., serialization_alias="savings5Year")
    break_even_year: int = Field(..., serialization_alias="breakEvenYear")
    recommendation: str
    risk_level: str = Field(..., serialization_alias="riskLevel")
