"""
Calculator endpoints - the math behind the payment and ARM-vs-fixed tools.
"""
from fastapi import APIRouter

from rateunlock.schemas.calculators import (
    PaymentRequest,
    PaymentResponse,
    ArmVsFixedRequest,
    ArmVsFixedResponse,
)
from rateunlock.services.calculators import monthly_payment, amortize, compare_arm_vs_fixed

router = APIRouter(prefix="/api/calculators", tags=["calculators"])


@router.post("/payment")
async def calculate_payment(payload: PaymentRequest):
    payment = monthly_payment(payload.loan_amount, payload.interest_rate, payload.loan_term)
    total_interest = payment * payload.loan_term * 12 - payload.loan_amount

    response = PaymentResponse(
        monthly_payment=round(payment, 2),
        total_interest=round(total_interest, 2),
    )
    if payload.months_elapsed is not None:
        summary = amortize(
            payload.loan_amount, payload.interest_rate, payload.loan_term, payload.months_elapsed,
        )
        response.principal_paid = summary.principal_paid
        response.interest_paid = summary.interest_paid
        response.remaining_balance = summary.remaining_balance

    return response.model_dump(by_alias=True)


@router.post("/arm-vs-fixed")
async def calculate_arm_vs_fixed(payload: ArmVsFixedRequest):
    result = compare_arm_vs_fixed(
        loan_amount=payload.loan_amount,
        fixed_rate=payload.fixed_rate,
        arm_initial_rate=payload.arm_initial_rate,
        fixed_period_years=payload.fixed_period_years,
        term_years=payload.loan_term,
        plan_to_stay_years=payload.plan_to_stay,
        periodic_cap=payload.periodic_cap,
        lifetime_cap=payload.lifetime_cap,
    )
    return ArmVsFixedResponse(**vars(result)).model_dump(by_alias=True)
