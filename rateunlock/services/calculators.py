"""
Mortgage calculator math behind the site's payment and ARM-vs-fixed tools.

All rates are annual percentages (6.5 means 6.5%). Results are rounded for
display only at the edges; intermediate math stays in float.
"""
from dataclasses import dataclass

# Default ARM caps: periodic / lifetime, in percentage points
DEFAULT_PERIODIC_CAP = 2.0
DEFAULT_LIFETIME_CAP = 5.0

# Horizon used for the short-term cost comparison
COMPARISON_YEARS = 5


def monthly_payment(principal: float, annual_rate: float, term_years: int) -> float:
    """Fixed monthly principal and interest payment."""
    if term_years <= 0:
        raise ValueError("term_years must be positive")
    monthly_rate = annual_rate / 100 / 12
    num_payments = term_years * 12
    if monthly_rate == 0:
        return principal / num_payments
    growth = (1 + monthly_rate) ** num_payments
    return principal * (monthly_rate * growth) / (growth - 1)


@dataclass
class AmortizationSummary:
    principal_paid: float
    interest_paid: float
    remaining_balance: float


def amortize(principal: float, annual_rate: float, term_years: int, months: int) -> AmortizationSummary:
    """Principal paid, interest paid and balance left after the first `months` payments."""
    monthly_rate = annual_rate / 100 / 12
    payment = monthly_payment(principal, annual_rate, term_years)

    balance = principal
    total_principal = 0.0
    total_interest = 0.0
    month = 0
    while month < months and balance > 0:
        interest = balance * monthly_rate
        principal_part = min(payment - interest, balance)
        total_interest += interest
        total_principal += principal_part
        balance -= principal_part
        month += 1

    return AmortizationSummary(
        principal_paid=round(total_principal, 2),
        interest_paid=round(total_interest, 2),
        remaining_balance=round(max(balance, 0.0), 2),
    )


@dataclass
class ArmComparison:
    fixed_monthly: float
    arm_initial_monthly: float
    fixed_total_5_year: float
    arm_total_5_year: float
    savings_5_year: float
    break_even_year: int
    recommendation: str
    risk_level: str


def _arm_yearly_costs(
    loan_amount: float,
    initial_rate: float,
    fixed_period_years: int,
    term_years: int,
    periodic_cap: float,
    lifetime_cap: float,
    years: int,
) -> list[float]:
    """
    Worst-case ARM cost per year: the initial rate through the fixed period,
    then the rate rises by the periodic cap each year up to the lifetime cap.
    """
    initial_monthly = monthly_payment(loan_amount, initial_rate, term_years)
    rate = initial_rate
    costs = []
    for year in range(1, years + 1):
        if year <= fixed_period_years:
            costs.append(initial_monthly * 12)
        else:
            rate = min(rate + periodic_cap, initial_rate + lifetime_cap)
            costs.append(monthly_payment(loan_amount, rate, term_years) * 12)
    return costs


def compare_arm_vs_fixed(
    loan_amount: float,
    fixed_rate: float,
    arm_initial_rate: float,
    fixed_period_years: int = 5,
    term_years: int = 30,
    plan_to_stay_years: int = 7,
    periodic_cap: float = DEFAULT_PERIODIC_CAP,
    lifetime_cap: float = DEFAULT_LIFETIME_CAP,
) -> ArmComparison:
    """
    Compare a fixed-rate loan with an ARM (e.g. 5/1 -> fixed_period_years=5).

    break_even_year is the first year the ARM's cumulative cost exceeds the
    fixed loan's, or 0 if that never happens within the term.
    """
    fixed_monthly = monthly_payment(loan_amount, fixed_rate, term_years)
    arm_initial_monthly = monthly_payment(loan_amount, arm_initial_rate, term_years)
    arm_costs = _arm_yearly_costs(
        loan_amount, arm_initial_rate, fixed_period_years, term_years,
        periodic_cap, lifetime_cap, term_years,
    )

    fixed_total_5_year = fixed_monthly * 12 * COMPARISON_YEARS
    arm_total_5_year = sum(arm_costs[:COMPARISON_YEARS])
    savings_5_year = fixed_total_5_year - arm_total_5_year

    break_even_year = 0
    fixed_cumulative = 0.0
    arm_cumulative = 0.0
    for year, arm_cost in enumerate(arm_costs, start=1):
        fixed_cumulative += fixed_monthly * 12
        arm_cumulative += arm_cost
        if arm_cumulative > fixed_cumulative:
            break_even_year = year
            break

    if plan_to_stay_years <= fixed_period_years:
        recommendation = (
            f"ARM recommended. You plan to stay {plan_to_stay_years} years, within the "
            f"{fixed_period_years}-year fixed period. Save ~${round(savings_5_year):,} over 5 years."
        )
        risk_level = "Low"
    elif break_even_year == 0 or plan_to_stay_years < break_even_year:
        if break_even_year:
            recommendation = (
                f"ARM could work. Break-even is year {break_even_year}. "
                "You might save money, but rates could rise unexpectedly."
            )
        else:
            recommendation = (
                "ARM could work. Even at the caps it never costs more than the fixed loan, "
                "but payments will change after the fixed period."
            )
        risk_level = "Moderate"
    else:
        recommendation = (
            f"Fixed recommended. You plan to stay {plan_to_stay_years} years, past the "
            f"break-even point of year {break_even_year}. The certainty is worth it."
        )
        risk_level = "Low"

    return ArmComparison(
        fixed_monthly=round(fixed_monthly, 2),
        arm_initial_monthly=round(arm_initial_monthly, 2),
        fixed_total_5_year=round(fixed_total_5_year, 2),
        arm_total_5_year=round(arm_total_5_year, 2),
        savings_5_year=round(savings_5_year, 2),
        break_even_year=break_even_year,
        recommendation=recommendation,
        risk_level=risk_level,
    )
