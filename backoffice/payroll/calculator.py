"""Monthly pay calculation — pure functions, no database access.

    gross      = base pay − absence deduction + allowances
                 + overtime + late-night + holiday work
    social     = health + pension + employment insurance
    income tax = withholding on (gross − social) for the dependants
    net        = gross − social − income tax − resident tax − other deductions

Every yen amount is truncated (floor), the way withholding tables do it.
Health and pension come from the employee's social-insurance grade when
one is set up for the year, otherwise from the flat employee rates.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from backoffice.common.constants import PaymentType

STANDARD_WORKING_DAYS = 21
HOURS_PER_DAY = 8
DEFAULT_WORKING_DAYS = 20

OVERTIME_RATE = Decimal("1.25")
LATE_NIGHT_RATE = Decimal("1.5")
HOLIDAY_RATE = Decimal("1.35")

HEALTH_INSURANCE_RATE = Decimal("0.0495")
PENSION_INSURANCE_RATE = Decimal("0.0915")

BASIC_DEDUCTION = 480_000
DEPENDENT_DEDUCTION = 380_000
RECONSTRUCTION_TAX_RATE = Decimal("0.021")

# (upper bound of taxable annual income, rate, quick deduction)
INCOME_TAX_BRACKETS: list[tuple[Optional[int], Decimal, int]] = [
    (1_950_000, Decimal("0.05"), 0),
    (3_300_000, Decimal("0.10"), 97_500),
    (6_950_000, Decimal("0.20"), 427_500),
    (9_000_000, Decimal("0.23"), 636_000),
    (18_000_000, Decimal("0.33"), 1_536_000),
    (40_000_000, Decimal("0.40"), 2_796_000),
    (None, Decimal("0.45"), 4_796_000),
]


def floor_yen(value) -> int:
    return int(Decimal(value).to_integral_value(rounding=ROUND_FLOOR))


@dataclass
class SalaryTerms:
    """The parts of a salary setting the calculation reads."""

    payment_type: PaymentType = PaymentType.monthly
    basic_salary: int = 0
    daily_rate: Optional[int] = None
    hourly_rate: Optional[int] = None
    employment_insurance_rate: Decimal = Decimal("0.006")
    resident_tax_amount: int = 0
    dependent_count: int = 0

    @classmethod
    def from_setting(cls, setting) -> SalaryTerms:
        return cls(
            payment_type=setting.payment_type,
            basic_salary=setting.basic_salary,
            daily_rate=setting.daily_rate,
            hourly_rate=setting.hourly_rate,
            employment_insurance_rate=Decimal(str(setting.employment_insurance_rate)),
            resident_tax_amount=setting.resident_tax_amount,
            dependent_count=setting.dependent_count,
        )


@dataclass
class AttendanceFigures:
    working_days: int = DEFAULT_WORKING_DAYS
    absence_days: Decimal = Decimal("0")
    paid_leave_days: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    late_night_hours: Decimal = Decimal("0")
    holiday_work_hours: Decimal = Decimal("0")


@dataclass
class GradeAmounts:
    """Employee share of health and pension insurance for one grade."""

    health: int
    pension: int


@dataclass
class PayCalculation:
    basic_salary: int
    overtime_allowance: int
    late_night_allowance: int
    holiday_allowance: int
    absence_deduction: int
    allowances: dict[str, int]
    total_allowances: int
    gross_pay: int
    health_insurance: int
    pension_insurance: int
    employment_insurance: int
    income_tax: int
    resident_tax: int
    deductions: dict[str, int]
    other_deductions: int
    total_deductions: int
    net_pay: int
    attendance: AttendanceFigures = field(default_factory=AttendanceFigures)

    def as_columns(self) -> dict:
        """Flatten into PaySlip column values."""
        values = asdict(self)
        values.update(values.pop("attendance"))
        return values


def hourly_rate(terms: SalaryTerms) -> Decimal:
    """Rate that overtime premiums multiply."""
    if terms.payment_type == PaymentType.hourly:
        return Decimal(terms.hourly_rate or 0)
    if terms.payment_type == PaymentType.daily:
        return Decimal(terms.daily_rate or 0) / HOURS_PER_DAY
    return Decimal(terms.basic_salary) / (STANDARD_WORKING_DAYS * HOURS_PER_DAY)


def base_pay(terms: SalaryTerms, working_days: int) -> int:
    if terms.payment_type == PaymentType.daily:
        return (terms.daily_rate or 0) * working_days
    if terms.payment_type == PaymentType.hourly:
        return (terms.hourly_rate or 0) * working_days * HOURS_PER_DAY
    return terms.basic_salary


def absence_deduction(terms: SalaryTerms, absence_days: Decimal) -> int:
    """Monthly pay loses 1/21 of the basic salary per absent day; daily
    and hourly pay already count only the days worked."""
    if terms.payment_type != PaymentType.monthly or not absence_days:
        return 0
    return floor_yen(Decimal(terms.basic_salary) / STANDARD_WORKING_DAYS * Decimal(absence_days))


def monthly_income_tax(taxable: int, dependents: int = 0) -> int:
    """Withholding for one month of *taxable* pay (after social insurance).

    The month is annualised, the basic and dependant deductions are taken
    off, the progressive rate is applied and the result is spread back
    over twelve months. The 2.1% reconstruction surtax is added on top.
    """
    annual = taxable * 12 - BASIC_DEDUCTION - max(dependents, 0) * DEPENDENT_DEDUCTION
    if annual <= 0:
        return 0
    for upper, rate, quick_deduction in INCOME_TAX_BRACKETS:
        if upper is None or annual <= upper:
            break
    monthly = max(floor_yen((annual * rate - quick_deduction) / 12), 0)
    return monthly + floor_yen(monthly * RECONSTRUCTION_TAX_RATE)


def calculate_pay(
    terms: SalaryTerms,
    attendance: AttendanceFigures,
    *,
    allowances: Optional[dict[str, int]] = None,
    deductions: Optional[dict[str, int]] = None,
    grade: Optional[GradeAmounts] = None,
) -> PayCalculation:
    allowances = dict(allowances or {})
    deductions = dict(deductions or {})

    rate = hourly_rate(terms)
    overtime = floor_yen(rate * Decimal(attendance.overtime_hours) * OVERTIME_RATE)
    late_night = floor_yen(rate * Decimal(attendance.late_night_hours) * LATE_NIGHT_RATE)
    holiday = floor_yen(rate * Decimal(attendance.holiday_work_hours) * HOLIDAY_RATE)

    basic = base_pay(terms, attendance.working_days)
    absence = absence_deduction(terms, attendance.absence_days)
    total_allowances = sum(allowances.values())
    gross = basic - absence + total_allowances + overtime + late_night + holiday

    if grade is not None:
        health, pension = grade.health, grade.pension
    else:
        health = floor_yen(gross * HEALTH_INSURANCE_RATE)
        pension = floor_yen(gross * PENSION_INSURANCE_RATE)
    employment = floor_yen(gross * terms.employment_insurance_rate)

    income_tax = monthly_income_tax(gross - health - pension - employment, terms.dependent_count)
    other = sum(deductions.values())
    total_deductions = (
        health + pension + employment + income_tax + terms.resident_tax_amount + other
    )

    return PayCalculation(
        basic_salary=basic,
        overtime_allowance=overtime,
        late_night_allowance=late_night,
        holiday_allowance=holiday,
        absence_deduction=absence,
        allowances=allowances,
        total_allowances=total_allowances,
        gross_pay=gross,
        health_insurance=health,
        pension_insurance=pension,
        employment_insurance=employment,
        income_tax=income_tax,
        resident_tax=terms.resident_tax_amount,
        deductions=deductions,
        other_deductions=other,
        total_deductions=total_deductions,
        net_pay=gross - total_deductions,
        attendance=attendance,
    )
