"""
bqcgen/docgen/calculations.py

Derived-value calculator.

Every function here is pure: it reads a ProcurementRecord snapshot (or plain
numbers) and returns figures. Amounts are in Crore unless stated otherwise;
EMD is returned in Lakh.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Tuple

from .record import (
    GOODS,
    SERVICE,
    TENDER_TYPES,
    WORKS,
    LotRecord,
    ProcurementRecord,
    to_number,
)

# ---------------------------------------------------------------------
# Rates
# ---------------------------------------------------------------------
TURNOVER_RATE = 0.3
PAST_PERFORMANCE_RATE = 0.3
MSE_RELAXATION_PERCENT = 15
MSE_FACTOR = 0.85

EXPERIENCE_RATES: Tuple[Tuple[str, float], ...] = (
    ("a", 0.4),
    ("b", 0.5),
    ("c", 0.8),
)

# (inclusive upper bound in Crore, Goods EMD, Service/Works EMD), EMD in Lakh
EMD_MINIMUM_CRORE = 0.5
EMD_TIERS: Tuple[Tuple[float, float, float], ...] = (
    (1.0, 0.0, 1.0),
    (5.0, 2.5, 2.5),
    (10.0, 5.0, 5.0),
    (15.0, 7.5, 7.5),
    (25.0, 10.0, 10.0),
)
EMD_TOP_TIER = 20.0

STANDARD_PERFORMANCE_SECURITY = {GOODS: 5.0, SERVICE: 5.0, WORKS: 10.0}


# ---------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class Requirement:
    percentage: float
    value: float


@dataclass(frozen=True)
class ExperienceRequirements:
    option_a: Requirement
    option_b: Requirement
    option_c: Requirement
    mse_relaxed: bool = False

    def options(self) -> List[Tuple[str, Requirement]]:
        return [("a", self.option_a), ("b", self.option_b), ("c", self.option_c)]

    def unrelaxed(self) -> "ExperienceRequirements":
        """Values before the MSE relaxation, always derived by division."""
        if not self.mse_relaxed:
            return self
        return ExperienceRequirements(
            option_a=Requirement(self.option_a.percentage, self.option_a.value / MSE_FACTOR),
            option_b=Requirement(self.option_b.percentage, self.option_b.value / MSE_FACTOR),
            option_c=Requirement(self.option_c.percentage, self.option_c.value / MSE_FACTOR),
            mse_relaxed=False,
        )


@dataclass(frozen=True)
class TurnoverRequirement:
    amount: float
    percentage: float
    description: str
    annualized: bool = False


@dataclass(frozen=True)
class LotWiseTotals:
    total_cec_incl_gst: float
    total_cec_excl_gst: float
    total_past_performance: int


@dataclass(frozen=True)
class LotFigures:
    lot: LotRecord
    emd: float
    turnover: float
    past_performance_units: int
    experience: ExperienceRequirements


@dataclass(frozen=True)
class DerivedValues:
    """Everything the renderer needs, computed once per document."""

    emd: float
    turnover: TurnoverRequirement
    experience: ExperienceRequirements
    totals: LotWiseTotals
    past_performance_units: int
    past_performance_units_unrelaxed: int
    annualized_value: float
    standard_performance_security: float
    lots: Tuple[LotFigures, ...] = ()

    @property
    def total_lot_emd(self) -> float:
        return sum(item.emd for item in self.lots)

    @property
    def total_lot_turnover(self) -> float:
        return sum(item.turnover for item in self.lots)


# ---------------------------------------------------------------------
# Calculators
# ---------------------------------------------------------------------
def calculate_emd(amount, tender_type: str) -> float:
    """EMD in Lakh for an estimate in Crore. Upper tier bounds are inclusive."""
    if tender_type not in TENDER_TYPES:
        return 0.0
    amount = to_number(amount)
    if amount < EMD_MINIMUM_CRORE:
        return 0.0
    for upper, goods, others in EMD_TIERS:
        if amount <= upper:
            return goods if tender_type == GOODS else others
    return EMD_TOP_TIER


def effective_years(value) -> float:
    years = to_number(value)
    return years if years > 0 else 1.0


def _divisibility_factor(record: ProcurementRecord) -> float:
    if record.is_divisible:
        return 1 + to_number(record.correction_factor)
    return 1.0


def _turnover_base(record: ProcurementRecord) -> float:
    if record.is_lot_wise:
        return sum(lot.cec_estimate_incl_gst - lot.amc_deduction for lot in record.lots)
    if record.has_amc and record.amc_value > 0:
        return record.cec_estimate_incl_gst - record.amc_value
    return record.cec_estimate_excl_gst


def calculate_turnover(record: ProcurementRecord) -> TurnoverRequirement:
    factor = _divisibility_factor(record)
    percentage = TURNOVER_RATE * factor * 100
    amount = TURNOVER_RATE * factor * _turnover_base(record)

    years = effective_years(record.contract_duration_years)
    annualized = years > 1
    if annualized:
        amount = amount / years

    if record.is_divisible:
        description = f"{percentage:g}% of the estimated value (with correction factor)"
    else:
        description = f"{percentage:g}% of the estimated value"
    return TurnoverRequirement(
        amount=amount,
        percentage=percentage,
        description=description,
        annualized=annualized,
    )


def _experience_from_total(total: float, record: ProcurementRecord, relax: bool) -> ExperienceRequirements:
    factor = _divisibility_factor(record)
    years = effective_years(record.contract_duration_years)
    annualize = record.is_service_or_works and years > 1

    options = []
    for _, rate in EXPERIENCE_RATES:
        value = total * rate * factor
        if annualize:
            value = value / years
        if relax:
            value = value * MSE_FACTOR
        options.append(Requirement(percentage=rate * 100, value=value))

    return ExperienceRequirements(*options, mse_relaxed=relax)


def calculate_experience(record: ProcurementRecord) -> ExperienceRequirements:
    totals = calculate_lot_wise_totals(record)
    relax = record.is_service_or_works and not record.is_lot_wise and record.mse_relaxation
    return _experience_from_total(totals.total_cec_incl_gst, record, relax)


def past_performance(quantity, mse_relaxation: bool) -> float:
    """30% of the quantity, times 0.85 under MSE relaxation."""
    value = to_number(quantity) * PAST_PERFORMANCE_RATE
    if mse_relaxation:
        value = value * MSE_FACTOR
    return value


def round_units(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def past_performance_units(quantity, mse_relaxation: bool) -> int:
    return round_units(past_performance(quantity, mse_relaxation))


def past_performance_relaxed(record: ProcurementRecord) -> bool:
    return record.mse_relaxation or record.past_performance_mse_relaxation


def calculate_lot_wise_totals(record: ProcurementRecord) -> LotWiseTotals:
    relax = past_performance_relaxed(record)
    if record.is_lot_wise:
        return LotWiseTotals(
            total_cec_incl_gst=sum(lot.cec_estimate_incl_gst for lot in record.lots),
            total_cec_excl_gst=sum(lot.cec_estimate_excl_gst for lot in record.lots),
            total_past_performance=sum(
                past_performance_units(lot.quantity_supplied, lot.mse_relaxation or relax)
                for lot in record.lots
            ),
        )
    return LotWiseTotals(
        total_cec_incl_gst=record.cec_estimate_incl_gst,
        total_cec_excl_gst=record.cec_estimate_excl_gst,
        total_past_performance=past_performance_units(record.quantity_supplied, relax),
    )


def calculate_annualized_value(cec, contract_period_months) -> float:
    """Yearly value of an estimate spread over more than twelve months."""
    months = to_number(contract_period_months)
    if months <= 12:
        return to_number(cec)
    return to_number(cec) / (months / 12)


def standard_performance_security(tender_type: str) -> float:
    return STANDARD_PERFORMANCE_SECURITY.get(tender_type, 5.0)


def calculate_lot_figures(record: ProcurementRecord, lot: LotRecord) -> LotFigures:
    factor = _divisibility_factor(record)
    turnover = TURNOVER_RATE * factor * (lot.cec_estimate_incl_gst - lot.amc_deduction)
    years = effective_years(record.contract_duration_years)
    if years > 1:
        turnover = turnover / years

    return LotFigures(
        lot=lot,
        emd=calculate_emd(lot.cec_estimate_incl_gst, record.tender_type),
        turnover=turnover,
        past_performance_units=past_performance_units(
            lot.quantity_supplied, lot.mse_relaxation or past_performance_relaxed(record)
        ),
        experience=_experience_from_total(lot.cec_estimate_incl_gst, record, relax=False),
    )


def _unrelaxed_units(record: ProcurementRecord) -> int:
    if record.is_lot_wise:
        return sum(past_performance_units(lot.quantity_supplied, False) for lot in record.lots)
    return past_performance_units(record.quantity_supplied, False)


def calculate_derived(record: ProcurementRecord) -> DerivedValues:
    totals = calculate_lot_wise_totals(record)

    annualized = record.annualized_value
    if not annualized:
        months = 12 * effective_years(record.contract_duration_years)
        annualized = calculate_annualized_value(totals.total_cec_incl_gst, months)

    lots: Tuple[LotFigures, ...] = ()
    if record.is_lot_wise:
        lots = tuple(calculate_lot_figures(record, lot) for lot in record.lots)

    return DerivedValues(
        emd=calculate_emd(totals.total_cec_incl_gst, record.tender_type),
        turnover=calculate_turnover(record),
        experience=calculate_experience(record),
        totals=totals,
        past_performance_units=totals.total_past_performance,
        past_performance_units_unrelaxed=_unrelaxed_units(record),
        annualized_value=annualized,
        standard_performance_security=standard_performance_security(record.tender_type),
        lots=lots,
    )
