"""
bqcgen/docgen/record.py

Procurement record snapshot consumed by the document pipeline.

The record is a flat dataclass whose attribute names match the database
columns in bqcgen/models.py, so one field table drives:
- from_payload(): camelCase JSON posted by the form -> ProcurementRecord
- to_payload():   ProcurementRecord -> camelCase JSON
- normalize():    fallback text ("N/A") for empty narrative fields

IMPORTANT:
- Numbers arriving from the client are never trusted. Missing, empty or
  non-numeric values become 0.0 so NaN/None never reach the calculator.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

GOODS = "Goods"
SERVICE = "Service"
WORKS = "Works"
TENDER_TYPES = (GOODS, SERVICE, WORKS)

# Wire values used by the form ("LCS" = single estimate).
SINGLE_ESTIMATE = "LCS"
LOT_WISE = "Lot-wise"

DIVISIBLE = "Divisible"
NON_DIVISIBLE = "Non-Divisible"

NOT_AVAILABLE = "N/A"

DEFAULT_NOTE_TO = "CHIEF PROCUREMENT OFFICER, CPO (M)"
DEFAULT_MANUFACTURER_TYPES = ["Original Equipment Manufacturer"]

_METHODOLOGY_ALIASES = {
    "lcs": SINGLE_ESTIMATE,
    "least cash outflow": SINGLE_ESTIMATE,
    "single-estimate": SINGLE_ESTIMATE,
    "single estimate": SINGLE_ESTIMATE,
    "lot-wise": LOT_WISE,
    "lot wise": LOT_WISE,
    "lotwise": LOT_WISE,
}

_TENDER_TYPE_ALIASES = {
    "goods": GOODS,
    "service": SERVICE,
    "services": SERVICE,
    "works": WORKS,
}

_TRUE_STRINGS = {"1", "true", "yes", "on", "y"}


# ---------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------
def to_number(value: Any) -> float:
    """Coerce client input to a finite float (missing/invalid -> 0.0)."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        raw = str(value).strip().replace(",", "")
        if raw == "":
            return 0.0
        try:
            number = float(raw)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def to_text_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, (list, tuple, set)):
        return [to_text(value)]
    return [to_text(item) for item in value if to_text(item)]


def normalize_methodology(value: Any) -> str:
    """Map every accepted spelling onto SINGLE_ESTIMATE / LOT_WISE."""
    key = to_text(value).lower()
    return _METHODOLOGY_ALIASES.get(key, SINGLE_ESTIMATE)


def normalize_tender_type(value: Any) -> str:
    key = to_text(value).lower()
    return _TENDER_TYPE_ALIASES.get(key, GOODS)


def normalize_divisibility(value: Any) -> str:
    return DIVISIBLE if to_text(value).lower() == "divisible" else NON_DIVISIBLE


_COERCE = {
    "str": to_text,
    "num": to_number,
    "bool": to_bool,
    "list": to_text_list,
    "methodology": normalize_methodology,
    "tender_type": normalize_tender_type,
    "divisibility": normalize_divisibility,
}


# ---------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ExplanatoryNote:
    """A toggleable free-text note holding inline HTML."""

    enabled: bool
    html: str

    @property
    def is_active(self) -> bool:
        return self.enabled and bool(self.html.strip())


@dataclass(frozen=True)
class Signatory:
    role: str
    name: str
    designation: str


@dataclass
class SupplyingCapacity:
    calculated: float = 30.0
    final: float = 30.0
    mse_adjusted: Optional[float] = None

    @classmethod
    def from_payload(cls, value: Any) -> "SupplyingCapacity":
        if isinstance(value, dict):
            mse = value.get("mseAdjusted")
            return cls(
                calculated=to_number(value.get("calculated", 30)),
                final=to_number(value.get("final", 30)),
                mse_adjusted=None if mse in (None, "") else to_number(mse),
            )
        if value in (None, ""):
            return cls()
        number = to_number(value)
        return cls(calculated=number, final=number)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "calculated": self.calculated,
            "final": self.final,
            "mseAdjusted": self.mse_adjusted,
        }


@dataclass
class LotRecord:
    """One independently evaluated lot (lot-wise methodology)."""

    lot_key: str = ""
    lot_number: str = ""
    description: str = ""
    cec_estimate_incl_gst: float = 0.0
    cec_estimate_excl_gst: float = 0.0
    contract_period_months: float = 12.0
    has_amc: bool = False
    amc_value: float = 0.0
    amc_period: str = ""
    mse_relaxation: bool = False
    quantity_supplied: float = 0.0

    @property
    def amc_deduction(self) -> float:
        return self.amc_value if self.has_amc else 0.0


LOT_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("lot_key", "id", "str"),
    ("lot_number", "lotNumber", "str"),
    ("description", "description", "str"),
    ("cec_estimate_incl_gst", "cecEstimateInclGst", "num"),
    ("cec_estimate_excl_gst", "cecEstimateExclGst", "num"),
    ("contract_period_months", "contractPeriodMonths", "num"),
    ("has_amc", "hasAmc", "bool"),
    ("amc_value", "amcValue", "num"),
    ("amc_period", "amcPeriod", "str"),
    ("mse_relaxation", "mseRelaxation", "bool"),
    ("quantity_supplied", "quantitySupplied", "num"),
)


@dataclass
class ProcurementRecord:
    """Snapshot of one BQC form submission."""

    id: Optional[int] = None
    user_id: Optional[int] = None
    ref_number: str = ""

    group_name: str = "1 - LPG"
    subject: str = ""
    item_name: str = ""
    tender_description: str = ""
    pr_reference: str = ""
    note_to: str = DEFAULT_NOTE_TO

    tender_type: str = GOODS
    evaluation_methodology: str = SINGLE_ESTIMATE
    divisibility: str = NON_DIVISIBLE
    tender_platform: str = "GeM"

    cec_estimate_incl_gst: float = 0.0
    cec_estimate_excl_gst: float = 0.0
    cec_date: str = ""
    quantity_supplied: float = 0.0
    budget_details: str = ""
    correction_factor: float = 0.0
    annualized_value: float = 0.0

    has_amc: bool = False
    amc_value: float = 0.0
    amc_period: str = "AS per tender terms and conditions"
    has_om: bool = False
    om_value: float = 0.0
    om_period: str = "AS per tender terms and conditions"

    scope_of_work: str = ""
    contract_period_months: str = "1 year"
    contract_duration_years: float = 1.0
    delivery_period: str = "AS per tender terms and conditions"
    bid_validity_period: str = "90 days"
    warranty_period: str = "AS per tender terms and conditions"
    payment_terms: str = ""

    manufacturer_types: List[str] = field(default_factory=lambda: list(DEFAULT_MANUFACTURER_TYPES))
    supplying_capacity: SupplyingCapacity = field(default_factory=SupplyingCapacity)
    mse_relaxation: bool = False
    past_performance_mse_relaxation: bool = False
    similar_work_definition: str = ""
    escalation_clause: str = ""
    additional_details: str = ""
    commercial_evaluation_method: List[str] = field(default_factory=list)

    performance_security: float = 5.0
    has_performance_security: bool = False

    proposed_by: str = "XXXXX"
    proposed_by_designation: str = ""
    recommended_by: str = "XXXXX"
    recommended_by_designation: str = ""
    concurred_by: str = ""
    concurred_by_designation: str = ""
    approved_by: str = ""
    approved_by_designation: str = ""

    has_experience_note: bool = False
    experience_note: str = ""
    has_additional_note: bool = False
    additional_note: str = ""
    has_financial_note: bool = False
    financial_note: str = ""
    has_emd_note: bool = False
    emd_note: str = ""
    has_past_performance_note: bool = False
    past_performance_note: str = ""

    lots: List[LotRecord] = field(default_factory=list)

    # -----------------------------
    # Classification helpers
    # -----------------------------
    @property
    def is_lot_wise(self) -> bool:
        return self.evaluation_methodology == LOT_WISE

    @property
    def is_goods(self) -> bool:
        return self.tender_type == GOODS

    @property
    def is_service_or_works(self) -> bool:
        return self.tender_type in (SERVICE, WORKS)

    @property
    def is_divisible(self) -> bool:
        return self.divisibility == DIVISIBLE

    @property
    def description(self) -> str:
        """Best available one-line description of the tender."""
        return self.tender_description or self.item_name or self.subject

    def note(self, name: str) -> ExplanatoryNote:
        """Return the explanatory note pair for experience/additional/financial/emd/past_performance."""
        return ExplanatoryNote(
            enabled=bool(getattr(self, f"has_{name}_note")),
            html=getattr(self, f"{name}_note") or "",
        )

    def signatories(self) -> List[Signatory]:
        return [
            Signatory("Proposed by", self.proposed_by, self.proposed_by_designation),
            Signatory("Recommended by", self.recommended_by, self.recommended_by_designation),
            Signatory("Concurred by", self.concurred_by, self.concurred_by_designation),
            Signatory("Approved by", self.approved_by, self.approved_by_designation),
        ]


NOTE_NAMES = ("experience", "additional", "financial", "emd", "past_performance")

# (attribute, wire key, coercion kind)
RECORD_FIELDS: Tuple[Tuple[str, str, str], ...] = (
    ("ref_number", "refNumber", "str"),
    ("group_name", "groupName", "str"),
    ("subject", "subject", "str"),
    ("item_name", "itemName", "str"),
    ("tender_description", "tenderDescription", "str"),
    ("pr_reference", "prReference", "str"),
    ("note_to", "noteTo", "str"),
    ("tender_type", "tenderType", "tender_type"),
    ("evaluation_methodology", "evaluationMethodology", "methodology"),
    ("divisibility", "divisibility", "divisibility"),
    ("tender_platform", "tenderPlatform", "str"),
    ("cec_estimate_incl_gst", "cecEstimateInclGst", "num"),
    ("cec_estimate_excl_gst", "cecEstimateExclGst", "num"),
    ("cec_date", "cecDate", "str"),
    ("quantity_supplied", "quantitySupplied", "num"),
    ("budget_details", "budgetDetails", "str"),
    ("correction_factor", "correctionFactor", "num"),
    ("annualized_value", "annualizedValue", "num"),
    ("has_amc", "hasAmc", "bool"),
    ("amc_value", "amcValue", "num"),
    ("amc_period", "amcPeriod", "str"),
    ("has_om", "hasOm", "bool"),
    ("om_value", "omValue", "num"),
    ("om_period", "omPeriod", "str"),
    ("scope_of_work", "scopeOfWork", "str"),
    ("contract_period_months", "contractPeriodMonths", "str"),
    ("contract_duration_years", "contractDurationYears", "num"),
    ("delivery_period", "deliveryPeriod", "str"),
    ("bid_validity_period", "bidValidityPeriod", "str"),
    ("warranty_period", "warrantyPeriod", "str"),
    ("payment_terms", "paymentTerms", "str"),
    ("manufacturer_types", "manufacturerTypes", "list"),
    ("mse_relaxation", "mseRelaxation", "bool"),
    ("past_performance_mse_relaxation", "pastPerformanceMseRelaxation", "bool"),
    ("similar_work_definition", "similarWorkDefinition", "str"),
    ("escalation_clause", "escalationClause", "str"),
    ("additional_details", "additionalDetails", "str"),
    ("commercial_evaluation_method", "commercialEvaluationMethod", "list"),
    ("performance_security", "performanceSecurity", "num"),
    ("has_performance_security", "hasPerformanceSecurity", "bool"),
    ("proposed_by", "proposedBy", "str"),
    ("proposed_by_designation", "proposedByDesignation", "str"),
    ("recommended_by", "recommendedBy", "str"),
    ("recommended_by_designation", "recommendedByDesignation", "str"),
    ("concurred_by", "concurredBy", "str"),
    ("concurred_by_designation", "concurredByDesignation", "str"),
    ("approved_by", "approvedBy", "str"),
    ("approved_by_designation", "approvedByDesignation", "str"),
    ("has_experience_note", "hasExperienceExplanatoryNote", "bool"),
    ("experience_note", "experienceExplanatoryNote", "str"),
    ("has_additional_note", "hasAdditionalExplanatoryNote", "bool"),
    ("additional_note", "additionalExplanatoryNote", "str"),
    ("has_financial_note", "hasFinancialExplanatoryNote", "bool"),
    ("financial_note", "financialExplanatoryNote", "str"),
    ("has_emd_note", "hasEMDExplanatoryNote", "bool"),
    ("emd_note", "emdExplanatoryNote", "str"),
    ("has_past_performance_note", "hasPastPerformanceExplanatoryNote", "bool"),
    ("past_performance_note", "pastPerformanceExplanatoryNote", "str"),
)

# Empty narrative fields rendered as "N/A". Optional sections (escalation,
# additional details, notes) are left empty so the renderer can skip them.
NARRATIVE_FIELDS = (
    "tender_description",
    "pr_reference",
    "budget_details",
    "scope_of_work",
    "similar_work_definition",
    "cec_date",
    "tender_platform",
    "contract_period_months",
    "delivery_period",
    "bid_validity_period",
    "warranty_period",
    "amc_period",
    "om_period",
    "payment_terms",
    "group_name",
    "proposed_by",
    "recommended_by",
    "concurred_by",
    "approved_by",
)


# ---------------------------------------------------------------------
# Payload conversion
# ---------------------------------------------------------------------
def lot_from_payload(payload: Dict[str, Any], position: int = 0) -> LotRecord:
    values = {}
    for attr, key, kind in LOT_FIELDS:
        if key in payload:
            values[attr] = _COERCE[kind](payload.get(key))
    lot = LotRecord(**values)
    if not lot.lot_number:
        lot.lot_number = f"Lot {position + 1}"
    return lot


def lot_to_payload(lot: LotRecord) -> Dict[str, Any]:
    return {key: getattr(lot, attr) for attr, key, _ in LOT_FIELDS}


def from_payload(payload: Optional[Dict[str, Any]]) -> ProcurementRecord:
    """Build a ProcurementRecord from form JSON. Unknown keys are ignored."""
    payload = payload or {}
    values: Dict[str, Any] = {}
    for attr, key, kind in RECORD_FIELDS:
        if key in payload:
            values[attr] = _COERCE[kind](payload.get(key))

    record = ProcurementRecord(**values)

    raw_id = payload.get("id")
    record.id = int(raw_id) if isinstance(raw_id, int) or (isinstance(raw_id, str) and raw_id.isdigit()) else None

    if "supplyingCapacity" in payload:
        record.supplying_capacity = SupplyingCapacity.from_payload(payload.get("supplyingCapacity"))

    raw_lots = payload.get("lots")
    if not isinstance(raw_lots, list):
        raw_lots = []
    record.lots = [
        lot_from_payload(item, position)
        for position, item in enumerate(raw_lots)
        if isinstance(item, dict)
    ]
    return record


def to_payload(record: ProcurementRecord) -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": record.id}
    for attr, key, _ in RECORD_FIELDS:
        value = getattr(record, attr)
        data[key] = list(value) if isinstance(value, list) else value
    data["supplyingCapacity"] = record.supplying_capacity.to_payload()
    data["lots"] = [lot_to_payload(lot) for lot in record.lots]
    return data


# ---------------------------------------------------------------------
# Input Normalizer
# ---------------------------------------------------------------------
def normalize(record: ProcurementRecord) -> ProcurementRecord:
    """
    Return a render-ready copy of the record.

    - Empty narrative fields get the literal fallback "N/A".
    - A non-positive contract duration is treated as one year.
    - The inactive estimate source is cleared so totals never mix sources.
    """
    updates: Dict[str, Any] = {}
    for name in NARRATIVE_FIELDS:
        if not to_text(getattr(record, name)):
            updates[name] = NOT_AVAILABLE

    if record.contract_duration_years <= 0:
        updates["contract_duration_years"] = 1.0

    if record.is_lot_wise:
        updates["lots"] = [replace(lot) for lot in record.lots]
    else:
        updates["lots"] = []

    if not record.note_to:
        updates["note_to"] = DEFAULT_NOTE_TO

    return replace(record, **updates)
