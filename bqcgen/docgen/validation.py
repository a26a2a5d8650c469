"""
bqcgen/docgen/validation.py

Form validation run before saving or generating. Operates on the raw
(un-normalized) record so empty fields are still detectable.
"""

from __future__ import annotations

from typing import Dict, List

from .record import ProcurementRecord

REQUIRED_FIELDS = (
    ("ref_number", "refNumber", "Reference Number"),
    ("tender_description", "tenderDescription", "Tender Description"),
    ("pr_reference", "prReference", "PR Reference"),
    ("budget_details", "budgetDetails", "Budget Details"),
    ("scope_of_work", "scopeOfWork", "Scope of Work"),
)


def _error(field: str, message: str) -> Dict[str, str]:
    return {"field": field, "message": message}


def _estimate_errors(record: ProcurementRecord) -> List[Dict[str, str]]:
    errors = []
    if record.is_lot_wise:
        if not any(lot.cec_estimate_incl_gst > 0 for lot in record.lots):
            errors.append(_error("lots", "At least one lot with a CEC Estimate greater than 0 is required"))
        for index, lot in enumerate(record.lots):
            if lot.cec_estimate_incl_gst < lot.cec_estimate_excl_gst:
                errors.append(
                    _error(
                        f"lots[{index}].cecEstimateInclGst",
                        f"{lot.lot_number}: CEC Estimate (incl. GST) must be greater than or equal to CEC Estimate (excl. GST)",
                    )
                )
        return errors

    if record.cec_estimate_incl_gst <= 0:
        errors.append(_error("cecEstimateInclGst", "CEC Estimate (incl. GST) must be greater than 0"))
    if record.cec_estimate_excl_gst <= 0:
        errors.append(_error("cecEstimateExclGst", "CEC Estimate (excl. GST) must be greater than 0"))
    if record.cec_estimate_incl_gst < record.cec_estimate_excl_gst:
        errors.append(
            _error(
                "cecEstimateInclGst",
                "CEC Estimate (incl. GST) must be greater than or equal to CEC Estimate (excl. GST)",
            )
        )
    return errors


def validate_record(record: ProcurementRecord) -> List[Dict[str, str]]:
    """Return a list of {field, message}; empty when the record is valid."""
    errors = []

    for attr, field, label in REQUIRED_FIELDS:
        if not str(getattr(record, attr) or "").strip():
            errors.append(_error(field, f"{label} is required"))

    errors.extend(_estimate_errors(record))

    if record.contract_duration_years <= 0:
        errors.append(_error("contractDurationYears", "Contract Period must be greater than 0"))

    if record.is_goods:
        if not record.delivery_period.strip():
            errors.append(_error("deliveryPeriod", "Delivery Period is required for Goods tenders"))
        if not record.warranty_period.strip():
            errors.append(_error("warrantyPeriod", "Warranty Period is required for Goods tenders"))
        if not record.manufacturer_types:
            errors.append(
                _error("manufacturerTypes", "At least one manufacturer type must be selected for Goods tenders")
            )
    elif not record.similar_work_definition.strip():
        errors.append(
            _error("similarWorkDefinition", "Definition of Similar Work is required for Service/Works tenders")
        )

    if record.has_amc:
        if not record.amc_period.strip():
            errors.append(_error("amcPeriod", "AMC Period is required when AMC is enabled"))
        if record.amc_value <= 0:
            errors.append(_error("amcValue", "AMC Value must be greater than 0 when AMC is enabled"))

    return errors
