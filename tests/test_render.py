from datetime import date

import pytest

from bqcgen.docgen.nodes import Table
from bqcgen.docgen.record import from_payload
from bqcgen.docgen.render import (
    GOODS_BRANCH,
    SERVICE_WORKS_BRANCH,
    RenderContext,
    build_lot_table,
    render_document,
)

TODAY = date(2024, 3, 5)


def _render(payload):
    return render_document(from_payload(payload), today=TODAY)


def _headings(tree):
    return [p.text for p in tree.paragraphs() if p.text[:1].isdigit() and ".\t" in p.text]


def test_goods_document_end_to_end(goods_payload):
    tree = _render(goods_payload)
    body = tree.text

    assert "Ref: CPO-2024-001" in body
    assert "Date: 05/03/2024" in body
    assert "Bidders are required to provide Earnest Money Deposit equivalent to Rs. 2.5 Lakh for the tender." in body
    assert "Rs. 0.54 Crore" in body
    assert "30 Units" in body
    assert "For GOODS" in body
    assert "Original Equipment Manufacturer, Authorized Dealer" in body
    assert "BQC/PQC for Procurement of Works and Services" not in body
    assert tree.title == "BQC CPO-2024-001"


def test_section_numbers_without_performance_security(goods_payload):
    headings = _headings(_render(goods_payload))
    assert headings[0] == "1.\tPREAMBLE"
    assert headings[-1] == "7.\tAPPROVAL REQUIRED"
    assert not any("PERFORMANCE SECURITY" in h for h in headings)


def test_performance_security_section_is_numbered_and_referenced(goods_payload):
    goods_payload.update(hasPerformanceSecurity=True, performanceSecurity=3)
    tree = _render(goods_payload)
    headings = _headings(tree)

    assert headings[-2].startswith("7.\tPERFORMANCE SECURITY")
    assert headings[-1] == "8.\tAPPROVAL REQUIRED"
    assert "Earnest Money Deposit as per Sr. No. 6 above and Performance Security as per Sr. No. 7." in tree.text
    assert "different from the standard percentage of 5%" in tree.text


def test_approval_references_sections(goods_payload):
    body = _render(goods_payload).text
    assert "Bid Qualification Criteria as per Sr. No. 3" in body
    assert "evaluation as per Sr. No. 5." in body
    assert "Earnest Money Deposit as per Sr. No. 6 above." in body


def test_service_document_uses_experience_criteria(service_payload):
    body = _render(service_payload).text
    assert "BQC/PQC for Procurement of Works and Services" in body
    assert "40% of the estimated cost, i.e. Rs. 4.00 Crore" in body
    assert "80% of the estimated cost, i.e. Rs. 8.00 Crore" in body
    assert 'Definition of "similar work": Housekeeping services at industrial premises' in body
    assert "For GOODS" not in body


def test_mse_relaxation_renders_both_bidder_blocks(service_payload):
    service_payload["mseRelaxation"] = True
    body = _render(service_payload).text
    assert "For Non-MSE bidders:" in body
    assert "For MSE bidders" in body
    assert "i.e. Rs. 4.00 Crore" in body
    assert "i.e. Rs. 3.40 Crore" in body


def test_goods_past_performance_relaxation(goods_payload):
    goods_payload["pastPerformanceMseRelaxation"] = True
    body = _render(goods_payload).text
    assert "For Non-MSE bidders: " in body
    assert "30 Units" in body
    assert "26 Units" in body


def test_explanatory_notes_follow_toggles(goods_payload):
    goods_payload.update(
        hasFinancialExplanatoryNote=True,
        financialExplanatoryNote="Turnover <b>relaxed</b>",
        hasEMDExplanatoryNote=False,
        emdExplanatoryNote="should not appear",
        hasAdditionalExplanatoryNote=True,
        additionalExplanatoryNote="   ",
    )
    body = _render(goods_payload).text
    assert "Explanatory Note: Turnover relaxed" in body
    assert "should not appear" not in body
    assert "Additional Explanatory Note:" not in body


def test_amc_adds_scope_rows_and_turnover_note(goods_payload):
    goods_payload.update(hasAmc=True, amcValue=0.4, amcPeriod="3 years")
    body = _render(goods_payload).text
    assert "AMC/ CAMC Value" in body
    assert "The estimated cost towards AMC/CAMC has been excluded" in body
    assert "Rs. 0.40 Crore" in body
    assert "i.e. Rs. 0.48 Crore" in body


def test_multi_year_contract_states_annualized_value(goods_payload):
    assert "Annualized Value" not in _render(goods_payload).text

    goods_payload["contractDurationYears"] = 2
    body = _render(goods_payload).text
    assert "Annualized Value (incl. of GST)" in body
    assert "Rs. 1.00 Crore (₹ 1,00,00,000)" in body

    goods_payload["annualizedValue"] = 1.5
    assert "Rs. 1.50 Crore (₹ 1,50,00,000)" in _render(goods_payload).text

def test_empty_fields_render_as_not_available():
    body = render_document(from_payload({"refNumber": "R-1"}), today=TODAY).text
    assert "N/A" in body
    assert "Earnest Money Deposit equivalent to Nil" in body


def test_context_selects_branch(goods_payload, service_payload):
    assert RenderContext.resolve(from_payload(goods_payload), TODAY).branch == GOODS_BRANCH
    assert RenderContext.resolve(from_payload(service_payload), TODAY).branch == SERVICE_WORKS_BRANCH


def test_lot_table_has_row_per_lot_and_total(lot_wise_payload):
    ctx = RenderContext.resolve(from_payload(lot_wise_payload), TODAY)
    table = build_lot_table(ctx)

    assert isinstance(table, Table)
    assert len(table.rows) == 1 + 2 + 1
    total = [c.text for c in table.rows[-1]]
    assert total[0] == "Total"
    assert total[1] == "Rs. 4.20 Crore"
    assert total[2] == "Rs. 5 Lakh"
    assert total[4] == "45 Units"
    assert table.rows[1][0].text == "Lot 1: North region"


def test_lot_wise_document_mentions_lots(lot_wise_payload):
    body = _render(lot_wise_payload).text
    assert "Lot-wise details:" in body
    assert "Total of all lots: Rs. 4.20 Crore" in body
    assert "each lot shall be evaluated and awarded independently" in body
    assert "(all lots: Rs. 5 Lakh)" in body


@pytest.mark.parametrize("tender_type", ["Goods", "Service", "Works"])
def test_every_tender_type_renders(goods_payload, tender_type):
    goods_payload["tenderType"] = tender_type
    tree = _render(goods_payload)
    assert len(_headings(tree)) == 7
