"""
bqcgen/docgen/render.py

Document renderer: ProcurementRecord -> DocumentTree.

A RenderContext is resolved once per document (tender type, methodology,
MSE relaxation and note toggles). Each section builder receives the context
and returns its nodes; builders never re-derive figures themselves.

Builder variants are chosen by table lookup on the context:
- technical criteria: Goods vs Service/Works
- preamble estimate rows: single estimate vs lot-wise table
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional

from .calculations import (
    MSE_RELAXATION_PERCENT,
    DerivedValues,
    ExperienceRequirements,
    calculate_derived,
    past_performance_relaxed,
)
from .formatting import (
    crore_to_rupees,
    format_crore,
    format_date,
    format_emd,
    format_indian_rupees,
    format_percentage,
    format_turnover_amount,
    format_units,
)
from .nodes import (
    LEFT,
    DocumentTree,
    Node,
    Paragraph,
    Run,
    Table,
    cell,
    heading,
    para,
    text,
)
from .numbering import SectionNumbers, assign_section_numbers
from .record import NOT_AVAILABLE, ExplanatoryNote, ProcurementRecord, normalize
from .richtext import html_to_runs

GOODS_BRANCH = "goods"
SERVICE_WORKS_BRANCH = "service_works"

BIDDER_DEFINITION = (
    "*The definition of bidder is the entity which has a unique PAN (Permanent Account Number). "
    "All documents should be in the name of the bidder only (except in cases where the bidder is "
    "allowed to take the technical credentials of their OEM). Documents in the name of any legal "
    "entity other than the bidder, as defined above, shall not be accepted."
)
MSE_CIRCULAR = "Corp. Finance Circular MA.TEC.POL.CON.3A dated 26.10.2020"

EXPERIENCE_WORDING = {
    "a": "Three similar completed works each costing not less than the amount equal to",
    "b": "Two similar completed works each costing not less than the amount equal to",
    "c": "One similar completed work costing not less than the amount equal to",
}

LABEL_WIDTH = 2.2
VALUE_WIDTH = 4.3


# ---------------------------------------------------------------------
# Render context
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RenderContext:
    record: ProcurementRecord
    derived: DerivedValues
    sections: SectionNumbers
    branch: str
    lot_wise: bool
    past_performance_relaxed: bool
    experience_relaxed: bool
    notes: Dict[str, ExplanatoryNote]
    today: date

    @classmethod
    def resolve(cls, record: ProcurementRecord, today: Optional[date] = None) -> "RenderContext":
        """Normalize the record and compute everything the builders need."""
        record = normalize(record)
        derived = calculate_derived(record)
        notes = {}
        for name in ("experience", "additional", "financial", "emd", "past_performance"):
            note = record.note(name)
            if note.is_active:
                notes[name] = note
        return cls(
            record=record,
            derived=derived,
            sections=assign_section_numbers(record.has_performance_security),
            branch=GOODS_BRANCH if record.is_goods else SERVICE_WORKS_BRANCH,
            lot_wise=record.is_lot_wise,
            past_performance_relaxed=past_performance_relaxed(record),
            experience_relaxed=derived.experience.mse_relaxed,
            notes=notes,
            today=today or date.today(),
        )

    @property
    def description(self) -> str:
        return self.record.description or NOT_AVAILABLE


# ---------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------
def _row(label: str, value: str) -> list:
    return [cell(label, bold=True), cell(value)]


def _two_column_table(rows: list) -> Table:
    return Table(rows=rows, borders=True, widths=[LABEL_WIDTH, VALUE_WIDTH])


def _note_paragraphs(ctx: RenderContext, name: str, label: str = "Explanatory Note: ") -> List[Node]:
    note = ctx.notes.get(name)
    if note is None:
        return []
    return [Paragraph(runs=[text(label, bold=True)] + html_to_runs(note.html))]


def _blank() -> Paragraph:
    return Paragraph(runs=[Run(text="")], spacing_after=0)


def _experience_lines(experience: ExperienceRequirements) -> List[Node]:
    nodes: List[Node] = []
    options = experience.options()
    for index, (key, requirement) in enumerate(options):
        nodes.append(
            para(
                f"{key}. {EXPERIENCE_WORDING[key]} {format_percentage(requirement.percentage)} "
                f"of the estimated cost, i.e. {format_turnover_amount(requirement.value)}."
            )
        )
        if index < len(options) - 1:
            nodes.append(para("or", alignment=LEFT))
    return nodes


# ---------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------
def _subject(ctx: RenderContext) -> str:
    record = ctx.record
    if record.subject:
        return record.subject
    if record.is_goods:
        lead = f"SUPPLY OF ITEMS FOR '{ctx.description}'"
    else:
        lead = f"JOB OF '{ctx.description}'"
    return f"{lead}: APPROVAL OF BID QUALIFICATION CRITERIA AND FLOATING OF OPEN DOMESTIC TENDER."


def build_header(ctx: RenderContext) -> List[Node]:
    record = ctx.record
    table = Table(
        rows=[
            [cell(f"Ref: {record.ref_number or NOT_AVAILABLE}", bold=True), cell(f"Date: {format_date(ctx.today)}", bold=True)],
            [cell(f"NOTE TO: {record.note_to}", bold=True, span=2)],
            [cell(f"SUBJECT: {_subject(ctx)}", bold=True, span=2)],
        ],
        borders=True,
    )
    return [table, _blank()]


# ---------------------------------------------------------------------
# 1. Preamble
# ---------------------------------------------------------------------
def _single_estimate_rows(ctx: RenderContext) -> list:
    record = ctx.record
    incl = record.cec_estimate_incl_gst
    excl = record.cec_estimate_excl_gst
    rows = [
        _row(
            "CEC estimate (incl. of GST)/ Date",
            f"{format_crore(incl)} ({format_indian_rupees(crore_to_rupees(incl))}) / {format_date(record.cec_date)}",
        ),
        _row(
            "CEC estimate exclusive of GST",
            f"{format_crore(excl)} ({format_indian_rupees(crore_to_rupees(excl))})",
        ),
    ]
    # Multi-year contracts also state the yearly value the turnover is based on.
    if record.contract_duration_years > 1:
        annualized = ctx.derived.annualized_value
        rows.append(
            _row(
                "Annualized Value (incl. of GST)",
                f"{format_crore(annualized)} ({format_indian_rupees(crore_to_rupees(annualized))})",
            )
        )
    return rows


def _lot_wise_rows(ctx: RenderContext) -> list:
    totals = ctx.derived.totals
    return [
        _row(
            "CEC estimate (incl. of GST)/ Date",
            f"Total of all lots: {format_crore(totals.total_cec_incl_gst)} / {format_date(ctx.record.cec_date)}",
        ),
        _row(
            "CEC estimate exclusive of GST",
            f"Total of all lots: {format_crore(totals.total_cec_excl_gst)}",
        ),
        _row("Number of lots", str(len(ctx.derived.lots))),
    ]


_ESTIMATE_ROW_BUILDERS: Dict[bool, Callable[[RenderContext], list]] = {
    False: _single_estimate_rows,
    True: _lot_wise_rows,
}


def _lot_requirement_header(ctx: RenderContext) -> str:
    if ctx.branch == GOODS_BRANCH:
        return "Past Performance (Qty)"
    return "Experience (Option a / b / c)"


def _lot_requirement_value(ctx: RenderContext, figures) -> str:
    if ctx.branch == GOODS_BRANCH:
        return format_units(figures.past_performance_units)
    return " / ".join(format_turnover_amount(req.value) for _, req in figures.experience.options())


def build_lot_table(ctx: RenderContext) -> Table:
    """Per-lot figures with a totals row; only rendered in lot-wise mode."""
    rows = [
        [
            cell("Lot", bold=True),
            cell("CEC (incl. GST)", bold=True),
            cell("EMD", bold=True),
            cell("Annual Turnover", bold=True),
            cell(_lot_requirement_header(ctx), bold=True),
        ]
    ]
    for figures in ctx.derived.lots:
        lot = figures.lot
        label = lot.lot_number if not lot.description else f"{lot.lot_number}: {lot.description}"
        rows.append(
            [
                cell(label),
                cell(format_crore(lot.cec_estimate_incl_gst)),
                cell(format_emd(figures.emd)),
                cell(format_turnover_amount(figures.turnover)),
                cell(_lot_requirement_value(ctx, figures)),
            ]
        )

    if ctx.branch == GOODS_BRANCH:
        requirement_total = format_units(ctx.derived.totals.total_past_performance)
    else:
        requirement_total = "-"
    rows.append(
        [
            cell("Total", bold=True),
            cell(format_crore(ctx.derived.totals.total_cec_incl_gst), bold=True),
            cell(format_emd(ctx.derived.total_lot_emd), bold=True),
            cell(format_turnover_amount(ctx.derived.total_lot_turnover), bold=True),
            cell(requirement_total, bold=True),
        ]
    )
    return Table(rows=rows, borders=True, widths=[1.7, 1.2, 1.0, 1.3, 1.3])


def build_preamble(ctx: RenderContext) -> List[Node]:
    record = ctx.record
    rows = [
        _row("Tender Description", record.tender_description),
        _row("PR reference/ Email reference", record.pr_reference),
        _row("Type of Tender", record.tender_type),
        _row("Evaluation Methodology", "Lot-wise" if ctx.lot_wise else "Least Cash Outflow (LCS)"),
    ]
    rows.extend(_ESTIMATE_ROW_BUILDERS[ctx.lot_wise](ctx))
    rows.append(_row("Budget Details (WBS/ Revex)", record.budget_details))

    nodes: List[Node] = [
        heading(f"{ctx.sections.preamble}.\tPREAMBLE"),
        _two_column_table(rows),
    ]
    if ctx.lot_wise:
        nodes.append(para(text("Lot-wise details:", bold=True), alignment=LEFT))
        nodes.append(build_lot_table(ctx))
    nodes.append(
        para(
            text("Tender Platform: ", bold=True),
            text(
                f"It is proposed to float the open tender thru {record.tender_platform} in two part-bids "
                "system viz. Technical Bid (comprising of Bid-qualification criteria & Technical) and Price bid."
            ),
        )
    )
    nodes.append(_blank())
    return nodes


# ---------------------------------------------------------------------
# 2. Brief scope
# ---------------------------------------------------------------------
def build_scope(ctx: RenderContext) -> List[Node]:
    record = ctx.record
    contract_period = record.contract_period_months
    if record.has_amc:
        contract_period = f"{contract_period} including AMC/ CAMC ({record.amc_period})"

    rows = [
        _row("Brief Scope of Work / Supply Items", record.scope_of_work),
        _row("Contract Period", contract_period),
    ]
    if record.is_goods:
        rows.append(_row("Delivery Period of the Item", record.delivery_period))
        rows.append(_row("Warranty Period", record.warranty_period))
    if record.has_amc:
        rows.append(_row("AMC/ CAMC Period (No. of Years)", record.amc_period))
        rows.append(_row("AMC/ CAMC Value", format_crore(record.amc_value)))
    if record.has_om:
        rows.append(_row("O&M Period", record.om_period))
        rows.append(_row("O&M Value", format_crore(record.om_value)))
    rows.append(_row("Bid Validity Period", record.bid_validity_period))
    rows.append(
        _row("Payment Terms (if different from standard terms i.e within 30 days)", record.payment_terms)
    )

    return [
        heading(f"{ctx.sections.scope}.\tBRIEF SCOPE OF WORK/ SUPPLY ITEMS"),
        _two_column_table(rows),
        _blank(),
    ]


# ---------------------------------------------------------------------
# 3. Bid qualification criteria
# ---------------------------------------------------------------------
def _supplying_capacity_goods(ctx: RenderContext) -> List[Node]:
    derived = ctx.derived
    lead = "The bidder shall have experience of having successfully supplied minimum of "
    tail = (
        " of the annualized estimated quantity in any 12 continuous months during last 7 years in India "
        "or abroad, ending on last day of the month previous to the one in which tender is invited."
    )

    if ctx.lot_wise:
        nodes: List[Node] = [
            para(
                lead,
                text(f"the quantity indicated against each lot in the table at Sr. No. {ctx.sections.preamble}"),
                tail,
            )
        ]
        if ctx.past_performance_relaxed or any(f.lot.mse_relaxation for f in derived.lots):
            nodes.append(
                para(
                    f"For MSE bidders Relaxation of {MSE_RELAXATION_PERCENT}% on the supplying capacity "
                    f"has been applied to the lot-wise quantities as per {MSE_CIRCULAR}."
                )
            )
        return nodes

    if ctx.past_performance_relaxed:
        return [
            para(
                text("For Non-MSE bidders: ", bold=True),
                lead,
                text(format_units(derived.past_performance_units_unrelaxed), bold=True),
                tail,
            ),
            para(
                text("For MSE bidders: ", bold=True),
                lead,
                text(format_units(derived.past_performance_units), bold=True),
                tail,
            ),
            para(
                f"Relaxation of {MSE_RELAXATION_PERCENT}% on the supplying capacity for MSE bidders "
                f"shall be given as per {MSE_CIRCULAR}."
            ),
        ]

    return [para(lead, text(format_units(derived.past_performance_units), bold=True), tail)]


def build_goods_technical(ctx: RenderContext) -> List[Node]:
    record = ctx.record
    manufacturer_types = ", ".join(record.manufacturer_types) or NOT_AVAILABLE
    nodes: List[Node] = [
        heading("3.1.1\tFor GOODS:"),
        heading("a) Manufacturing Capability:"),
        para("Bidder* should be ", text(manufacturer_types, italic=True), " of the item being tendered."),
        para(BIDDER_DEFINITION),
        heading("b) Supplying Capacity / Past Performance:"),
    ]
    nodes.extend(_supplying_capacity_goods(ctx))
    nodes.extend(_note_paragraphs(ctx, "past_performance"))
    return nodes


def build_service_works_technical(ctx: RenderContext) -> List[Node]:
    record = ctx.record
    experience = ctx.derived.experience
    nodes: List[Node] = [
        heading("3.1.2\tBQC/PQC for Procurement of Works and Services:"),
        heading("I) Experience / Past performance / Technical Capability:"),
        para(
            "The bidder# should have experience of having successfully completed similar works during "
            "last 7 years ending last day of month previous to the one in which tender is floated should "
            "be either of the following: -"
        ),
    ]

    if ctx.lot_wise:
        nodes.extend(_experience_lines(experience))
        nodes.append(
            para(
                f"The values applicable to each lot are indicated in the table at Sr. No. {ctx.sections.preamble}. "
                "Bidders quoting for more than one lot shall meet the sum of the requirements of the lots quoted."
            )
        )
    elif ctx.experience_relaxed:
        nodes.append(para(text("For Non-MSE bidders:", bold=True), alignment=LEFT))
        nodes.extend(_experience_lines(experience.unrelaxed()))
        nodes.append(
            para(text(f"For MSE bidders (relaxation of {MSE_RELAXATION_PERCENT}% as per {MSE_CIRCULAR}):", bold=True), alignment=LEFT)
        )
        nodes.extend(_experience_lines(experience))
    else:
        nodes.extend(_experience_lines(experience))

    nodes.append(para(f'Definition of "similar work": {record.similar_work_definition}'))
    nodes.append(
        para(
            "# In case of Service contracts the term bidder may be suitably modified to take care of "
            "OEMs/ System Integrators/ Authorised Channel Partner etc."
        )
    )
    nodes.append(para(BIDDER_DEFINITION))
    nodes.extend(_note_paragraphs(ctx, "experience"))
    return nodes


_TECHNICAL_BUILDERS: Dict[str, Callable[[RenderContext], List[Node]]] = {
    GOODS_BRANCH: build_goods_technical,
    SERVICE_WORKS_BRANCH: build_service_works_technical,
}


def _turnover_paragraph(ctx: RenderContext) -> Paragraph:
    turnover = ctx.derived.turnover
    basis = "annualized estimated value" if turnover.annualized else "estimated value"
    if ctx.lot_wise:
        return para(
            text("3.2.1\tAVERAGE ANNUAL TURNOVER: ", bold=True),
            "The average annual turnover of the Bidder for last three audited accounting years shall be "
            f"equal to or more than {format_percentage(turnover.percentage)} of the {basis} of each lot quoted, "
            f"as indicated in the table at Sr. No. {ctx.sections.preamble} "
            f"(all lots: {format_turnover_amount(turnover.amount)}).",
        )
    return para(
        text("3.2.1\tAVERAGE ANNUAL TURNOVER: ", bold=True),
        "The average annual turnover of the Bidder for last three audited accounting years shall be "
        f"equal to or more than {format_percentage(turnover.percentage)} of the {basis} i.e. ",
        text(format_turnover_amount(turnover.amount), bold=True),
        ".",
    )


def build_bqc(ctx: RenderContext) -> List[Node]:
    nodes: List[Node] = [
        heading(f"{ctx.sections.bqc}.\tBID QUALIFICATION CRITERIA (BQC)"),
        para(
            "BPCL would like to qualify vendors for undertaking the above work as indicated in the brief "
            "scope. Detailed bid qualification criteria for short listing vendors shall be as follows:"
        ),
        heading("3.1\tTECHNICAL CRITERIA"),
    ]
    nodes.extend(_TECHNICAL_BUILDERS[ctx.branch](ctx))

    nodes.append(heading("3.2\tFINANCIAL CRITERIA"))
    nodes.append(_turnover_paragraph(ctx))
    nodes.append(para(text("Explanatory Notes:", bold=True), alignment=LEFT))
    nodes.append(
        para("i. Average annual turnover values in-line with CTE Office Memorandum No. 12-02-1-CTE-6 dated 17th Dec 2002.")
    )
    if ctx.record.has_amc:
        nodes.append(
            para(
                "ii. The estimated cost towards AMC/CAMC has been excluded while arriving at the financial "
                "criteria (Annual Turnover) for the tender."
            )
        )
    nodes.extend(_note_paragraphs(ctx, "financial"))
    nodes.append(
        para(
            text("3.2.2\tNET WORTH: ", bold=True),
            "The bidder should have positive net worth as per the latest audited financial statement.",
        )
    )
    nodes.append(
        para(
            "Documents Required: Please refer the ITB (Instruction to Bidders) which mentions the documents "
            "to be submitted by bidders for meeting the above Technical and Financial criteria."
        )
    )

    nodes.append(heading("3.3\tBIDS MAY BE SUBMITTED BY"))
    nodes.append(
        para(
            text("3.3.1\t", bold=True),
            "An entity (domestic bidder) should have completed 3 financial years of existence as on original "
            "due date of tender since date of commencement of business and shall fulfil each BQC eligibility "
            "criteria as mentioned above.",
        )
    )
    nodes.append(
        para(
            text("3.3.2\t", bold=True),
            "JV/Consortium bids will not be accepted (i.e. Qualification on the strength of the JV "
            "Partners/Consortium Members /Subsidiaries / Group members will not be accepted)",
        )
    )
    nodes.extend(_note_paragraphs(ctx, "additional", label="Additional Explanatory Note: "))
    nodes.append(_blank())
    return nodes


# ---------------------------------------------------------------------
# 4 - 6. Other terms, evaluation, EMD
# ---------------------------------------------------------------------
def build_other_terms(ctx: RenderContext) -> List[Node]:
    record = ctx.record
    nodes: List[Node] = [heading(f"{ctx.sections.other_terms}.\tOTHER TERMS")]
    items = []
    if record.escalation_clause:
        items.append(("Escalation/ De-escalation Clause: ", record.escalation_clause))
    if record.additional_details:
        items.append(("Additional Details: ", record.additional_details))
    if record.commercial_evaluation_method:
        items.append(("Commercial Evaluation: ", "; ".join(record.commercial_evaluation_method)))

    if not items:
        nodes.append(para("As per standard tender terms and conditions."))
    for index, (label, value) in enumerate(items):
        nodes.append(para(text(f"{chr(ord('a') + index)}) {label}", bold=True), value))
    return nodes


def build_evaluation(ctx: RenderContext) -> List[Node]:
    if ctx.lot_wise:
        body = (
            "This tender is being invited through Open (Domestic) tender as two-part bid. The bids shall be "
            "evaluated lot-wise: each lot shall be evaluated and awarded independently to the techno-commercially "
            "qualified bidder with the least cash outflow for that lot."
        )
    else:
        body = (
            "This tender is being invited through Open (Domestic) tender as two-part bid. The commercial "
            "evaluation shall be on Least Cash Outflow (LCS) basis for the entire scope of the tender."
        )
    return [
        heading(f"{ctx.sections.evaluation}.\tEVALUATION METHODOLOGY"),
        para(body),
    ]


def build_emd(ctx: RenderContext) -> List[Node]:
    if ctx.lot_wise:
        sentence = (
            "Bidders are required to provide Earnest Money Deposit for each lot quoted as indicated in the "
            f"table at Sr. No. {ctx.sections.preamble} (all lots: {format_emd(ctx.derived.total_lot_emd)})."
        )
    else:
        sentence = (
            f"Bidders are required to provide Earnest Money Deposit equivalent to {format_emd(ctx.derived.emd)} "
            "for the tender."
        )
    nodes: List[Node] = [
        heading(f"{ctx.sections.emd}.\tEARNEST MONEY DEPOSIT (EMD)"),
        para(sentence),
        para("EMD exemption shall be as per General Terms & Conditions of GeM (applicable for GeM tenders)/ MSE policy."),
    ]
    nodes.extend(_note_paragraphs(ctx, "emd"))
    return nodes


def build_performance_security(ctx: RenderContext) -> List[Node]:
    number = ctx.sections.performance_security
    if number is None:
        return []
    record = ctx.record
    standard = ctx.derived.standard_performance_security
    nodes: List[Node] = [heading(f"{number}.\tPERFORMANCE SECURITY (if at variance with the ITB clause)")]
    if record.performance_security and record.performance_security != standard:
        nodes.append(
            para(f"Performance Security {format_percentage(record.performance_security)} (approved by the competent authority).")
        )
        nodes.append(
            para(
                text("Note: ", bold=True),
                f"The performance security percentage of {format_percentage(record.performance_security)} is different "
                f"from the standard percentage of {format_percentage(standard)} for {record.tender_type} tenders.",
            )
        )
    else:
        nodes.append(
            para(f"Performance Security {format_percentage(standard)} as per standard terms (5% for Goods & Services, 10% for Works).")
        )
    return nodes


# ---------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------
def build_approval(ctx: RenderContext) -> List[Node]:
    sections = ctx.sections
    subject = "Supply of items" if ctx.branch == GOODS_BRANCH else "job"
    security = ""
    if sections.performance_security is not None:
        security = f" and Performance Security as per Sr. No. {sections.performance_security}"
    return [
        heading(f"{sections.approval}.\tAPPROVAL REQUIRED"),
        para(
            "In view of above, approval is requested for the ",
            text(f"{subject} - {ctx.description}", bold=True),
            " for:",
        ),
        para(
            text("i.\t", bold=True),
            f"Bid Qualification Criteria as per Sr. No. {sections.bqc}, as per Clause 13.8 of Guidelines "
            "for procurement of Goods and Contract Services.",
        ),
        para(
            text("ii.\t", bold=True),
            f"Inviting bids (two-part bid) through a Domestic Open Tender with evaluation as per Sr. No. {sections.evaluation}.",
        ),
        para(
            text("iii.\t", bold=True),
            f"Earnest Money Deposit as per Sr. No. {sections.emd} above{security}.",
        ),
        _blank(),
    ]


def build_signatures(ctx: RenderContext) -> List[Node]:
    signatories = ctx.record.signatories()
    return [
        Table(
            rows=[
                [cell(s.role, bold=True) for s in signatories],
                [cell(s.name or NOT_AVAILABLE) for s in signatories],
                [cell(s.designation) for s in signatories],
            ],
            borders=False,
            widths=[1.6, 1.6, 1.6, 1.6],
        )
    ]


SECTION_BUILDERS: List[Callable[[RenderContext], List[Node]]] = [
    build_header,
    build_preamble,
    build_scope,
    build_bqc,
    build_other_terms,
    build_evaluation,
    build_emd,
    build_performance_security,
    build_approval,
    build_signatures,
]


def render_document(record: ProcurementRecord, today: Optional[date] = None) -> DocumentTree:
    ctx = RenderContext.resolve(record, today=today)
    nodes: List[Node] = []
    for builder in SECTION_BUILDERS:
        nodes.extend(builder(ctx))
    return DocumentTree(nodes=nodes, title=f"BQC {ctx.record.ref_number}".strip())
