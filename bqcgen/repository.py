"""
bqcgen/repository.py

Persistence handle for BQC entries.

A BQCRepository wraps one SQLAlchemy session and is created per request by
the route that needs it. It never commits: the calling route controls
transaction boundaries (flush -> audit -> commit).

Record <-> row mapping relies on BQCEntry columns sharing their names with
ProcurementRecord attributes.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, or_

from .docgen.calculations import calculate_lot_wise_totals
from .docgen.record import (
    LOT_FIELDS,
    LOT_WISE,
    RECORD_FIELDS,
    SINGLE_ESTIMATE,
    LotRecord,
    ProcurementRecord,
    SupplyingCapacity,
)
from .models import BQCEntry, BQCLot, User

# Financial buckets over total CEC incl. GST, in Crore (1 Lakh = 0.01 Cr).
VALUE_BUCKETS = (
    ("Under 1 Lakh", None, 0.01),
    ("1-10 Lakh", 0.01, 0.1),
    ("10 Lakh-1 Crore", 0.1, 1.0),
    ("Above 1 Crore", 1.0, None),
)

DATE_GROUPINGS = ("day", "week", "month")

EXPORT_COLUMNS = (
    ("id", "ID"),
    ("refNumber", "Ref Number"),
    ("groupName", "Group"),
    ("subject", "Subject"),
    ("tenderDescription", "Tender Description"),
    ("tenderType", "Tender Type"),
    ("evaluationMethodology", "Evaluation Methodology"),
    ("cecEstimateInclGst", "CEC (Incl GST)"),
    ("cecEstimateExclGst", "CEC (Excl GST)"),
    ("createdAt", "Created At"),
    ("username", "Username"),
    ("fullName", "Full Name"),
)


@dataclass
class EntryFilters:
    """Admin filters; every field is optional."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    group_name: str = ""
    tender_type: str = ""
    search: str = ""

    @classmethod
    def from_args(cls, args) -> "EntryFilters":
        return cls(
            start_date=_parse_day(args.get("startDate")),
            end_date=_parse_day(args.get("endDate")),
            group_name=(args.get("groupName") or "").strip(),
            tender_type=(args.get("tenderType") or "").strip(),
            search=(args.get("search") or "").strip(),
        )


def _parse_day(value: Optional[str]) -> Optional[datetime]:
    value = (value or "").strip()
    if not value:
        return None
    try:
        return datetime.strptime(value[:10], "%Y-%m-%d")
    except ValueError:
        return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _round2(value: Optional[float]) -> float:
    return round(float(value or 0.0), 2)


def _bucket_condition(column, low: Optional[float], high: Optional[float]):
    conditions = []
    if low is not None:
        conditions.append(column >= low)
    if high is not None:
        conditions.append(column < high)
    return and_(*conditions)


class BQCRepository:
    def __init__(self, session):
        self.session = session

    # -----------------------------------------------------------------
    # Entry CRUD
    # -----------------------------------------------------------------
    def find_by_ref(self, user_id: int, ref_number: str) -> Optional[BQCEntry]:
        return (
            self.session.query(BQCEntry)
            .filter(BQCEntry.user_id == user_id, BQCEntry.ref_number == ref_number)
            .first()
        )

    def get_entry(self, user_id: int, entry_id: int) -> Optional[BQCEntry]:
        return (
            self.session.query(BQCEntry)
            .filter(BQCEntry.id == entry_id, BQCEntry.user_id == user_id)
            .first()
        )

    def upsert(self, user_id: int, ref_number: str, record: ProcurementRecord) -> int:
        """Insert or update the entry keyed on (user_id, ref_number); returns its id."""
        entry = self.find_by_ref(user_id, ref_number)
        if entry is None:
            entry = BQCEntry(user_id=user_id, ref_number=ref_number)
            self.session.add(entry)

        self._apply_record(entry, record)
        entry.ref_number = ref_number
        entry.updated_at = datetime.utcnow()
        self.session.flush()
        return entry.id

    def fetch(self, user_id: int, entry_id: int) -> Optional[ProcurementRecord]:
        entry = self.get_entry(user_id, entry_id)
        if entry is None:
            return None
        return self.to_record(entry)

    def list(self, user_id: int) -> List[Dict[str, Any]]:
        entries = (
            self.session.query(BQCEntry)
            .filter(BQCEntry.user_id == user_id)
            .order_by(BQCEntry.created_at.desc(), BQCEntry.id.desc())
            .all()
        )
        return [
            {
                "id": entry.id,
                "refNumber": entry.ref_number,
                "description": entry.tender_description or entry.item_name or entry.subject or "",
                "tenderType": entry.tender_type,
                "createdAt": _iso(entry.created_at),
                "updatedAt": _iso(entry.updated_at),
            }
            for entry in entries
        ]

    def delete(self, user_id: int, entry_id: int) -> bool:
        entry = self.get_entry(user_id, entry_id)
        if entry is None:
            return False
        self.session.delete(entry)
        self.session.flush()
        return True

    # -----------------------------------------------------------------
    # Mapping
    # -----------------------------------------------------------------
    def _apply_record(self, entry: BQCEntry, record: ProcurementRecord) -> None:
        for attr, _, _ in RECORD_FIELDS:
            value = getattr(record, attr)
            setattr(entry, attr, list(value) if isinstance(value, list) else value)
        entry.supplying_capacity = record.supplying_capacity.to_payload()

        totals = calculate_lot_wise_totals(record)
        entry.total_cec_incl_gst = totals.total_cec_incl_gst
        entry.total_cec_excl_gst = totals.total_cec_excl_gst

        entry.lots = [
            BQCLot(position=position, **{attr: getattr(lot, attr) for attr, _, _ in LOT_FIELDS})
            for position, lot in enumerate(record.lots)
        ]

    @staticmethod
    def to_record(entry: BQCEntry) -> ProcurementRecord:
        values = {}
        for attr, _, _ in RECORD_FIELDS:
            value = getattr(entry, attr)
            if value is not None:
                values[attr] = list(value) if isinstance(value, list) else value
        record = ProcurementRecord(**values)
        record.id = entry.id
        record.user_id = entry.user_id
        record.supplying_capacity = SupplyingCapacity.from_payload(entry.supplying_capacity)
        record.lots = [
            LotRecord(**{attr: getattr(lot, attr) for attr, _, _ in LOT_FIELDS if getattr(lot, attr) is not None})
            for lot in entry.lots
        ]
        return record

    # -----------------------------------------------------------------
    # Admin queries
    # -----------------------------------------------------------------
    def _filtered(self, filters: Optional[EntryFilters]):
        q = self.session.query(BQCEntry)
        if filters is None:
            return q
        if filters.start_date:
            q = q.filter(BQCEntry.created_at >= filters.start_date)
        if filters.end_date:
            q = q.filter(BQCEntry.created_at < filters.end_date + timedelta(days=1))
        if filters.group_name:
            q = q.filter(BQCEntry.group_name == filters.group_name)
        if filters.tender_type:
            q = q.filter(BQCEntry.tender_type == filters.tender_type)
        if filters.search:
            pattern = f"%{filters.search}%"
            q = q.filter(
                or_(
                    func.coalesce(BQCEntry.ref_number, "").ilike(pattern),
                    func.coalesce(BQCEntry.tender_description, "").ilike(pattern),
                    func.coalesce(BQCEntry.subject, "").ilike(pattern),
                    func.coalesce(BQCEntry.group_name, "").ilike(pattern),
                )
            )
        return q

    def stats_overview(self, filters: Optional[EntryFilters] = None) -> Dict[str, Any]:
        q = self._filtered(filters).with_entities(
            func.count(BQCEntry.id),
            func.count(func.distinct(BQCEntry.user_id)),
            func.coalesce(func.sum(BQCEntry.total_cec_incl_gst), 0.0),
            func.coalesce(func.avg(BQCEntry.total_cec_incl_gst), 0.0),
            func.sum(case((BQCEntry.tender_type == "Goods", 1), else_=0)),
            func.sum(case((BQCEntry.tender_type == "Service", 1), else_=0)),
            func.sum(case((BQCEntry.tender_type == "Works", 1), else_=0)),
            func.sum(case((BQCEntry.evaluation_methodology == SINGLE_ESTIMATE, 1), else_=0)),
            func.sum(case((BQCEntry.evaluation_methodology == LOT_WISE, 1), else_=0)),
        )
        total, users, value, average, goods, service, works, single, lot_wise = q.one()
        return {
            "totalBQCs": int(total or 0),
            "totalUsers": int(users or 0),
            "totalValue": _round2(value),
            "avgValue": _round2(average),
            "goodsCount": int(goods or 0),
            "serviceCount": int(service or 0),
            "worksCount": int(works or 0),
            "singleEstimateCount": int(single or 0),
            "lotWiseCount": int(lot_wise or 0),
        }

    def group_stats(self, filters: Optional[EntryFilters] = None) -> List[Dict[str, Any]]:
        group = func.coalesce(BQCEntry.group_name, "Unassigned")
        rows = (
            self._filtered(filters)
            .with_entities(
                group,
                func.count(BQCEntry.id),
                func.coalesce(func.sum(BQCEntry.total_cec_incl_gst), 0.0),
                func.coalesce(func.avg(BQCEntry.total_cec_incl_gst), 0.0),
            )
            .group_by(group)
            .order_by(func.count(BQCEntry.id).desc())
            .all()
        )
        return [
            {"groupName": name, "count": int(count), "totalValue": _round2(total), "avgValue": _round2(avg)}
            for name, count, total, avg in rows
        ]

    def tender_type_stats(self, filters: Optional[EntryFilters] = None) -> List[Dict[str, Any]]:
        rows = (
            self._filtered(filters)
            .with_entities(
                BQCEntry.tender_type,
                func.count(BQCEntry.id),
                func.coalesce(func.sum(BQCEntry.total_cec_incl_gst), 0.0),
            )
            .group_by(BQCEntry.tender_type)
            .order_by(func.count(BQCEntry.id).desc())
            .all()
        )
        return [
            {"tenderType": tender_type, "count": int(count), "totalValue": _round2(total)}
            for tender_type, count, total in rows
        ]

    def date_range_stats(self, group_by: str = "day", filters: Optional[EntryFilters] = None) -> List[Dict[str, Any]]:
        """
        Entry counts and values per period. Periods are computed in Python so
        the query stays portable between SQLite and Postgres.
        """
        if group_by not in DATE_GROUPINGS:
            group_by = "day"

        rows = (
            self._filtered(filters)
            .with_entities(BQCEntry.created_at, BQCEntry.total_cec_incl_gst)
            .order_by(BQCEntry.created_at.asc())
            .all()
        )

        buckets: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for created_at, value in rows:
            if created_at is None:
                continue
            if group_by == "month":
                period = created_at.strftime("%Y-%m")
            elif group_by == "week":
                period = (created_at - timedelta(days=created_at.weekday())).strftime("%Y-%m-%d")
            else:
                period = created_at.strftime("%Y-%m-%d")
            bucket = buckets.setdefault(period, {"date": period, "count": 0, "totalValue": 0.0})
            bucket["count"] += 1
            bucket["totalValue"] += float(value or 0.0)

        for bucket in buckets.values():
            bucket["totalValue"] = _round2(bucket["totalValue"])
        return list(buckets.values())

    def financial_stats(self, filters: Optional[EntryFilters] = None) -> Dict[str, Any]:
        value = BQCEntry.total_cec_incl_gst
        bucket_columns = [
            func.sum(case((_bucket_condition(value, low, high), 1), else_=0))
            for _, low, high in VALUE_BUCKETS
        ]

        row = (
            self._filtered(filters)
            .with_entities(
                func.coalesce(func.min(value), 0.0),
                func.coalesce(func.max(value), 0.0),
                func.coalesce(func.avg(value), 0.0),
                func.coalesce(func.sum(value), 0.0),
                *bucket_columns,
            )
            .one()
        )
        minimum, maximum, average, total = row[:4]
        return {
            "minValue": _round2(minimum),
            "maxValue": _round2(maximum),
            "avgValue": _round2(average),
            "totalValue": _round2(total),
            "valueRanges": [
                {"range": label, "count": int(count or 0)}
                for (label, _, _), count in zip(VALUE_BUCKETS, row[4:])
            ],
        }

    def user_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        total = self.session.query(func.count(User.id)).scalar() or 0
        last_30 = self.session.query(func.count(User.id)).filter(User.created_at >= now - timedelta(days=30)).scalar() or 0
        last_7 = self.session.query(func.count(User.id)).filter(User.created_at >= now - timedelta(days=7)).scalar() or 0
        active_authors = self.session.query(func.count(func.distinct(BQCEntry.user_id))).scalar() or 0
        return {
            "totalUsers": int(total),
            "newUsersLast30Days": int(last_30),
            "newUsersLast7Days": int(last_7),
            "usersWithEntries": int(active_authors),
        }

    def _entry_rows(self, filters: Optional[EntryFilters]):
        return (
            self._filtered(filters)
            .join(User, User.id == BQCEntry.user_id)
            .with_entities(BQCEntry, User.username, User.full_name)
            .order_by(BQCEntry.created_at.desc(), BQCEntry.id.desc())
        )

    @staticmethod
    def _entry_summary(entry: BQCEntry, username: str, full_name: Optional[str]) -> Dict[str, Any]:
        return {
            "id": entry.id,
            "refNumber": entry.ref_number,
            "groupName": entry.group_name,
            "subject": entry.subject,
            "tenderDescription": entry.tender_description,
            "tenderType": entry.tender_type,
            "evaluationMethodology": entry.evaluation_methodology,
            "cecEstimateInclGst": _round2(entry.total_cec_incl_gst),
            "cecEstimateExclGst": _round2(entry.total_cec_excl_gst),
            "createdAt": _iso(entry.created_at),
            "username": username,
            "fullName": full_name,
        }

    def entries(self, page: int = 1, limit: int = 20, filters: Optional[EntryFilters] = None) -> Dict[str, Any]:
        page = max(int(page or 1), 1)
        limit = min(max(int(limit or 20), 1), 100)

        q = self._entry_rows(filters)
        total = q.count()
        rows = q.offset((page - 1) * limit).limit(limit).all()
        return {
            "entries": [self._entry_summary(*row) for row in rows],
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if total else 0,
        }

    def export_rows(self, filters: Optional[EntryFilters] = None) -> List[Dict[str, Any]]:
        return [self._entry_summary(*row) for row in self._entry_rows(filters).all()]
