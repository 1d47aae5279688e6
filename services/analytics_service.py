"""
Read-only reporting over trees, species, health records and users.
Every method returns plain JSON-ready structures.
"""
from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import case, extract, func

from models.base_model import utcnow
from models.db_storage import DBStorage
from models.health_record import HealthRecord
from models.species import Species
from models.tree import Tree
from models.user import User

RECENT_WINDOW = timedelta(days=30)
TOP_N = 10


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0


def _round(value) -> Optional[float]:
    return round(float(value), 2) if value is not None else None


def _between(query, column, start: Optional[datetime], end: Optional[datetime]):
    if start is not None:
        query = query.filter(column >= start)
    if end is not None:
        query = query.filter(column <= end)
    return query


class AnalyticsService:
    def __init__(self, storage: DBStorage, clock: Callable[[], datetime] = utcnow):
        self._storage = storage
        self._clock = clock

    @property
    def _session(self):
        return self._storage.get_session()

    def _status_counts(self) -> list:
        rows = self._session.query(Tree.status, func.count(Tree.id)).group_by(Tree.status).all()
        return [{"status": status, "count": count} for status, count in rows]

    def overview(self) -> dict:
        session = self._session
        total_trees = session.query(func.count(Tree.id)).scalar()
        healthy = session.query(func.count(Tree.id)).filter(Tree.status == "healthy").scalar()
        recent = (
            session.query(func.count(HealthRecord.id))
            .filter(HealthRecord.inspection_date >= self._clock() - RECENT_WINDOW)
            .scalar()
        )
        return {
            "totalTrees": total_trees,
            "totalSpecies": session.query(func.count(Species.id)).scalar(),
            "totalUsers": session.query(func.count(User.id)).filter(User.deleted_at.is_(None)).scalar(),
            "healthyTrees": healthy,
            "healthPercentage": _percentage(healthy, total_trees),
            "recentInspections": recent,
        }

    def tree_growth(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list:
        year = extract("year", Tree.created_at)
        month = extract("month", Tree.created_at)
        query = self._session.query(year, month, func.count(Tree.id))
        query = _between(query, Tree.created_at, start, end)
        rows = query.group_by(year, month).order_by(year, month).all()
        return [{"year": int(y), "month": int(m), "count": c} for y, m, c in rows]

    def distribution(self) -> dict:
        count = func.count(Tree.id)
        by_species = (
            self._session.query(Species.id, Species.common_name, count)
            .join(Tree, Tree.species_id == Species.id)
            .group_by(Species.id, Species.common_name)
            .order_by(count.desc())
            .limit(TOP_N)
            .all()
        )
        return {
            "byStatus": self._status_counts(),
            "bySpecies": [
                {"speciesId": sid, "speciesName": name, "count": c} for sid, name, c in by_species
            ],
        }

    def health_trends(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list:
        year = extract("year", HealthRecord.inspection_date)
        month = extract("month", HealthRecord.inspection_date)
        query = self._session.query(
            year, month, HealthRecord.status, func.count(HealthRecord.id), func.avg(HealthRecord.health_score)
        )
        query = _between(query, HealthRecord.inspection_date, start, end)
        rows = query.group_by(year, month, HealthRecord.status).order_by(year, month, HealthRecord.status).all()
        return [
            {"year": int(y), "month": int(m), "status": s, "count": c, "avgHealthScore": _round(avg)}
            for y, m, s, c, avg in rows
        ]

    def popular_species(self, limit: int = TOP_N) -> list:
        tree_count = func.count(Tree.id)
        healthy_count = func.sum(case((Tree.status == "healthy", 1), else_=0))
        rows = (
            self._session.query(
                Species.id,
                Species.common_name,
                Species.scientific_name,
                tree_count,
                healthy_count,
                func.avg(Tree.height),
                func.avg(Tree.diameter),
            )
            .join(Tree, Tree.species_id == Species.id)
            .group_by(Species.id, Species.common_name, Species.scientific_name)
            .order_by(tree_count.desc())
            .limit(limit)
            .all()
        )
        return [
            {
                "speciesId": sid,
                "commonName": common,
                "scientificName": scientific,
                "treeCount": total,
                "healthyCount": int(healthy or 0),
                "avgHeight": _round(avg_h),
                "avgDiameter": _round(avg_d),
                "healthPercentage": _percentage(int(healthy or 0), total),
            }
            for sid, common, scientific, total, healthy, avg_h, avg_d in rows
        ]

    def user_activity(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        trees_added = func.count(Tree.id)
        contributors = _between(
            self._session.query(User.id, User.username, User.full_name, trees_added)
            .join(Tree, Tree.created_by == User.id),
            Tree.created_at, start, end,
        )
        contributors = (
            contributors.group_by(User.id, User.username, User.full_name)
            .order_by(trees_added.desc())
            .limit(TOP_N)
            .all()
        )

        inspections = func.count(HealthRecord.id)
        inspectors = _between(
            self._session.query(User.id, User.username, User.full_name, inspections)
            .join(HealthRecord, HealthRecord.inspected_by == User.id),
            HealthRecord.inspection_date, start, end,
        )
        inspectors = (
            inspectors.group_by(User.id, User.username, User.full_name)
            .order_by(inspections.desc())
            .limit(TOP_N)
            .all()
        )
        return {
            "topTreeContributors": [
                {"userId": uid, "username": uname, "fullName": name, "treesAdded": c}
                for uid, uname, name, c in contributors
            ],
            "topInspectors": [
                {"userId": uid, "username": uname, "fullName": name, "inspections": c}
                for uid, uname, name, c in inspectors
            ],
        }

    def monthly_report(self, year: Optional[int] = None, month: Optional[int] = None) -> dict:
        """A whole year when month is omitted."""
        year = year or self._clock().year
        start = datetime(year, month or 1, 1)
        if month:
            end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
        else:
            end = datetime(year + 1, 1, 1)

        session = self._session
        trees_added = (
            session.query(func.count(Tree.id))
            .filter(Tree.created_at >= start, Tree.created_at < end)
            .scalar()
        )
        inspections = (
            session.query(func.count(HealthRecord.id))
            .filter(HealthRecord.inspection_date >= start, HealthRecord.inspection_date < end)
            .scalar()
        )
        return {
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "treesAdded": trees_added,
            "inspectionsCompleted": inspections,
            "healthStatus": self._status_counts(),
        }

    def export_report(self, fmt: str = "csv", start: Optional[datetime] = None) -> str:
        report = self.monthly_report(start.year, start.month) if start else self.monthly_report()
        if fmt != "csv":
            return json.dumps(report, indent=2)

        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(["Metric", "Value"])
        writer.writerow(["Trees Added", report["treesAdded"]])
        writer.writerow(["Inspections Completed", report["inspectionsCompleted"]])
        for row in report["healthStatus"]:
            writer.writerow([f"{row['status']} Trees", row["count"]])
        return buf.getvalue()
