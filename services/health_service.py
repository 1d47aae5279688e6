"""Health inspections. Each record also updates the inspected tree's state."""
from __future__ import annotations

from typing import Optional, Tuple

from sqlalchemy.orm import joinedload

from models.db_storage import DBStorage
from models.health_record import HealthRecord
from models.tree import Tree, TREE_STATUSES
from services.errors import NotFound


def tree_status_for(record_status: str) -> str:
    """Record statuses outside the tree vocabulary (pest_infestation) count as diseased."""
    return record_status if record_status in TREE_STATUSES else "diseased"


class HealthService:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    def _query(self):
        return self._storage.get_session().query(HealthRecord).options(joinedload(HealthRecord.tree))

    def list_records(self, status: Optional[str] = None, page: int = 1, limit: int = 20) -> Tuple[list, int]:
        query = self._query()
        if status:
            query = query.filter(HealthRecord.status == status)
        total = query.count()
        rows = (
            query.order_by(HealthRecord.inspection_date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total

    def list_for_tree(self, tree_id: str) -> list:
        return (
            self._query()
            .filter(HealthRecord.tree_id == tree_id)
            .order_by(HealthRecord.inspection_date.desc())
            .all()
        )

    def get(self, record_id: str) -> HealthRecord:
        record = self._query().filter(HealthRecord.id == record_id).first()
        if record is None:
            raise NotFound("Health record not found")
        return record

    def create(self, data: dict, inspected_by: str) -> HealthRecord:
        tree = self._storage.get(Tree, data["tree_id"])
        if tree is None:
            raise NotFound("Tree not found")

        record = HealthRecord(inspected_by=inspected_by, **data)
        self._storage.new(record)

        tree.health_score = record.health_score
        tree.status = tree_status_for(record.status)
        tree.last_inspection_date = record.inspection_date
        if record.follow_up_required and record.follow_up_date:
            tree.next_inspection_date = record.follow_up_date

        # One commit covers the record and the tree update
        self._storage.save()
        return record

    def update(self, record_id: str, data: dict) -> HealthRecord:
        record = self.get(record_id)
        for key, value in data.items():
            setattr(record, key, value)

        if "health_score" in data or "status" in data:
            tree = record.tree
            tree.health_score = record.health_score
            tree.status = tree_status_for(record.status)

        self._storage.save()
        return record

    def delete(self, record_id: str) -> None:
        record = self.get(record_id)
        self._storage.delete(record)
        self._storage.save()
