from __future__ import annotations

import math
from typing import Optional, Tuple

from sqlalchemy import String, cast, func, or_
from sqlalchemy.orm import joinedload

from models.db_storage import DBStorage
from models.species import Species
from models.tree import Tree
from services.errors import NotFound, ValidationFailed

NEARBY_LIMIT = 50
EARTH_RADIUS_M = 6_371_000
METERS_PER_DEGREE = 111_320

LOCATION_FIELDS = ("latitude", "longitude", "address", "city", "state", "country", "zip_code")


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in metres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


class TreeService:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    def _query(self):
        return self._storage.get_session().query(Tree).options(joinedload(Tree.species))

    @staticmethod
    def _page(query, page: int, limit: int) -> Tuple[list, int]:
        total = query.count()
        rows = query.order_by(Tree.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return rows, total

    def list_trees(self, status: Optional[str] = None, species_id: Optional[str] = None,
                   page: int = 1, limit: int = 20) -> Tuple[list, int]:
        query = self._query()
        if status:
            query = query.filter(Tree.status == status)
        if species_id:
            query = query.filter(Tree.species_id == species_id)
        return self._page(query, page, limit)

    def search(self, q: Optional[str] = None, status: Optional[str] = None,
               min_height: Optional[float] = None, max_height: Optional[float] = None,
               page: int = 1, limit: int = 20) -> Tuple[list, int]:
        query = self._query()
        if q:
            qnorm = f"%{q.strip().lower()}%"
            # tags is a JSON array; matching its text form is enough for substring search
            query = query.filter(
                or_(
                    func.lower(Tree.tree_code).like(qnorm),
                    func.lower(Tree.address).like(qnorm),
                    func.lower(cast(Tree.tags, String)).like(qnorm),
                )
            )
        if status:
            query = query.filter(Tree.status == status)
        if min_height is not None:
            query = query.filter(Tree.height >= min_height)
        if max_height is not None:
            query = query.filter(Tree.height <= max_height)
        return self._page(query, page, limit)

    def nearby(self, latitude: float, longitude: float, radius: float = 1000) -> list:
        """Trees within radius metres, nearest first, as (tree, distance) pairs."""
        dlat = radius / METERS_PER_DEGREE
        cos_lat = max(math.cos(math.radians(latitude)), 1e-6)
        dlng = radius / (METERS_PER_DEGREE * cos_lat)
        candidates = (
            self._query()
            .filter(Tree.latitude.between(latitude - dlat, latitude + dlat))
            .filter(Tree.longitude.between(longitude - dlng, longitude + dlng))
            .all()
        )
        hits = []
        for tree in candidates:
            distance = haversine_m(latitude, longitude, tree.latitude, tree.longitude)
            if distance <= radius:
                hits.append((tree, distance))
        hits.sort(key=lambda pair: pair[1])
        return hits[:NEARBY_LIMIT]

    def get(self, tree_id: str) -> Tree:
        tree = self._query().filter(Tree.id == tree_id).first()
        if tree is None:
            raise NotFound("Tree not found")
        return tree

    def _ensure_species(self, species_id: str) -> None:
        if self._storage.get(Species, species_id) is None:
            raise ValidationFailed(errors=[{"field": "speciesId", "message": "Species not found"}])

    def _next_code(self) -> str:
        # Codes are zero-padded, so the lexicographic max is the numeric max
        last = self._storage.get_session().query(func.max(Tree.tree_code)).scalar()
        number = int(last.split("-")[1]) + 1 if last else 1
        return f"TREE-{number:06d}"

    def create(self, data: dict, created_by: str) -> Tree:
        self._ensure_species(data["species_id"])
        data = dict(data)
        location = data.pop("location")
        tree = Tree(
            tree_code=self._next_code(),
            created_by=created_by,
            **{k: location.get(k) for k in LOCATION_FIELDS},
            **data,
        )
        self._storage.new(tree)
        self._storage.save()
        return self.get(tree.id)

    def update(self, tree_id: str, data: dict) -> Tree:
        tree = self.get(tree_id)
        data = dict(data)
        if "species_id" in data:
            self._ensure_species(data["species_id"])
        location = data.pop("location", None) or {}
        for key in LOCATION_FIELDS:
            if key in location and location[key] is not None:
                setattr(tree, key, location[key])
        for key, value in data.items():
            setattr(tree, key, value)
        self._storage.save()
        return tree

    def delete(self, tree_id: str) -> None:
        tree = self.get(tree_id)
        self._storage.delete(tree)
        self._storage.save()

    def add_tags(self, tree_id: str, tags: list) -> Tree:
        tree = self.get(tree_id)
        # Reassign a new list so the JSON column is marked dirty
        tree.tags = list(dict.fromkeys([*(tree.tags or []), *(t.strip() for t in tags if t.strip())]))
        self._storage.save()
        return tree

    def remove_tag(self, tree_id: str, tag: str) -> Tree:
        tree = self.get(tree_id)
        tree.tags = [t for t in (tree.tags or []) if t != tag]
        self._storage.save()
        return tree

    def statistics(self) -> dict:
        session = self._storage.get_session()
        counts = dict(session.query(Tree.status, func.count(Tree.id)).group_by(Tree.status).all())
        total = sum(counts.values())
        healthy = counts.get("healthy", 0)
        species_count = session.query(func.count(func.distinct(Tree.species_id))).scalar() or 0
        return {
            "totalTrees": total,
            "healthyTrees": healthy,
            "diseasedTrees": counts.get("diseased", 0),
            "deadTrees": counts.get("dead", 0),
            "speciesCount": species_count,
            "healthPercentage": round(healthy / total * 100, 2) if total else 0,
        }
