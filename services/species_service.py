from __future__ import annotations

from typing import Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from models.db_storage import DBStorage
from models.species import Species
from models.tree import Tree
from services.errors import Conflict, NotFound

SEARCH_LIMIT = 50


class SpeciesService:
    def __init__(self, storage: DBStorage):
        self._storage = storage

    def _query(self):
        return self._storage.get_session().query(Species)

    def list_species(self, page: int = 1, limit: int = 50) -> Tuple[list, int]:
        query = self._query()
        total = query.count()
        rows = query.order_by(Species.common_name.asc()).offset((page - 1) * limit).limit(limit).all()
        return rows, total

    def search(self, q: str) -> list:
        qnorm = f"%{(q or '').strip().lower()}%"
        return (
            self._query()
            .filter(
                or_(
                    func.lower(Species.common_name).like(qnorm),
                    func.lower(Species.scientific_name).like(qnorm),
                    func.lower(Species.family).like(qnorm),
                )
            )
            .order_by(Species.common_name.asc())
            .limit(SEARCH_LIMIT)
            .all()
        )

    def get(self, species_id: str) -> Species:
        species = self._storage.get(Species, species_id)
        if species is None:
            raise NotFound("Species not found")
        return species

    def _ensure_unique(self, scientific_name: str, exclude_id: str = None) -> None:
        query = self._query().filter(func.lower(Species.scientific_name) == scientific_name.strip().lower())
        if exclude_id:
            query = query.filter(Species.id != exclude_id)
        if query.first() is not None:
            raise Conflict("Species with this scientific name already exists")

    def create(self, data: dict) -> Species:
        self._ensure_unique(data["scientific_name"])
        species = Species(**data)
        self._storage.new(species)
        self._save()
        return species

    def update(self, species_id: str, data: dict) -> Species:
        species = self.get(species_id)
        if "scientific_name" in data:
            self._ensure_unique(data["scientific_name"], exclude_id=species.id)
        for key, value in data.items():
            setattr(species, key, value)
        self._save()
        return species

    def delete(self, species_id: str) -> None:
        species = self.get(species_id)
        in_use = self._storage.get_session().query(Tree.id).filter(Tree.species_id == species.id).first()
        if in_use is not None:
            raise Conflict("Species is referenced by existing trees")
        self._storage.delete(species)
        self._save()

    def _save(self) -> None:
        try:
            self._storage.save()
        except IntegrityError:
            raise Conflict("Species with this scientific name already exists")
