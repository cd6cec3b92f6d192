"""
Food Repository - SQL data access for the food registry
"""

from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from repositories.base import FoodRepository, SQLRepository
from domain.models import Food
from domain.schemas import FoodRecord
from app.exceptions import ConflictError


class SQLFoodRepository(SQLRepository[Food], FoodRepository):
    """Repository for registered foods"""

    def __init__(self, db: Session):
        super().__init__(db, Food)

    def _get_row(self, canonical_name: str) -> Optional[Food]:
        return (
            self.db.query(Food)
            .filter(Food.canonical_name == canonical_name)
            .populate_existing()
            .first()
        )

    def get_by_canonical_name(self, canonical_name: str) -> Optional[FoodRecord]:
        """Get food by its normalized canonical name"""
        row = self._get_row(canonical_name)
        return FoodRecord.model_validate(row) if row else None

    def list_all(self) -> List[FoodRecord]:
        """Get all foods, most recently created first"""
        rows = self.db.query(Food).order_by(Food.created_at.desc(), Food.id.desc()).all()
        return [FoodRecord.model_validate(r) for r in rows]

    def insert(self, record: FoodRecord) -> FoodRecord:
        """Create a food; a taken canonical name raises ConflictError"""
        try:
            row = self._save(Food(**record.model_dump()))
        except IntegrityError:
            raise ConflictError(
                f'Food with canonical name "{record.canonical_name}" already exists.'
            )
        return FoodRecord.model_validate(row)

    def replace(self, record: FoodRecord) -> FoodRecord:
        """Overwrite every field of an existing food except its creation time"""
        row = self._get_row(record.canonical_name)
        if row is None:
            return self.insert(record)

        for field, value in record.model_dump(exclude={"canonical_name", "created_at"}).items():
            setattr(row, field, value)
        return FoodRecord.model_validate(self._save(row))
