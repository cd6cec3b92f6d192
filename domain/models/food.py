"""
Food model - registry of foods known to Fitbit, keyed by canonical name.
"""

from sqlalchemy import Column, Integer, BigInteger, Text, Float, UniqueConstraint

from domain.models.database import Base


class Food(Base):
    """
    Registered food.

    canonical_name is the normalized lookup key used by meal logging;
    upstream_food_id is the identifier Fitbit assigned to the food.
    """

    __tablename__ = "foods"

    id = Column(Integer, primary_key=True, autoincrement=True)
    canonical_name = Column(Text, nullable=False, unique=True, index=True)
    display_name = Column(Text, nullable=False)
    upstream_food_id = Column(BigInteger, nullable=False)
    default_unit_id = Column(Integer, nullable=False)
    default_amount = Column(Float, nullable=False)
    calories = Column(Float, nullable=False)
    protein_g = Column(Float)
    carbs_g = Column(Float)
    fat_g = Column(Float)
    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (UniqueConstraint("canonical_name", name="uq_foods_canonical_name"),)

    def __repr__(self):
        return f"<Food(canonical_name='{self.canonical_name}', upstream_food_id={self.upstream_food_id})>"
