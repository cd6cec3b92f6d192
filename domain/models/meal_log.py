"""
Meal log model - append-only audit trail of meals sent to Fitbit.
"""

from sqlalchemy import Column, Integer, BigInteger, Text

from domain.models.database import Base


class MealLog(Base):
    """One row per fully successful meal-log request"""

    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Text, nullable=False)
    meal_type_id = Column(Integer, nullable=False)
    request_json = Column(Text, nullable=False)
    upstream_response_json = Column(Text, nullable=False)
    created_at = Column(BigInteger, nullable=False)
