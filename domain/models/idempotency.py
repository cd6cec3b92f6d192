"""
Idempotency key model.
"""

from sqlalchemy import Column, BigInteger, Text

from domain.models.database import Base


class IdempotencyKey(Base):
    """
    Response cached for a client-chosen idempotency key.

    A row with response_json NULL is a reservation held by a request that is
    still executing; it is filled in once, on success, and never changed again.
    """

    __tablename__ = "idempotency_keys"

    key = Column(Text, primary_key=True)
    request_hash = Column(Text, nullable=False)
    response_json = Column(Text)
    created_at = Column(BigInteger, nullable=False)
