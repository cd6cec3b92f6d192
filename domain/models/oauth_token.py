"""
OAuth token model - the single Fitbit credential this deployment manages.
"""

from sqlalchemy import Column, Integer, BigInteger, Text, CheckConstraint

from domain.models.database import Base

SINGLETON_TOKEN_ID = 1


class OAuthToken(Base):
    """Current access/refresh token pair. Exactly one row (id = 1) ever exists."""

    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, default=SINGLETON_TOKEN_ID)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    expires_at = Column(BigInteger, nullable=False)

    __table_args__ = (CheckConstraint("id = 1", name="ck_tokens_singleton"),)

    def __repr__(self):
        return f"<OAuthToken(expires_at={self.expires_at})>"
