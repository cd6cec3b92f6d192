"""
Credential Repository - SQL storage for the singleton Fitbit token row
"""

from typing import Optional
from sqlalchemy.orm import Session

from repositories.base import CredentialRepository, SQLRepository
from domain.models import OAuthToken, SINGLETON_TOKEN_ID
from domain.schemas import TokenRecord


class SQLCredentialRepository(SQLRepository[OAuthToken], CredentialRepository):
    """Token row access through SQLAlchemy"""

    def __init__(self, db: Session):
        super().__init__(db, OAuthToken)

    def get(self) -> Optional[TokenRecord]:
        # populate_existing so a row cached in this session is re-read after
        # another request replaced it
        row = self.db.get(OAuthToken, SINGLETON_TOKEN_ID, populate_existing=True)
        if row is None:
            return None
        return TokenRecord.model_validate(row)

    def replace(self, access_token: str, refresh_token: str, expires_at: int) -> TokenRecord:
        try:
            row = self.db.merge(
                OAuthToken(
                    id=SINGLETON_TOKEN_ID,
                    access_token=access_token,
                    refresh_token=refresh_token,
                    expires_at=expires_at,
                )
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return TokenRecord.model_validate(row)
