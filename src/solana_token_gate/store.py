from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    create_engine,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .config import Settings
from .errors import NotFound, StoreUnavailable

log = logging.getLogger(__name__)

metadata = MetaData()

verifications = Table(
    "verifications",
    metadata,
    Column("token", String(255), primary_key=True),
    Column("user_id", String(255), nullable=False),
    Column("public_key", String(64), nullable=True),
    Column("verified", Boolean, nullable=True),
    Column("verified_at", DateTime(timezone=True), nullable=True),
)


@dataclass(frozen=True)
class VerificationRecord:
    token: str
    identity_id: str
    wallet_address: Optional[str]
    verified: Optional[bool]
    verified_at: Optional[datetime]


def create_store_engine(settings: Settings) -> Engine:
    """Builds the process-wide pooled engine. Every checkout and statement is time-bounded."""
    url = settings.require_database_url()
    timeout_s = settings.db_timeout_s

    connect_args = {}
    if url.startswith(("postgresql", "postgres")):
        connect_args = {
            "connect_timeout": max(1, int(timeout_s)),
            "options": f"-c statement_timeout={int(timeout_s * 1000)}",
        }
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_size,
        pool_timeout=timeout_s,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args=connect_args,
    )


class VerificationStore:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def create_schema(self) -> None:
        try:
            metadata.create_all(self.engine, tables=[verifications], checkfirst=True)
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Could not create schema: {e}") from e

    def find_by_token(self, token: str) -> str:
        stmt = select(verifications.c.user_id).where(verifications.c.token == token)
        try:
            with self.engine.connect() as conn:
                user_id = conn.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Lookup failed: {e}") from e
        if user_id is None:
            raise NotFound(f"No verification issued for token {token!r}")
        return user_id

    def record_outcome(
        self,
        identity_id: str,
        token: str,
        wallet_address: str,
        verified: bool,
    ) -> int:
        """
        Writes wallet, outcome and server time in one UPDATE.
        Returns the affected row count; 0 means the (identity, token) pair is gone.
        """
        stmt = (
            update(verifications)
            .where(verifications.c.user_id == identity_id)
            .where(verifications.c.token == token)
            .values(
                public_key=wallet_address,
                verified=verified,
                verified_at=func.now(),
            )
        )
        try:
            with self.engine.begin() as conn:
                rowcount = conn.execute(stmt).rowcount
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Update failed: {e}") from e
        return rowcount

    def get_record(self, token: str) -> VerificationRecord:
        stmt = select(verifications).where(verifications.c.token == token)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).mappings().one_or_none()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Lookup failed: {e}") from e
        if row is None:
            raise NotFound(f"No verification issued for token {token!r}")
        return VerificationRecord(
            token=row["token"],
            identity_id=row["user_id"],
            wallet_address=row["public_key"],
            verified=row["verified"],
            verified_at=row["verified_at"],
        )

    def issue(self, token: str, identity_id: str) -> None:
        """Development stand-in for the bot's issuance step."""
        stmt = insert(verifications).values(token=token, user_id=identity_id)
        try:
            with self.engine.begin() as conn:
                conn.execute(stmt)
        except IntegrityError as e:
            raise ValueError(f"Token {token!r} was already issued") from e
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Insert failed: {e}") from e
        log.info("Issued token %s for user %s", token, identity_id)
