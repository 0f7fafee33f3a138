"""Database model and store for waitlist signups."""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, String, DateTime, Integer, Float, Text, Index, and_, func
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from src.shared.database import Base
from src.shared.waitlist.schemas import MAX_EMAIL_LENGTH


class WaitlistEntry(Base):
    """One row per distinct lowercase email address."""
    __tablename__ = "waitlist_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(MAX_EMAIL_LENGTH), unique=True, nullable=False)
    use_case = Column(Text, nullable=True)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    accept_language = Column(String, nullable=True)
    # Snapshot of the edge request context (Cloudflare request.cf)
    cf_country = Column(String, nullable=True)
    cf_region = Column(String, nullable=True)
    cf_region_code = Column(String, nullable=True)
    cf_city = Column(String, nullable=True)
    cf_postal_code = Column(String, nullable=True)
    cf_continent = Column(String, nullable=True)
    cf_timezone = Column(String, nullable=True)
    cf_colo = Column(String, nullable=True)
    cf_asn = Column(Integer, nullable=True)
    cf_as_organization = Column(String, nullable=True)
    cf_latitude = Column(Float, nullable=True)
    cf_longitude = Column(Float, nullable=True)
    cf_bot_score = Column(Integer, nullable=True)
    cf_tls_version = Column(String, nullable=True)
    cf_http_protocol = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False)  # Set once, never touched by upserts
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index('idx_waitlist_entries_created', created_at.desc()),
        Index('idx_waitlist_entries_ip_created', ip_address, created_at.desc()),
    )


# Columns overwritten when an email signs up again. id, email and created_at are kept.
MUTABLE_COLUMNS = (
    "use_case",
    "ip_address",
    "user_agent",
    "accept_language",
    "cf_country",
    "cf_region",
    "cf_region_code",
    "cf_city",
    "cf_postal_code",
    "cf_continent",
    "cf_timezone",
    "cf_colo",
    "cf_asn",
    "cf_as_organization",
    "cf_latitude",
    "cf_longitude",
    "cf_bot_score",
    "cf_tls_version",
    "cf_http_protocol",
    "updated_at",
)

_DIALECT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class WaitlistStore:
    """Persistence operations used by the waitlist routes."""

    def __init__(self, db: Session):
        self.db = db

    def count_submissions(self, ip_address: str, start: datetime, end: datetime) -> int:
        """Count entries created from this IP within [start, end] (inclusive)."""
        count = self.db.query(func.count(WaitlistEntry.id)).filter(
            and_(
                WaitlistEntry.ip_address == ip_address,
                WaitlistEntry.created_at >= start,
                WaitlistEntry.created_at <= end
            )
        ).scalar()
        return int(count or 0)

    def upsert_entry(self, values: Dict[str, Any]) -> None:
        """
        Insert a waitlist entry, or merge it into the existing row for the same email.

        Runs as a single INSERT ... ON CONFLICT(email) DO UPDATE statement so that
        concurrent submissions for one email cannot interleave column writes.

        Args:
            values: Column values for the row. email must already be lowercased and
                created_at/updated_at set by the caller.
        """
        dialect_name = self.db.get_bind().dialect.name
        insert = _DIALECT_INSERTS.get(dialect_name)
        if insert is None:
            raise NotImplementedError(f"Upsert is not supported for dialect '{dialect_name}'")

        stmt = insert(WaitlistEntry).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[WaitlistEntry.email],
            set_={column: stmt.excluded[column] for column in MUTABLE_COLUMNS}
        )
        self.db.execute(stmt)
        self.db.commit()
