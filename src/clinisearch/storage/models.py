from datetime import date, datetime
from typing import Optional, Dict, Any
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Text, JSON, Date, DateTime, Index, func
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP


class Base(DeclarativeBase):
    pass

# Helper to support both Postgres JSONB and generic JSON (for SQLite tests)
JSON_TYPE = JSON().with_variant(JSONB, 'postgresql')
TIMESTAMP_TYPE = DateTime(timezone=True).with_variant(TIMESTAMP(timezone=True), 'postgresql')
# Byte-order collation for prefix range queries
RANGE_STRING = String().with_variant(String(collation="C"), "postgresql")


class PatientModel(Base):
    __tablename__ = "patients"

    unique_id: Mapped[str] = mapped_column(String, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    family_id: Mapped[str] = mapped_column(RANGE_STRING, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    name_lower: Mapped[str] = mapped_column(RANGE_STRING, nullable=False)
    phone: Mapped[str] = mapped_column(RANGE_STRING, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date)
    gender: Mapped[Optional[str]] = mapped_column(String)
    present_illness: Mapped[Optional[str]] = mapped_column(Text)
    allergies: Mapped[Optional[str]] = mapped_column(Text)
    attributes: Mapped[Dict[str, Any]] = mapped_column(JSON_TYPE, default=dict)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP_TYPE, server_default=func.now(), onupdate=func.now())

    # Composite indexes backing the prefix strategies (owner equality + range field)
    __table_args__ = (
        Index('ix_patients_owner_phone', 'owner_id', 'phone', 'created_at'),
        Index('ix_patients_owner_family', 'owner_id', 'family_id', 'created_at'),
        Index('ix_patients_owner_name', 'owner_id', 'name_lower', 'created_at'),
    )
