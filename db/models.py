"""
db/models.py — Database Table Definitions
==========================================
Each class = one table.
The catalog and the tokenization tracker are document-shaped: storage links
live in JSON columns, everything the API filters or sorts on is a real column.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Boolean, Text, Integer, Float, JSON, CheckConstraint, event
from sqlalchemy.orm import Mapped, mapped_column
from db.session import Base


PROPERTY_TYPES = ("RESIDENTIAL", "COMMERCIAL", "AGRICULTURAL", "LUXURY", "COLONIAL")
PROPERTY_STATUSES = ("NEW", "ACTIVE", "FUNDED", "WHOLE_NFT", "COMING_SOON")

TOKENIZATION_TYPES = ("fractional", "whole")
TOKENIZATION_STATUSES = ("pending_documents", "pending_notary_verification", "contract_deployed")


# ── 1. Property Catalog ───────────────────────────────────────────────────────
class Property(Base):
    __tablename__ = "properties"
    __table_args__ = (
        CheckConstraint(
            "shares_sold IS NULL OR total_shares IS NULL OR shares_sold <= total_shares",
            name="ck_properties_shares_sold_le_total",
        ),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)           # e.g. "prop-001"
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), index=True)               # RESIDENTIAL | COMMERCIAL | ...
    location: Mapped[str] = mapped_column(String(255))
    total_value: Mapped[float] = mapped_column(Float, nullable=False)       # USD
    share_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)   # null → not fractionalized
    min_investment: Mapped[float] = mapped_column(Float)
    est_return: Mapped[float] = mapped_column(Float)                        # estimated yield, percent
    shares_sold: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_shares: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(50), index=True)             # NEW | ACTIVE | FUNDED | ...
    funding_progress: Mapped[float] = mapped_column(Float, default=0)
    image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    documents: Mapped[dict] = mapped_column(JSON, default=dict)             # {"propertyTitle": "ar://...", ...}
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    launch_date: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def compute_funding_progress(self) -> float:
        """Percentage of shares sold; 0 for properties that are not fractionalized."""
        if not self.total_shares or self.shares_sold is None:
            return 0.0
        return round(self.shares_sold / self.total_shares * 100, 2)


@event.listens_for(Property, "before_insert")
@event.listens_for(Property, "before_update")
def _refresh_funding_progress(mapper, connection, target: Property):
    target.funding_progress = target.compute_funding_progress()


# ── 2. Tokenization Requests ──────────────────────────────────────────────────
class TokenizationRequest(Base):
    __tablename__ = "tokenization_requests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)           # token-<epoch ms>-<suffix>
    wallet_address: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    property_address: Mapped[str] = mapped_column(String(255), nullable=False)
    estimated_value: Mapped[float] = mapped_column(Float, nullable=False)
    tokenization_type: Mapped[str] = mapped_column(String(20), default="fractional")   # fractional | whole
    status: Mapped[str] = mapped_column(String(50), default="pending_documents")
    documents_uploaded: Mapped[bool] = mapped_column(Boolean, default=False)
    notary_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    contract_deployed: Mapped[bool] = mapped_column(Boolean, default=False)
    document_links: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
