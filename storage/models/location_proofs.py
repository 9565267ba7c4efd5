"""
Location Proof Domain ORM Models.

============================================================
PURPOSE
============================================================
Models for the local, revocation-aware copy of on-chain location
attestations and the per-chain sync watermarks.

============================================================
DATA LIFECYCLE ROLE
============================================================
- location_proofs: append-only except for the one-way
  revoked false -> true transition
- chain_checkpoints: one row per chain, value never decreases

============================================================
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from storage.models.base import Base, JSONColumn


class LocationProofModel(Base):
    """
    Normalized location proof.

    ============================================================
    IDENTITY
    ============================================================
    Composite primary key (chain, uid). The same uid may appear on
    different chains.

    ============================================================
    """

    __tablename__ = "location_proofs"

    # Identity
    chain: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Chain the attestation was published on"
    )

    uid: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
        comment="Attestation identifier"
    )

    # Parties
    prover: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Attester address"
    )

    subject: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Recipient address, attester when none"
    )

    # Timestamps
    observed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Attestation creation time on chain"
    )

    event_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Time the location was observed"
    )

    # Location
    srs: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="WGS84",
        comment="Spatial reference system"
    )

    location_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="point",
    )

    raw_location: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Location string exactly as attested"
    )

    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Attachments
    recipe_types: Mapped[list[Any]] = mapped_column(JSONColumn, nullable=False, default=list)
    recipe_payloads: Mapped[list[Any]] = mapped_column(JSONColumn, nullable=False, default=list)
    media_types: Mapped[list[Any]] = mapped_column(JSONColumn, nullable=False, default=list)
    media_data: Mapped[list[Any]] = mapped_column(JSONColumn, nullable=False, default=list)

    memo: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Lifecycle
    revoked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="One-way flag, never reset once set"
    )

    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Indexes
    __table_args__ = (
        Index("idx_location_proofs_chain_revoked", "chain", "revoked"),
        Index("idx_location_proofs_observed_at", "observed_at"),
        Index("idx_location_proofs_prover", "prover"),
    )

    def __repr__(self) -> str:
        return f"<LocationProofModel(chain={self.chain}, uid={self.uid}, revoked={self.revoked})>"


class ChainCheckpointModel(Base):
    """Last processed source timestamp per chain."""

    __tablename__ = "chain_checkpoints"

    chain: Mapped[str] = mapped_column(String(64), primary_key=True)

    last_timestamp: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Unix seconds; next fetch asks for strictly later records"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<ChainCheckpointModel(chain={self.chain}, last_timestamp={self.last_timestamp})>"
