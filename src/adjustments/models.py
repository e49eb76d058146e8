"""Adjustment database models."""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, Date, DateTime, Float, String

from src.core.database import Base


class KmAdjustment(Base):
    """Manual km correction entered by an administrator.

    Several rows may exist for the same participant and day; they are
    summed when rankings are computed.
    """

    __tablename__ = "km_adjustments"

    # "{bib}-{date}-{hex}"
    id = Column(String, primary_key=True)

    bib_number = Column(BigInteger, nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    adjustment_km = Column(Float, nullable=False)  # signed
    reason = Column(String, nullable=False, default="")

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return (
            f"<KmAdjustment(id='{self.id}', bib_number={self.bib_number}, "
            f"date={self.date}, adjustment_km={self.adjustment_km})>"
        )
