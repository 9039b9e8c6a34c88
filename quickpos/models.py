"""
QuickPOS SQLAlchemy models.

- ProcessedCallback: ledger of normalized callbacks, one row per event key
"""

from sqlalchemy import JSON, Column, DateTime, Integer, String, func

from quickpos.db import Base


# =====================================================
# PROCESSED CALLBACK MODEL
# =====================================================

class ProcessedCallback(Base):
    __tablename__ = "processed_callbacks"

    id = Column(Integer, primary_key=True)
    provider = Column(String(32), nullable=False)

    # provider:status:transaction_id|order_id
    event_key = Column(String(255), nullable=False, unique=True, index=True)
    order_id = Column(String(128), nullable=True, index=True)
    transaction_id = Column(String(160), nullable=True)
    status = Column(String(16), nullable=False)
    payload = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ProcessedCallback({self.event_key})>"
