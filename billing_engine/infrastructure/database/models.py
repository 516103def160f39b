"""SQLAlchemy ORM models for the billing ledger"""

import uuid
from sqlalchemy import Column, Boolean, DateTime, Date, Numeric, Text, ForeignKey, Index, Uuid
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class ClientPlan(Base):
    """Subscription linkage between a client and a plan"""

    __tablename__ = "client_plans"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, nullable=False, index=True)
    plan_id = Column(Uuid, nullable=False)
    value = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(Date, nullable=False)  # cadence anchor
    payment_method = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    records = relationship("FinancialRecordRow", back_populates="client_plan")


class FinancialRecordRow(Base):
    """Billing obligation instance; status is 'pending' or 'settled'"""

    __tablename__ = "financial_records"
    __table_args__ = (
        Index("ix_financial_records_client_plan_due", "client_plan_id", "due_date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid, nullable=False, index=True)
    plan_id = Column(Uuid, nullable=False)
    client_plan_id = Column(Uuid, ForeignKey("client_plans.id", ondelete="CASCADE"), nullable=False)
    original_value = Column(Numeric(12, 2), nullable=False)
    value = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    payment_date = Column(Date, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    payment_method = Column(Text, nullable=False, default="")
    change_reason = Column(Text, nullable=True)
    observations = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    client_plan = relationship("ClientPlan", back_populates="records")
