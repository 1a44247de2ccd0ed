"""
Invoice and payment provider models.

SECURITY: All invoice queries MUST include the user_id filter.
"""
from datetime import date
from decimal import Decimal
from sqlalchemy import Boolean, Date, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from opshub.models.base import Base, IdMixin, TimestampMixin


class Invoice(Base, IdMixin, TimestampMixin):
    """Invoice issued by a contractor to a customer."""
    __tablename__ = "invoices"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    project_title: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="GBP")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self):
        return f"<Invoice(id={self.id}, number={self.invoice_number}, amount={self.amount} {self.currency})>"


class PaymentProviderSettings(Base, IdMixin, TimestampMixin):
    """Per-user payment provider credentials, Fernet encrypted at rest."""
    __tablename__ = "payment_provider_settings"

    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    provider_type: Mapped[str] = mapped_column(String(32), nullable=False, default="stripe")
    encrypted_credentials: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
