import datetime as dt
from decimal import Decimal

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transfer_recon.db.base import Base
from transfer_recon.models.enums import TransactionKind, transaction_kind_enum


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (CheckConstraint("signed_amount <> 0", name="ck_transactions_signed_amount_nonzero"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    signed_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="KZT", server_default="KZT")
    kind: Mapped[TransactionKind] = mapped_column(
        transaction_kind_enum,
        nullable=False,
        default=TransactionKind.EXPENSE,
        server_default=TransactionKind.EXPENSE.value,
    )
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transfer_pair_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    tx_date: Mapped[dt.date] = mapped_column(Date, nullable=False, default=dt.date.today, server_default=func.current_date())
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id", ondelete="RESTRICT"), nullable=False)
    matched_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )

    account = relationship("Account", back_populates="transactions", foreign_keys=[account_id])
