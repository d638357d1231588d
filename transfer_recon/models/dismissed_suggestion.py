import datetime as dt

from sqlalchemy import BigInteger, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from transfer_recon.db.base import Base


class DismissedSuggestion(Base):
    __tablename__ = "dismissed_transfer_suggestions"
    __table_args__ = (
        UniqueConstraint(
            "outgoing_transaction_id",
            "incoming_transaction_id",
            name="uq_dismissed_transfer_suggestions_pair",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    outgoing_transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    incoming_transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
