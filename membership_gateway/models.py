import secrets
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text, func
from membership_gateway.database import Base

PENDING = "pending"
SUCCESS = "success"
FAILED = "failed"
TERMINAL_STATUSES = (SUCCESS, FAILED)

CENT = Decimal("0.01")


def generate_order_code() -> str:
    return secrets.token_hex(5).upper()


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(32), unique=True, index=True)      # correlation token echoed by the provider
    user_id = Column(Integer, nullable=False)
    membership_id = Column(Integer, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    payer_name = Column(String, default="")
    payer_email = Column(String, default="")
    status = Column(String, nullable=False, default=PENDING)  # pending | success | failed
    payment_type = Column(String)
    payment_transaction_id = Column(String)
    notes = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    @property
    def amount(self) -> Decimal:
        total = Decimal(str(self.subtotal or 0)) + Decimal(str(self.tax or 0))
        return total.quantize(CENT, rounding=ROUND_HALF_UP)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class Membership(Base):
    __tablename__ = "memberships"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, index=True)
    membership_id = Column(Integer, nullable=False)
    order_id = Column(Integer, nullable=False, unique=True)
    activated_at = Column(DateTime, server_default=func.now())
