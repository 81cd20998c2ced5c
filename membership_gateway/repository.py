from sqlalchemy import update
from sqlalchemy.orm import Session

from membership_gateway.models import Order, PENDING


def parse_order_id(value) -> int | None:
    """Accept a positive int or a string of digits; anything else resolves to no order."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str):
        value = value.strip()
        if value.isascii() and value.isdigit() and int(value) > 0:
            return int(value)
    return None


class OrderRepository:
    """Order lookup and persistence on top of a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, order_id) -> Order | None:
        order_id = parse_order_id(order_id)
        if order_id is None:
            return None
        return self.db.get(Order, order_id)

    def add(self, order: Order) -> Order:
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def save(self, order: Order) -> Order:
        self.db.commit()
        self.db.refresh(order)
        return order

    def transition(self, order: Order, status: str, note: str, transaction_id: str | None = None) -> bool:
        """Move a pending order to a terminal status.

        The UPDATE only matches while the row is still pending, so when two
        callbacks race for the same order exactly one of them gets a row back.
        """
        values = {"status": status, "notes": note}
        if transaction_id is not None:
            values["payment_transaction_id"] = transaction_id

        result = self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(order)
        return result.rowcount == 1
