from typing import Protocol

import structlog
from sqlalchemy.orm import Session

from membership_gateway.models import Membership

logger = structlog.get_logger(__name__)


class MembershipActivator(Protocol):
    def activate(self, db: Session, *, user_id: int, membership_id: int, order_id: int) -> None:
        ...


class DatabaseMembershipActivator:
    """Grants the purchased membership level by recording it against the user."""

    def activate(self, db: Session, *, user_id: int, membership_id: int, order_id: int) -> None:
        db.add(Membership(user_id=user_id, membership_id=membership_id, order_id=order_id))
        db.commit()
        logger.info(
            "membership_activated",
            user_id=user_id,
            membership_id=membership_id,
            order_id=order_id,
        )
