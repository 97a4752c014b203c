"""Account self-service for authenticated users."""
import structlog
from sqlalchemy.orm import Session

from nexus.core.errors import unauthorized
from nexus.core.metrics import auth_events
from nexus.core.security import hash_password, verify_password
from nexus.models import User

logger = structlog.get_logger(__name__)


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    """Replace the password hash; the stored hash is untouched on a wrong current password."""
    if not verify_password(current_password, user.password_hash):
        auth_events.labels(event="change_password", outcome="invalid").inc()
        raise unauthorized("Incorrect current password.")

    user.password_hash = hash_password(new_password)
    db.commit()

    auth_events.labels(event="change_password", outcome="success").inc()
    logger.info("auth.password_changed", user_id=str(user.id))
