import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from farmstand.models.subscriber import NewsletterSubscriber

logger = logging.getLogger(__name__)


def find_subscriber(session: Session, email: str) -> Optional[NewsletterSubscriber]:
    return session.exec(select(NewsletterSubscriber).where(NewsletterSubscriber.email == email)).first()


def subscribe(
    session: Session,
    email: str,
    name: Optional[str] = None,
    source: Optional[str] = None,
) -> Tuple[NewsletterSubscriber, bool]:
    """Add an email to the list. Returns (subscriber, already_subscribed)."""
    email = email.strip().lower()
    existing = find_subscriber(session, email)
    if existing is not None:
        logger.info("Newsletter signup for existing subscriber id=%s source=%s", existing.id, source)
        return existing, True

    subscriber = NewsletterSubscriber(email=email, name=name, source=source)
    session.add(subscriber)
    try:
        session.commit()
    except IntegrityError:
        # another request inserted the same email between our lookup and commit
        session.rollback()
        existing = find_subscriber(session, email)
        if existing is None:
            raise
        return existing, True
    session.refresh(subscriber)
    logger.info("Created newsletter subscriber id=%s source=%s", subscriber.id, source)
    return subscriber, False
