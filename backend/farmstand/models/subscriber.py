from datetime import datetime, timezone
from typing import Optional

from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NewsletterSubscriber(SQLModel, table=True):
    __tablename__ = "newsletter_subscriber"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=254, index=True, unique=True)
    name: Optional[str] = Field(default=None, max_length=100)
    # where the signup came from: footer form, order opt-in, ...
    source: Optional[str] = Field(default=None, max_length=40)
    created_at: datetime = Field(default_factory=_utcnow)
