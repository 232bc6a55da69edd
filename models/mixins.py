from sqlalchemy import Column, DateTime

from utils.time_windows import utcnow


# Bookkeeping timestamps, naive UTC like every other column in the store

class CreatedAtMixin:
    created_at = Column(DateTime, nullable=False, default=utcnow)


class UpdatedAtMixin:
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
