from sqlalchemy import Column, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func
from volunteer_app.db.session import Base


class VolunteerEvent(Base):
    """A volunteer signed up for an event."""

    __tablename__ = "volunteer_events"

    volunteer_id = Column(Integer, ForeignKey("volunteers.id", ondelete="CASCADE"), primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True, index=True)
    joined_at = Column(DateTime(timezone=True), server_default=func.now())


class EventAssociation(Base):
    """An association taking part in an event created by another association."""

    __tablename__ = "event_associations"

    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True)
    association_id = Column(Integer, ForeignKey("associations.id", ondelete="CASCADE"), primary_key=True, index=True)
