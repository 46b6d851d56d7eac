from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.sql import func
from volunteer_app.db.session import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(500), nullable=False)
    # coarse location shown to volunteers before they join
    approx_location = Column(String(500), nullable=True)
    # stored as naive UTC
    date = Column(DateTime, nullable=False, index=True)
    # NULL means unlimited
    max_capacity = Column(Integer, nullable=True)
    poster_image = Column(Text, nullable=True)
    is_private = Column(Boolean, nullable=False, default=False)
    creator_id = Column(Integer, ForeignKey("associations.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
