from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from volunteer_app.db.session import Base


class Association(Base):
    __tablename__ = "associations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    website = Column(String(500), nullable=True)
    logo = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
