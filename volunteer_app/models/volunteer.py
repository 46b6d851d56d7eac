from sqlalchemy import Column, Integer, String, Date, DateTime, Text
from sqlalchemy.sql import func
from volunteer_app.db.session import Base


class Volunteer(Base):
    __tablename__ = "volunteers"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=False)
    # pbkdf2_sha256 digest; older rows may still hold a bare SHA-256 hex digest
    password_hash = Column(String(255), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    # URL or base64 payload sent by the frontend
    photo = Column(Text, nullable=True)
    availability = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
