import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Text, Integer, ForeignKey, Uuid, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from showtime_engine.db.session import Base

class Theater(Base):
    __tablename__ = "theaters"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    location = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    screens = relationship("Screen", back_populates="theater", cascade="all, delete-orphan")

class Screen(Base):
    __tablename__ = "screens"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    theater_id = Column(Uuid(as_uuid=True), ForeignKey("theaters.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True)

    theater = relationship("Theater", back_populates="screens")
    # showtimes snapshot capacity at creation, see SeatLedgerEntry

    __table_args__ = (
        UniqueConstraint("theater_id", "name", name="uq_screen_theater_name"),
        CheckConstraint("capacity > 0", name="check_screen_capacity_positive"),
    )
