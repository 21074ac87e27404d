import uuid
from sqlalchemy import Column, Boolean, DateTime, func, Integer, DECIMAL, ForeignKey, Uuid, CheckConstraint, Index
from sqlalchemy.orm import relationship
from showtime_engine.db.session import Base

class Showtime(Base):
    __tablename__ = "showtimes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    movie_id = Column(Uuid(as_uuid=True), ForeignKey("movies.id"), nullable=False, index=True)
    theater_id = Column(Uuid(as_uuid=True), ForeignKey("theaters.id"), nullable=False, index=True)
    screen_id = Column(Uuid(as_uuid=True), ForeignKey("screens.id"), nullable=False)
    start_time = Column(DateTime, nullable=False)   # naive UTC
    end_time = Column(DateTime, nullable=False)     # start_time + movie duration, exclusive
    price = Column(DECIMAL(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    movie = relationship("Movie")
    theater = relationship("Theater")
    screen = relationship("Screen")
    ledger = relationship("SeatLedgerEntry", back_populates="showtime", uselist=False, cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="showtime")

    __table_args__ = (
        Index("ix_showtimes_screen_window", "screen_id", "start_time", "end_time"),
        CheckConstraint("end_time > start_time", name="check_showtime_interval"),
        CheckConstraint("price >= 0", name="check_showtime_price_non_negative"),
    )

class SeatLedgerEntry(Base):
    __tablename__ = "seat_ledger"

    showtime_id = Column(Uuid(as_uuid=True), ForeignKey("showtimes.id"), primary_key=True)
    capacity = Column(Integer, nullable=False)  # copied from the screen when the showtime was created
    reserved = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    showtime = relationship("Showtime", back_populates="ledger")

    __table_args__ = (
        CheckConstraint("reserved >= 0", name="check_ledger_reserved_non_negative"),
        CheckConstraint("reserved <= capacity", name="check_ledger_reserved_within_capacity"),
    )

    @property
    def available(self) -> int:
        return self.capacity - self.reserved
