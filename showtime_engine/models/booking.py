import uuid
import enum
from sqlalchemy import Column, String, DateTime, func, DECIMAL, Integer, ForeignKey, Uuid, CheckConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship
from showtime_engine.db.session import Base

class BookingStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"

class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)  # identity lives outside the engine
    showtime_id = Column(Uuid(as_uuid=True), ForeignKey("showtimes.id"), nullable=False, index=True)
    movie_id = Column(Uuid(as_uuid=True), ForeignKey("movies.id"), nullable=False)
    theater_id = Column(Uuid(as_uuid=True), ForeignKey("theaters.id"), nullable=False)
    booking_number = Column(String(20), unique=True, nullable=False, index=True)
    number_of_seats = Column(Integer, nullable=False)
    price_per_seat = Column(DECIMAL(10, 2), nullable=False)
    total_price = Column(DECIMAL(10, 2), nullable=False)
    status = Column(SAEnum(BookingStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
                    nullable=False, default=BookingStatus.ACTIVE, index=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    # Relationships
    showtime = relationship("Showtime", back_populates="bookings")
    movie = relationship("Movie")
    theater = relationship("Theater")

    __table_args__ = (
        CheckConstraint("number_of_seats > 0", name="check_booking_seats_positive"),
    )
