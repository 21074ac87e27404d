import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Text, Uuid
from showtime_engine.db.session import Base

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(50), nullable=False) # booking_confirmed, booking_cancelled
    is_read = Column(Boolean, default=False)
    reference_id = Column(Uuid(as_uuid=True), nullable=True) # Booking ID
    created_at = Column(DateTime, server_default=func.now())
