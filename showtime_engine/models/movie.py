import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, CheckConstraint, Uuid
from showtime_engine.db.session import Base

class Movie(Base):
    __tablename__ = "movies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    genre = Column(String(100), nullable=True)
    language = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="check_movie_duration_positive"),
    )
