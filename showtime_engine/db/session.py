from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from showtime_engine.core.config import settings

connect_args = {}
if settings.is_sqlite:
    # SQLite is used for local runs and tests; requests are served from a thread pool
    connect_args = {
        "check_same_thread": False,
        "timeout": settings.SQLITE_BUSY_TIMEOUT_SECONDS,
    }

# For PostgreSQL, we might need to adjust pool_size and max_overflow in production
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
