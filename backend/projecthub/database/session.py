from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from projecthub.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # sessions are handed to threadpool workers (sync routes, scheduler)
    connect_args["check_same_thread"] = False

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
