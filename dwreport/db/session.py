# dwreport/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from dwreport.core.config import settings

DATABASE_URL = settings.DATABASE_URL
# Hosted Postgres URLs are often handed out with the legacy scheme.
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
