from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from quizroom.config import settings

DATABASE_URL = settings.database_url

if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
else:
    # Short connect timeout so the app doesn't hang if the DB is down
    connect_args = {"connect_timeout": 5}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
