from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from common.settings import DATABASE_URL, engine_options

engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Users and refresh tokens only; nothing else shares this metadata.
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
