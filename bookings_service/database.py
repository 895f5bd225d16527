from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from common.settings import DATABASE_URL, engine_options

engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Yield a SQLAlchemy database session for the reservations database.

    The bookings and guests services both use this dependency; guests and
    bookings live in the same schema so the guest/booking relationship can
    be enforced by a foreign key.

    Yields
    ------
    Session
        Active SQLAlchemy session bound to the reservations engine.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
