from contextlib import contextmanager
import os
import logging

from dotenv import load_dotenv
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from .errors import ConstraintViolation

load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./roadside.db")


def make_engine(url: str):
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)

    if url.startswith("sqlite"):
        # SQLite ignores ON DELETE / FK checks unless asked per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """Run a unit of work inside one transaction.

    Blocks nest: only the outermost block commits, inner blocks flush so
    constraint errors surface early. Any exception rolls the whole unit back.
    """
    depth = db.info.get("atomic_depth", 0)
    db.info["atomic_depth"] = depth + 1
    try:
        yield db
        if depth == 0:
            db.commit()
        else:
            db.flush()
    except IntegrityError as e:
        if depth == 0:
            db.rollback()
        logging.warning("Constraint violation: %s", e.orig)
        raise ConstraintViolation() from e
    except Exception:
        if depth == 0:
            db.rollback()
        raise
    finally:
        db.info["atomic_depth"] = depth


def ping(db: Session) -> bool:
    return db.execute(text("SELECT 1")).scalar() == 1
