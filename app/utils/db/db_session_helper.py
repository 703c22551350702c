from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy.orm import Session

from app.db import SessionLocal


@contextmanager
def db_session(factory: Optional[Callable[[], Session]] = None) -> Iterator[Session]:
    """Session for work outside a request (socket handlers, background jobs)."""
    db = (factory or SessionLocal)()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
