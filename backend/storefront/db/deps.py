from typing import Iterator

from sqlalchemy.orm import Session

from storefront.db import session as db_session


def get_db() -> Iterator[Session]:
    # SessionLocal se resuelve en cada peticion para que los tests puedan sustituirlo.
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()
