import os
import sys
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker


ROOT = Path(__file__).resolve().parents[1]
DB_PATH = (ROOT / "test.db").resolve()
SQLITE_URL = f"sqlite:///{DB_PATH.as_posix()}"
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = SQLITE_URL
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["CACHE_ENABLED"] = "0"
os.environ["LOW_STOCK_THRESHOLD_SIMPLE"] = "10"
os.environ["LOW_STOCK_THRESHOLD_VARIANT"] = "5"

from storefront.core.security import create_access_token  # noqa: E402
from storefront.db import session as db_session  # noqa: E402
from storefront.db.base import Base  # noqa: E402
import storefront.models  # noqa: E402,F401
from storefront.main import app  # noqa: E402
from storefront.models.enums import ProductStatus  # noqa: E402
from storefront.models.product import Product  # noqa: E402
from storefront.models.product_variant import ProductVariant  # noqa: E402


engine = create_engine(
    SQLITE_URL,
    connect_args={"check_same_thread": False},
)


@event.listens_for(engine, "connect")
def _set_sqlite_pragma(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


db_session.engine = engine
db_session.SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


@pytest.fixture()
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    token = create_access_token(subject=f"admin_{uuid4().hex[:8]}", role="admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_product(db):
    def _make(name: str = "Linen Shirt", stock: int | None = 0, sku: str | None = None) -> Product:
        product = Product(
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{uuid4().hex[:8]}",
            sku=sku if sku is not None else f"SKU-{uuid4().hex[:8]}",
            stock=stock,
            status=ProductStatus.ACTIVE,
            is_active=True,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture()
def make_variant(db):
    def _make(product: Product, name: str = "M", stock: int | None = 0, sort_order: int = 0) -> ProductVariant:
        variant = ProductVariant(
            product_id=product.id,
            name=name,
            sku=f"SKU-{uuid4().hex[:8]}-{name}",
            stock=stock,
            sort_order=sort_order,
            is_active=True,
        )
        db.add(variant)
        db.commit()
        db.refresh(variant)
        return variant

    return _make
