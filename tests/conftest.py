"""
Shared fixtures: a throwaway file-backed SQLite store per test, built with the
same engine factory the service uses, plus helpers to seed and inspect it.
"""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, insert, select
from sqlalchemy.orm import sessionmaker

from kasir.db.session import build_engine, get_db, init_db
from kasir.db.tables import products, transaction_details, transactions
from kasir.main import app


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'kasir.db'}"


@pytest.fixture
def engine(db_url):
    engine = build_engine(db_url, lock_timeout_ms=5000)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed_products(engine):
    def _seed(*rows):
        with engine.begin() as conn:
            conn.execute(insert(products), list(rows))

    return _seed


@pytest.fixture
def catalog(seed_products):
    """Product 1 costs 10 with 5 in stock, product 2 costs 4 with 10 in stock."""
    seed_products(
        {"id": 1, "name": "Kopi Susu", "price": 10, "stock": 5},
        {"id": 2, "name": "Roti Bakar", "price": 4, "stock": 10},
    )


@pytest.fixture
def stocks(engine):
    def _stocks():
        with engine.connect() as conn:
            return dict(conn.execute(select(products.c.id, products.c.stock)).all())

    return _stocks


@pytest.fixture
def ledger_counts(engine):
    def _counts():
        with engine.connect() as conn:
            return (
                conn.execute(select(func.count()).select_from(transactions)).scalar_one(),
                conn.execute(select(func.count()).select_from(transaction_details)).scalar_one(),
            )

    return _counts


@pytest.fixture
def record_transaction(engine):
    """Write a ledger entry directly, for report tests that need fixed timestamps."""

    def _record(created_at: datetime, *lines):
        with engine.begin() as conn:
            total = sum(subtotal for _, _, _, subtotal in lines)
            transaction_id = conn.execute(
                insert(transactions)
                .values(total_amount=total, created_at=created_at)
                .returning(transactions.c.id)
            ).scalar_one()
            conn.execute(
                insert(transaction_details),
                [
                    {
                        "transaction_id": transaction_id,
                        "product_id": product_id,
                        "product_name": name,
                        "quantity": quantity,
                        "subtotal": subtotal,
                    }
                    for product_id, name, quantity, subtotal in lines
                ],
            )
        return transaction_id

    return _record


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
