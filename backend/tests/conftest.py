import os

# storemap.core.db builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import storemap.models  # noqa: F401
from storemap.core.auth import CurrentUser, get_current_user
from storemap.core.db import Base, get_db
from storemap.main import app

TEST_USER = CurrentUser(id="user-1", email="ops@example.com")

GROWTH_HEADERS = [
    "Formato", "Zona", "Distrito", "SUC SAP", "Sucursal", "Calle", "Colonia",
    "Municipio", "Estado", "Ciudad", "CP",
    "$ Crec% MT 2025 vs 2024", "Ordenes Crec%", "Ticket Crec%",
]

ABSOLUTE_HEADERS = [
    "Mes", "Formato", "Zona", "Distrito", "SUC SAP", "Sucursal", "Calle", "Colonia",
    "Municipio", "Estado", "Ciudad", "CP", "Ventas", "Ordenes", "Tickets",
]


def growth_row(code, revenue="15.7%", orders="-2.5%", ticket="3,1%", estado="Nuevo León", formato="Express"):
    return [
        formato, "Norte", "D1", code, f"Tienda {code}", "Av. Constitución 100", "Centro",
        "Monterrey", estado, "Monterrey", "64000", revenue, orders, ticket,
    ]


def absolute_row(code, ventas="1,250,000.50", ordenes="3,400", tickets="3,100"):
    return [
        "Septiembre", "Express", "Norte", "D1", code, f"Tienda {code}", "Av. Juárez 12", "Centro",
        "Guadalajara", "Jalisco", "Guadalajara", "44100", ventas, ordenes, tickets,
    ]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def anon_client(session_factory):
    """Client with a real auth dependency; only the database is swapped."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(anon_client):
    app.dependency_overrides[get_current_user] = lambda: TEST_USER
    return anon_client
