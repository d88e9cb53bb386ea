# tests/conftest.py
import os
import tempfile

_tmp = tempfile.mkdtemp(prefix="estoque-tests-")
os.environ["POSTGRES_URL"] = "sqlite:///" + os.path.join(_tmp, "estoque.db")
os.environ["UPLOAD_DIR"] = os.path.join(_tmp, "uploads")
os.environ["RESERVATION_SWEEP_ENABLED"] = "0"
os.environ["SEED_DEFAULTS"] = "1"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import estoque.models  # noqa: E402,F401
from estoque.db import Base, SessionLocal, engine  # noqa: E402
from estoque.main import app  # noqa: E402
from estoque.models import Vendedor  # noqa: E402
from estoque.seed import seed_defaults  # noqa: E402
from estoque.services import create_vehicle  # noqa: E402

VEHICLE = {
    "marca": "Toyota",
    "modelo": "Corolla XEi",
    "ano": 2022,
    "valor": 95000,
    "categoria_id": 2,
    "km": 15000,
    "cor": "Prata",
    "combustivel": "flex",
    "cambio": "automatico",
    "portas": 4,
    "placa": "ABC1D23",
}


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_defaults(session)
    finally:
        session.close()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_vehicle(db):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        payload = {**VEHICLE, "placa": f"TST{1000 + counter['n']}", **overrides}
        obj, _ = create_vehicle(db, payload)
        return obj
    return _make


@pytest.fixture
def make_seller(db):
    def _make(nome="Ana Souza", email=None, **fields):
        obj = Vendedor(nome=nome, email=email or f"{nome.split()[0].lower()}@v8.com.br", **fields)
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj
    return _make
