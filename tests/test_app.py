from fastapi.testclient import TestClient
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from dwreport.db import session
from dwreport.main import app


def test_startup_creates_tables(monkeypatch):
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    monkeypatch.setattr(session, "engine", engine)

    with TestClient(app) as client:
        assert client.get("/").json() == {"message": "Welcome to the Daily Work Report API"}

    assert {"profiles", "reports"} <= set(inspect(engine).get_table_names())
    engine.dispose()
