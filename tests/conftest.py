import fnmatch

import pytest
from flask import Flask

from config import TestConfig
from extensions import db
from remotehealth.app_factory import create_app


class InMemoryRedis:
    """The handful of redis-py calls the session store makes."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    def get(self, key):
        return self.data.get(key)

    def delete(self, key):
        self.ttls.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0

    def scan_iter(self, pattern="*"):
        return [k for k in list(self.data) if fnmatch.fnmatch(k, pattern)]


@pytest.fixture
def redis_client():
    return InMemoryRedis()


@pytest.fixture
def app(redis_client) -> Flask:
    app = create_app(config_object=TestConfig, redis_client=redis_client)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def services(app):
    return app.extensions["clinic"]


@pytest.fixture
def clinic(app):
    """Two doctors and two patients, passwords as in the seed data."""
    from remotehealth.services.clinic_service import upsert_admin, upsert_doctor, upsert_patient

    upsert_admin("A000", "admin", "admin@example.com", "admin123")
    upsert_doctor("D001", "Naeem Ahmed", "naeem@gmail.com", "doc1")
    upsert_doctor("D002", "Qazi Aslam", "qazi@gmail.com", "doc2")
    upsert_patient("P001", "Zayna Qasim", "zaynaqasim@gmail.com", "patient12345")
    upsert_patient("P002", "Ali Raza", "ali@example.com", "secret")
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client, clinic):
    """login(role, username, password) -> headers carrying the session token."""
    def _login(role, username, password):
        resp = client.post("/auth/login", json={"role": role, "username": username, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return {"X-Session-Token": resp.get_json()["token"]}
    return _login
