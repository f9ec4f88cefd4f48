import os
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

# Settings() refuses to start without a signing secret
os.environ.setdefault("JWT_SECRET", "test-secret")

from service_shop import repositories
from service_shop.config import Settings
from service_shop.main import create_app


@pytest.fixture
def app(tmp_path, monkeypatch):
    """A fresh application backed by its own SQLite file."""
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    return create_app(Settings())


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def register_user(client):
    """Register a user and return its token."""
    def _register(name='Alice', email='a@x.com', password='secret1', phone=None):
        payload = {'name': name, 'email': email, 'password': password}
        if phone is not None:
            payload['phone'] = phone
        r = client.post('/api/auth/register', json=payload)
        assert r.status_code == 200, r.text
        return r.json()['token']
    return _register


@pytest.fixture
def make_admin(app, client):
    """Promote an existing user and return a freshly issued admin token."""
    def _promote(email, password='secret1'):
        with Session(app.state.engine) as session:
            repo = repositories.UserRepository(session)
            user = repo.get_by_email(email)
            user.is_admin = True
            repo.save(user)
        r = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert r.status_code == 200, r.text
        return r.json()['token']
    return _promote


@pytest.fixture
def add_vehicle(client):
    def _add(token, plate='KA01AB1234', make='Honda', model='Activa 6G', year=2021):
        r = client.post(
            '/api/vehicles',
            json={'make': make, 'model': model, 'year': year, 'licensePlate': plate},
            headers={'x-auth-token': token},
        )
        assert r.status_code == 200, r.text
        return r.json()['vehicle']
    return _add