from datetime import datetime, timedelta, timezone

import jwt
import pytest

from service_shop.auth import TokenService, hash_password, verify_password
from service_shop.config import Settings
from service_shop.errors import InvalidTokenError
from service_shop.main import create_app


def test_password_hash_and_verify():
    hashed = hash_password('secret1')
    assert hashed != 'secret1'
    assert verify_password('secret1', hashed)
    assert not verify_password('secret2', hashed)
    assert not verify_password('', hashed)
    assert not verify_password('secret1', 'not-a-hash')


def test_same_password_gets_different_salts():
    assert hash_password('secret1') != hash_password('secret1')


def test_issue_then_verify():
    tokens = TokenService('s3cret')
    identity = tokens.verify(tokens.issue(7, 'Alice', True))
    assert identity.user_id == 7
    assert identity.name == 'Alice'
    assert identity.is_admin is True


def test_default_lifetime_is_one_hour():
    tokens = TokenService('s3cret')
    payload = jwt.decode(tokens.issue(1, 'A', False), 's3cret', algorithms=['HS256'])
    assert payload['exp'] - payload['iat'] == 3600


def test_expired_token_fails():
    tokens = TokenService('s3cret', lifetime=timedelta(seconds=-10))
    token = tokens.issue(1, 'Alice', False)
    with pytest.raises(InvalidTokenError):
        tokens.verify(token)


def test_tampered_signature_fails():
    tokens = TokenService('s3cret')
    header, payload, signature = tokens.issue(1, 'Alice', False).split('.')
    first = 'A' if signature[0] != 'A' else 'B'
    with pytest.raises(InvalidTokenError):
        tokens.verify('.'.join([header, payload, first + signature[1:]]))


def test_token_signed_with_other_secret_fails():
    token = TokenService('other').issue(1, 'Alice', False)
    with pytest.raises(InvalidTokenError):
        TokenService('s3cret').verify(token)


def test_payload_without_user_claim_fails():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {'iat': int(now.timestamp()), 'exp': int((now + timedelta(minutes=5)).timestamp())},
        's3cret',
        algorithm='HS256',
    )
    with pytest.raises(InvalidTokenError):
        TokenService('s3cret').verify(token)


def test_garbage_token_fails():
    with pytest.raises(InvalidTokenError):
        TokenService('s3cret').verify('not.a.token')


def test_missing_secret_is_a_startup_error(monkeypatch):
    monkeypatch.delenv('JWT_SECRET', raising=False)
    with pytest.raises(RuntimeError):
        Settings()
    with pytest.raises(RuntimeError):
        create_app()


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv('JWT_SECRET', 'abc')
    monkeypatch.setenv('JWT_EXPIRE_MINUTES', '30')
    monkeypatch.setenv('ALLOWED_ORIGINS', 'https://a.example, https://b.example')
    s = Settings()
    assert s.JWT_EXPIRE_MINUTES == 30
    assert s.ALLOWED_ORIGINS == ['https://a.example', 'https://b.example']
    assert TokenService.from_settings(s).lifetime == timedelta(minutes=30)
