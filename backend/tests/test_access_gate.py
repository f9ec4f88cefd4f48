from datetime import timedelta

from service_shop.auth import TokenService


def test_missing_token_is_rejected(client):
    r = client.get('/api/vehicles')
    assert r.status_code == 401
    assert r.json() == {'msg': 'No token, authorization denied'}


def test_invalid_token_is_rejected(client):
    r = client.get('/api/vehicles', headers={'x-auth-token': 'garbage'})
    assert r.status_code == 401
    assert r.json() == {'msg': 'Token is not valid'}


def test_expired_token_is_rejected(client, register_user, app):
    register_user()
    identity = app.state.tokens.verify(register_user(name='Bob', email='b@x.com'))
    expired = TokenService('test-secret', lifetime=timedelta(seconds=-10)).issue(identity.user_id, 'Bob', False)
    r = client.get('/api/vehicles', headers={'x-auth-token': expired})
    assert r.status_code == 401
    assert r.json() == {'msg': 'Token is not valid'}


def test_bearer_header_is_not_accepted(client, register_user):
    token = register_user()
    r = client.get('/api/vehicles', headers={'Authorization': f'Bearer {token}'})
    assert r.status_code == 401


def test_non_admin_gets_403_on_admin_routes(client, register_user):
    token = register_user()
    headers = {'x-auth-token': token}
    for method, path, body in [
        ('PATCH', '/api/services/1/status', {'status': 'Completed'}),
        ('PUT', '/api/services/1', {'description': 'x'}),
        ('DELETE', '/api/services/1', None),
    ]:
        r = client.request(method, path, json=body, headers=headers)
        assert r.status_code == 403, (method, path)
        assert r.json() == {'msg': 'Access denied: Admin privileges required'}


def test_role_check_runs_before_body_validation(client, register_user):
    token = register_user()
    r = client.patch('/api/services/1/status', json={}, headers={'x-auth-token': token})
    assert r.status_code == 403


def test_authentication_runs_before_role_check(client):
    r = client.delete('/api/services/1')
    assert r.status_code == 401


def test_admin_passes_gate(client, register_user, make_admin):
    register_user(email='boss@x.com')
    admin = make_admin('boss@x.com')
    r = client.delete('/api/services/999', headers={'x-auth-token': admin})
    assert r.status_code == 404


def test_promotion_needs_a_new_token(client, register_user, make_admin):
    old = register_user(email='boss@x.com')
    make_admin('boss@x.com')
    r = client.delete('/api/services/999', headers={'x-auth-token': old})
    assert r.status_code == 403


def test_responses_carry_request_id(client):
    r = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert r.status_code == 200
    assert r.json() == {'status': 'ok'}
    assert r.headers['X-Request-ID'] == 'abc123'


def test_root_and_unknown_route(client):
    r = client.get('/')
    assert r.status_code == 200
    assert 'Running' in r.text
    missing = client.get('/api/nothing-here')
    assert missing.status_code == 404
    assert missing.json() == {'msg': 'Not Found'}
