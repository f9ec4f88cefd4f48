from sqlmodel import Session, select

from service_shop import models, repositories


def test_register_returns_token(client):
    r = client.post('/api/auth/register', json={'name': 'Alice', 'email': 'a@x.com', 'password': 'secret1'})
    assert r.status_code == 200
    body = r.json()
    assert body['msg'] == 'User registered successfully!'
    assert body['token']


def test_register_twice_with_same_email_any_case_conflicts(client, app):
    r1 = client.post('/api/auth/register', json={'name': 'Alice', 'email': 'a@x.com', 'password': 'secret1'})
    assert r1.status_code == 200
    r2 = client.post('/api/auth/register', json={'name': 'Alice 2', 'email': ' A@X.COM ', 'password': 'secret2'})
    assert r2.status_code == 400
    assert r2.json() == {'msg': 'User already exists'}
    with Session(app.state.engine) as session:
        users = session.exec(select(models.User)).all()
    assert [u.email for u in users] == ['a@x.com']


def test_register_race_is_caught_by_unique_email_index(client, app, monkeypatch):
    r1 = client.post('/api/auth/register', json={'name': 'Alice', 'email': 'a@x.com', 'password': 'secret1'})
    assert r1.status_code == 200
    # another request inserted the row after this one checked for it
    monkeypatch.setattr(repositories.UserRepository, 'get_by_email', lambda self, email: None)
    r2 = client.post('/api/auth/register', json={'name': 'Alice 2', 'email': 'a@x.com', 'password': 'secret2'})
    assert r2.status_code == 400
    assert r2.json() == {'msg': 'User already exists'}
    with Session(app.state.engine) as session:
        users = session.exec(select(models.User)).all()
    assert [u.name for u in users] == ['Alice']


def test_register_validation_errors(client):
    r = client.post('/api/auth/register', json={'name': '  ', 'email': 'not-an-email', 'password': '123'})
    assert r.status_code == 400
    errors = r.json()['errors']
    by_param = {e['param']: e['msg'] for e in errors}
    assert by_param['name'] == 'Name is required'
    assert by_param['email'] == 'Please include a valid email'
    assert by_param['password'] == 'Please enter a password with 6 or more characters'
    assert all(e['location'] == 'body' for e in errors)


def test_password_is_stored_hashed(client, app, register_user):
    register_user(email='a@x.com', password='secret1')
    with Session(app.state.engine) as session:
        user = session.exec(select(models.User)).one()
    assert user.password_hash != 'secret1'
    assert 'secret1' not in user.password_hash
    assert user.is_admin is False


def test_login_scenario(client, register_user):
    register_user(name='Alice', email='a@x.com', password='secret1')
    wrong = client.post('/api/auth/login', json={'email': 'a@x.com', 'password': 'secret2'})
    assert wrong.status_code == 400
    assert wrong.json() == {'msg': 'Invalid Credentials'}
    ok = client.post('/api/auth/login', json={'email': 'a@x.com', 'password': 'secret1'})
    assert ok.status_code == 200
    assert ok.json()['msg'] == 'Logged in successfully!'
    assert ok.json()['token']


def test_login_unknown_user_same_message_as_wrong_password(client):
    r = client.post('/api/auth/login', json={'email': 'ghost@x.com', 'password': 'whatever'})
    assert r.status_code == 400
    assert r.json() == {'msg': 'Invalid Credentials'}


def test_login_email_is_case_insensitive(client, register_user):
    register_user(email='a@x.com')
    r = client.post('/api/auth/login', json={'email': 'A@X.com', 'password': 'secret1'})
    assert r.status_code == 200


def test_login_requires_password(client):
    r = client.post('/api/auth/login', json={'email': 'a@x.com'})
    assert r.status_code == 400
    assert r.json()['errors'][0]['param'] == 'password'


def test_token_carries_identity(client, app, register_user):
    token = register_user(name='Alice', email='a@x.com')
    identity = app.state.tokens.verify(token)
    assert identity.name == 'Alice'
    assert identity.is_admin is False
    assert isinstance(identity.user_id, int)
