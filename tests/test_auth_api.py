from datetime import datetime, timedelta, timezone

from accounts.tokens import decode_token, issue_token
from tests.app_helpers import auth_headers, register_and_login


def test_register_validates_fields(client):
    response = client.post('/api/auth/register', json={'email': 'a@example.com'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'All fields are required.'

    response = client.post(
        '/api/auth/register',
        json={'email': 'a@example.com', 'username': 'alice', 'password': 'weakpass'},
    )
    assert response.status_code == 400
    assert 'at least 8 characters' in response.get_json()['error']


def test_register_rejects_duplicates(client):
    payload = {'email': 'Alice@Example.com', 'username': 'alice', 'password': 'Secret!123'}
    response = client.post('/api/auth/register', json=payload)
    assert response.status_code == 201
    body = response.get_json()
    assert body['message'] == 'Registration successful'
    assert body['user']['email'] == 'alice@example.com'
    assert 'password' not in body['user']

    response = client.post(
        '/api/auth/register',
        json={'email': 'alice@example.com', 'username': 'other', 'password': 'Secret!123'},
    )
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Email or username already registered.'


def test_login_returns_token_and_profile_defaults(app_module, client):
    client.post(
        '/api/auth/register',
        json={'email': 'bob@example.com', 'username': 'bob', 'password': 'Secret!123'},
    )

    response = client.post(
        '/api/auth/login', json={'email': 'BOB@example.com', 'password': 'Secret!123'}
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body['message'] == 'Login successful'
    assert body['user']['profilePic'] == 'https://picsum.photos/200'
    assert body['user']['banner'] == 'https://picsum.photos/800/250'

    claims = decode_token(body['token'], secret=app_module.app.config['JWT_SECRET'])
    assert claims['username'] == 'bob'
    assert claims['id'] == body['user']['id']


def test_login_rejects_bad_credentials(client):
    client.post(
        '/api/auth/register',
        json={'email': 'carol@example.com', 'username': 'carol', 'password': 'Secret!123'},
    )

    response = client.post('/api/auth/login', json={'email': 'carol@example.com'})
    assert response.status_code == 400

    response = client.post(
        '/api/auth/login', json={'email': 'carol@example.com', 'password': 'Wrong!1234'}
    )
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Invalid email or password'

    response = client.post(
        '/api/auth/login', json={'email': 'nobody@example.com', 'password': 'Secret!123'}
    )
    assert response.status_code == 401


def test_logout(client):
    response = client.post('/api/auth/logout')
    assert response.status_code == 200
    assert response.get_json() == {'message': 'Logged out successfully'}


def test_protected_dashboard_requires_valid_token(app_module, client):
    token, user = register_and_login(client, username='dave')

    response = client.get('/api/protected/dashboard')
    assert response.status_code == 401

    response = client.get('/api/protected/dashboard', headers=auth_headers('garbage'))
    assert response.status_code == 403

    expired = issue_token(
        user['id'],
        'dave',
        secret=app_module.app.config['JWT_SECRET'],
        ttl_seconds=60,
        now=datetime.now(timezone.utc) - timedelta(hours=2),
    )
    response = client.get('/api/protected/dashboard', headers=auth_headers(expired))
    assert response.status_code == 403

    response = client.get('/api/protected/dashboard', headers=auth_headers(token))
    assert response.status_code == 200
    body = response.get_json()
    assert body['message'] == 'Welcome to the protected dashboard!'
    assert body['user']['username'] == 'dave'
