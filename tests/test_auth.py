"""Test authentication endpoints."""
import json

import pytest

from attendchain.models.user import User, UserRole


@pytest.fixture
def sample_user(make_user):
    """Create sample user for testing."""
    return make_user(UserRole.STUDENT, email='test@example.com', password='password123')


def test_health_check(client):
    """Test auth health endpoint."""
    response = client.get('/api/auth/health')
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['message'] == 'Auth service is running'


def test_app_health_reports_ledger(client):
    response = client.get('/health')
    data = json.loads(response.data)

    assert data['status'] == 'healthy'
    assert data['ledger_enabled'] is False


def test_register_success(client):
    """Test successful user registration."""
    response = client.post('/api/auth/register',
        json={
            'email': 'NewUser@Example.com',
            'password': 'password123',
            'first_name': 'New',
            'last_name': 'User',
            'roll_number': 'S2001'
        })

    assert response.status_code == 201
    data = json.loads(response.data)
    assert data['error'] is False
    assert data['data']['email'] == 'newuser@example.com'
    assert data['data']['role'] == 'student'
    assert 'password_hash' not in data['data']


def test_register_teacher(client):
    response = client.post('/api/auth/register',
        json={
            'email': 'prof@example.com',
            'password': 'password123',
            'first_name': 'Ada',
            'last_name': 'Lovelace',
            'role': 'teacher'
        })

    assert response.status_code == 201
    assert json.loads(response.data)['data']['role'] == 'teacher'


def test_register_cannot_create_admin(client):
    response = client.post('/api/auth/register',
        json={
            'email': 'root@example.com',
            'password': 'password123',
            'first_name': 'Root',
            'last_name': 'User',
            'role': 'admin'
        })

    assert response.status_code == 201
    assert User.query.filter_by(email='root@example.com').first().role == UserRole.STUDENT


def test_register_validation(client, sample_user):
    """Test registration validation."""
    # Missing fields
    response = client.post('/api/auth/register', json={})
    assert response.status_code == 400

    # Invalid email
    response = client.post('/api/auth/register',
        json={
            'email': 'invalid-email',
            'password': 'password123',
            'first_name': 'Test',
            'last_name': 'User'
        })
    assert response.status_code == 400

    # Short password
    response = client.post('/api/auth/register',
        json={
            'email': 'short@example.com',
            'password': '123',
            'first_name': 'Test',
            'last_name': 'User'
        })
    assert response.status_code == 400

    # Duplicate email
    response = client.post('/api/auth/register',
        json={
            'email': 'test@example.com',
            'password': 'password123',
            'first_name': 'Test',
            'last_name': 'User'
        })
    assert response.status_code == 400
    assert json.loads(response.data)['message'] == 'Email already exists'


def test_login_success(client, sample_user):
    """Test successful login."""
    response = client.post('/api/auth/login',
        json={
            'email': 'test@example.com',
            'password': 'password123'
        })

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['error'] is False
    assert 'access_token' in data['data']
    assert 'refresh_token' in data['data']
    assert 'user' in data['data']


def test_login_invalid_credentials(client, sample_user):
    """Test login with invalid credentials."""
    response = client.post('/api/auth/login',
        json={
            'email': 'test@example.com',
            'password': 'wrongpassword'
        })

    assert response.status_code == 401
    assert sample_user.failed_login_attempts == 1


def test_get_current_user(client, sample_user):
    """Test get current user profile."""
    # First login to get token
    login_response = client.post('/api/auth/login',
        json={
            'email': 'test@example.com',
            'password': 'password123'
        })

    token = json.loads(login_response.data)['data']['access_token']

    # Test profile endpoint
    response = client.get('/api/auth/me',
        headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['error'] is False
    assert data['data']['email'] == 'test@example.com'


def test_me_requires_token(client):
    response = client.get('/api/auth/me')

    assert response.status_code == 401
    assert json.loads(response.data)['message'] == 'Authorization token required'


def test_refresh_token(client, sample_user):
    login_response = client.post('/api/auth/login',
        json={'email': 'test@example.com', 'password': 'password123'})
    refresh = json.loads(login_response.data)['data']['refresh_token']

    response = client.post('/api/auth/refresh',
        headers={'Authorization': f'Bearer {refresh}'})

    assert response.status_code == 200
    assert 'access_token' in json.loads(response.data)['data']


def test_save_wallet(client, sample_user, auth_headers):
    wallet = '0x' + 'a1' * 20

    response = client.put('/api/auth/wallet', json={'wallet_address': wallet},
                          headers=auth_headers(sample_user))

    assert response.status_code == 200
    assert json.loads(response.data)['data']['wallet_address'] == wallet


def test_save_invalid_wallet(client, sample_user, auth_headers):
    response = client.put('/api/auth/wallet', json={'wallet_address': '0x123'},
                          headers=auth_headers(sample_user))

    assert response.status_code == 400
