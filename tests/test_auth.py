import re

from sikeu.extensions import db
from sikeu.models import User, UserRole

from conftest import EMAILS


def test_wrong_password_shows_generic_message(client, users):
    response = client.post('/login', data={'email': EMAILS[UserRole.ADMIN], 'password': 'salah'})

    assert response.status_code == 200
    assert 'Email atau password salah.' in response.get_data(as_text=True)


def test_unknown_email_shows_the_same_message(client, users):
    response = client.post('/login', data={'email': 'siapa@example.com', 'password': 'salah'})

    assert 'Email atau password salah.' in response.get_data(as_text=True)


def test_login_redirects_to_role_home(client, login):
    response = login(UserRole.PARENT)
    assert response.status_code == 302

    response = client.get(response.headers['Location'])
    assert response.headers['Location'].endswith('/parent')


def test_register_creates_parent_account(client):
    response = client.post('/register', data={
        'name': 'Dewi Lestari',
        'email': 'Dewi@Example.com',
        'password': 'rahasia1',
        'confirm_password': 'rahasia1',
    })

    assert response.status_code == 302
    user = User.query.filter_by(email='dewi@example.com').one()
    assert user.role is UserRole.PARENT
    assert user.check_password('rahasia1')


def test_register_rejects_short_or_mismatched_password(client):
    response = client.post('/register', data={
        'name': 'Dewi', 'email': 'dewi@example.com', 'password': '123', 'confirm_password': '456',
    })

    assert response.status_code == 200
    assert User.query.count() == 0


def test_register_rejects_duplicate_email(client, users):
    response = client.post('/register', data={
        'name': 'Budi Lagi', 'email': EMAILS[UserRole.PARENT], 'password': 'rahasia1', 'confirm_password': 'rahasia1',
    })

    assert 'Email sudah terdaftar' in response.get_data(as_text=True)


def test_password_reset_flow(app, client, users, caplog):
    caplog.set_level('INFO')

    response = client.post('/forgot-password', data={'email': EMAILS[UserRole.PARENT]})
    assert response.status_code == 302

    match = re.search(r'(/reset-password/[^\s]+)', caplog.text)
    assert match, caplog.text
    reset_path = match.group(1)

    response = client.post(reset_path, data={'password': 'baru1234', 'confirm_password': 'baru1234'})
    assert response.status_code == 302

    db.session.expire_all()
    assert db.session.get(User, users[UserRole.PARENT]).check_password('baru1234')

    # Token tidak bisa dipakai dua kali
    response = client.post(reset_path, data={'password': 'lagi1234', 'confirm_password': 'lagi1234'})
    assert response.headers['Location'].endswith('/forgot-password')


def test_forgot_password_does_not_reveal_unknown_email(client, users):
    response = client.post('/forgot-password', data={'email': 'siapa@example.com'}, follow_redirects=True)

    assert 'Jika email terdaftar' in response.get_data(as_text=True)


def test_bad_reset_token_is_rejected(client, users):
    response = client.get('/reset-password/token-palsu')

    assert response.status_code == 302
    assert response.headers['Location'].endswith('/forgot-password')


def test_logout_ends_session(client, login):
    login(UserRole.ADMIN)

    client.post('/logout')
    response = client.get('/admin')

    assert response.headers['Location'].endswith('/login')
