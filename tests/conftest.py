import io

import pytest

from config import TestingConfig
from sikeu import create_app
from sikeu.extensions import db as _db
from sikeu.models import User, UserRole
from sikeu.storage.drive import DriveRelay

PASSWORDS = {
    UserRole.ADMIN: 'admin123',
    UserRole.BENDAHARA: 'bendahara123',
    UserRole.GURU: 'guru123',
    UserRole.PARENT: 'parent123',
}

EMAILS = {
    UserRole.ADMIN: 'admin@tk.sch.id',
    UserRole.BENDAHARA: 'bendahara@tk.sch.id',
    UserRole.GURU: 'guru@tk.sch.id',
    UserRole.PARENT: 'budi@example.com',
}


# ==========================================
# FAKE GOOGLE DRIVE
# ==========================================
class FakeRequest:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def execute(self):
        if self.error is not None:
            raise self.error
        return self.result


class FakeFiles:
    def __init__(self, service):
        self.service = service

    def create(self, body, media_body, fields):
        media_body._fd.seek(0)
        self.service.created.append({
            'body': body,
            'content': media_body._fd.read(),
            'mimetype': media_body.mimetype(),
            'fields': fields,
        })
        return FakeRequest(
            result={'id': self.service.next_id, 'name': body['name']},
            error=self.service.error,
        )

    def list(self, q, fields, pageToken=None):
        self.service.list_queries.append(q)
        return FakeRequest(result={'files': list(self.service.folder_files)})

    def delete(self, fileId):
        self.service.deleted.append(fileId)
        return FakeRequest(result='')


class FakeDriveService:
    def __init__(self):
        self.created = []
        self.deleted = []
        self.list_queries = []
        self.folder_files = []
        self.error = None
        self.next_id = 'drive-file-1'
        self.settings = []

    def files(self):
        return FakeFiles(self)


@pytest.fixture
def drive(monkeypatch):
    service = FakeDriveService()

    def fake_build(relay, settings):
        service.settings.append(settings)
        return service

    monkeypatch.setattr(DriveRelay, '_build_service', fake_build)
    return service


# ==========================================
# APP & DATABASE
# ==========================================
@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def users(app):
    created = {}
    for role, email in EMAILS.items():
        user = User(name=f'User {role.value}', email=email, role=role)
        user.set_password(PASSWORDS[role])
        _db.session.add(user)
        created[role] = user
    _db.session.commit()
    return {role: user.id for role, user in created.items()}


@pytest.fixture
def login(client, users):
    def _login(role):
        return client.post('/login', data={'email': EMAILS[role], 'password': PASSWORDS[role]})
    return _login


def proof_file(content=b'%PDF-1.4 bukti transfer', name='bukti.pdf', mimetype='application/pdf'):
    return (io.BytesIO(content), name, mimetype)
