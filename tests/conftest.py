"""Shared fixtures for the attendance service tests."""
import itertools
import math
from datetime import datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token

from attendchain import create_app, db
from attendchain.models.attendance_code import AttendanceCode
from attendchain.models.course import Course, CourseStudent
from attendchain.models.user import User, UserRole
from attendchain.services.geo_service import GeoService
from attendchain.services.ledger_service import LedgerMirror
from attendchain.utils.errors import LedgerError

T0 = datetime(2026, 3, 2, 9, 0, 0)


def point_north_of(latitude, longitude, meters):
    """Coordinate ``meters`` due north along the meridian."""
    return latitude + math.degrees(meters / GeoService.EARTH_RADIUS_METERS), longitude


class FakeLedgerMirror(LedgerMirror):
    """In-memory ledger that records what it was asked to do."""

    def __init__(self, fail=False, tx_hash='0x' + 'ab' * 32):
        self.fail = fail
        self.tx_hash = tx_hash
        self.submitted = []
        self.published = []

    def publish_code(self, token, validity_minutes):
        self.published.append((token, validity_minutes))
        if self.fail:
            raise LedgerError('relay unreachable')
        return '0xcode'

    def submit(self, token, account=None):
        self.submitted.append((token, account))
        if self.fail:
            raise LedgerError('relay unreachable')
        return self.tx_hash

    def query_status(self, account):
        return {'has_marked': bool(self.submitted), 'count': len(self.submitted)}


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        app.extensions['ledger'].wait_idle(timeout=5)
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make_user(role=UserRole.STUDENT, email=None, password='password123', **kwargs):
        n = next(counter)
        user = User(
            email=email or f'user{n}@example.com',
            first_name=kwargs.pop('first_name', 'Test'),
            last_name=kwargs.pop('last_name', f'User{n}'),
            role=role,
            **kwargs
        )
        user.set_password(password)
        return user.save()

    return _make_user


@pytest.fixture
def teacher(make_user):
    return make_user(UserRole.TEACHER, email='teacher@example.com',
                     first_name='Grace', last_name='Hopper')


@pytest.fixture
def student(make_user):
    return make_user(UserRole.STUDENT, email='student@example.com',
                     first_name='Alan', last_name='Turing', roll_number='S1001')


@pytest.fixture
def course(teacher, student):
    """Course owned by ``teacher`` with ``student`` enrolled."""
    course = Course(name='Distributed Systems', code='CS401', teacher_id=teacher.id).save()
    CourseStudent(course_id=course.id, student_id=student.id).save()
    return course


@pytest.fixture
def make_code(teacher, course):
    def _make_code(token='AB12CD', created_at=None, validity_minutes=5,
                   origin=None, radius_meters=100):
        created_at = created_at or datetime.utcnow()
        code = AttendanceCode(
            issuer_id=teacher.id,
            course_id=course.id,
            token=token,
            created_at=created_at,
            expires_at=created_at + timedelta(minutes=validity_minutes),
            radius_meters=radius_meters
        )
        if origin is not None:
            code.origin_latitude, code.origin_longitude = origin
        return code.save()

    return _make_code


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=user.id)
        return {'Authorization': f'Bearer {token}'}

    return _headers


@pytest.fixture
def fake_ledger(app):
    mirror = FakeLedgerMirror()
    app.extensions['ledger'].mirror = mirror
    return mirror


@pytest.fixture
def failing_ledger(app):
    mirror = FakeLedgerMirror(fail=True)
    app.extensions['ledger'].mirror = mirror
    return mirror
