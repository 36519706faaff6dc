"""Tests for attendance code issuance."""
import base64
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from attendchain import db
from attendchain.models.attendance_code import AttendanceCode
from attendchain.services.code_service import CODE_ALPHABET, CodeService
from attendchain.services.location_service import Location
from attendchain.utils.errors import StoreError
from tests.conftest import T0


def test_generate_token_alphabet_and_length():
    for _ in range(200):
        token = CodeService.generate_token()
        assert len(token) == 6
        assert set(token) <= set(CODE_ALPHABET)


def test_render_qr_is_png_data_uri():
    image = CodeService.render_qr('AB12CD')

    assert image.startswith('data:image/png;base64,')
    raw = base64.b64decode(image.split(',', 1)[1])
    assert raw[:8] == b'\x89PNG\r\n\x1a\n'


def test_issue_code_without_location(app, teacher, course):
    issued = CodeService.issue_code(teacher.id, course.id, now=T0)

    assert len(issued.token) == 6
    assert issued.expires_at == T0 + timedelta(minutes=5)
    assert not issued.code.has_geofence
    assert issued.code.radius_meters == 100
    assert issued.qr_image.startswith('data:image/png;base64,')
    assert AttendanceCode.query.count() == 1


def test_issue_code_with_location(app, teacher, course):
    issued = CodeService.issue_code(
        teacher.id, course.id,
        location=Location(40.0, -75.0, 8.0),
        validity_minutes=10,
        radius_meters=50,
        now=T0
    )
    code = issued.code

    assert code.has_geofence
    assert (code.origin_latitude, code.origin_longitude) == (40.0, -75.0)
    assert code.radius_meters == 50
    assert code.location_name == 'Location: 40.000000, -75.000000'
    assert code.expires_at == T0 + timedelta(minutes=10)


def test_issue_code_publishes_to_ledger(app, teacher, course, fake_ledger):
    issued = CodeService.issue_code(teacher.id, course.id, now=T0)

    assert app.extensions['ledger'].wait_idle(timeout=5)
    assert fake_ledger.published == [(issued.token, 5)]


def test_issue_code_survives_ledger_failure(app, teacher, course, failing_ledger):
    issued = CodeService.issue_code(teacher.id, course.id, now=T0)

    assert app.extensions['ledger'].wait_idle(timeout=5)
    assert failing_ledger.published
    assert db.session.get(AttendanceCode, issued.code.id) is not None


def test_issue_code_survives_dispatch_error(app, teacher, course, fake_ledger, monkeypatch):
    def broken_dispatch(token, validity_minutes):
        raise RuntimeError('cannot schedule new futures after shutdown')

    monkeypatch.setattr(app.extensions['ledger'], 'dispatch_code', broken_dispatch)

    issued = CodeService.issue_code(teacher.id, course.id, now=T0)

    assert issued.qr_image.startswith('data:image/png;base64,')
    assert db.session.get(AttendanceCode, issued.code.id) is not None
    assert fake_ledger.published == []


def test_issue_code_dispatch_error_over_http(client, teacher, course, auth_headers, monkeypatch):
    def broken_dispatch(token, validity_minutes):
        raise RuntimeError('cannot schedule new futures after shutdown')

    monkeypatch.setattr(client.application.extensions['ledger'], 'dispatch_code', broken_dispatch)

    response = client.post('/api/codes/', json={'course_id': course.id},
                           headers=auth_headers(teacher))

    assert response.status_code == 201
    assert AttendanceCode.query.count() == 1


def test_issue_code_store_failure(app, teacher, course, monkeypatch):
    def broken_commit():
        raise SQLAlchemyError('connection lost')

    monkeypatch.setattr(db.session, 'commit', broken_commit)

    with pytest.raises(StoreError):
        CodeService.issue_code(teacher.id, course.id, now=T0)


def test_active_code_is_newest_live(app, course, make_code):
    make_code(token='OLD111', created_at=T0)
    newest = make_code(token='NEW222', created_at=T0 + timedelta(minutes=1))

    assert CodeService.get_active_code(course.id, T0 + timedelta(minutes=2)).id == newest.id
    assert CodeService.get_active_code(course.id, T0 + timedelta(minutes=7)) is None


def test_invalidate_moves_expiry(app, make_code):
    code = make_code(created_at=T0)
    now = T0 + timedelta(minutes=1)

    CodeService.invalidate(code, now)

    assert code.expires_at == now
    assert code.is_expired(now)
    assert code.seconds_remaining(now) == 0


def test_invalidate_leaves_dead_code_alone(app, make_code):
    code = make_code(created_at=T0)
    original_expiry = code.expires_at

    CodeService.invalidate(code, T0 + timedelta(hours=1))

    assert code.expires_at == original_expiry


def test_count_expired(app, make_code):
    make_code(token='AAAAAA', created_at=T0 - timedelta(days=40))
    make_code(token='BBBBBB', created_at=T0)

    assert CodeService.count_expired(T0 - timedelta(days=30)) == 1
