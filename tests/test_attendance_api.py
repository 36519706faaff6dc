"""Test code issuance and check-in endpoints."""
import io
import json
from datetime import datetime, timedelta

import pytest

from attendchain.models.attendance import AttendanceRecord
from attendchain.models.user import UserRole
from attendchain.services.code_service import CODE_ALPHABET
from tests.conftest import point_north_of

ORIGIN = {'latitude': 40.0, 'longitude': -75.0}


@pytest.fixture
def geofenced_code(make_code):
    return make_code(token='AB12CD', origin=(40.0, -75.0), radius_meters=100)


def check_in(client, headers, **body):
    return client.post('/api/attendance/check-in', json=body, headers=headers)


# =================== CODES ===================

def test_teacher_issues_code(client, teacher, course, auth_headers):
    response = client.post('/api/codes/',
        json=dict(ORIGIN, course_id=course.id, radius_meters=50, location_name='Room 101'),
        headers=auth_headers(teacher))

    assert response.status_code == 201
    data = json.loads(response.data)['data']
    assert len(data['token']) == 6
    assert set(data['token']) <= set(CODE_ALPHABET)
    assert 295 <= data['seconds_remaining'] <= 300
    assert data['geofence'] is True
    assert data['radius_meters'] == 50
    assert data['location_name'] == 'Room 101'
    assert data['qr_image'].startswith('data:image/png;base64,')


def test_issue_code_clamps_validity(client, teacher, course, auth_headers):
    response = client.post('/api/codes/',
        json={'course_id': course.id, 'validity_minutes': 1000},
        headers=auth_headers(teacher))

    data = json.loads(response.data)['data']
    assert data['validity_minutes'] == 60
    assert data['geofence'] is False


def test_issue_code_rejects_bad_coordinates(client, teacher, course, auth_headers):
    response = client.post('/api/codes/',
        json={'course_id': course.id, 'latitude': 95, 'longitude': 0},
        headers=auth_headers(teacher))

    assert response.status_code == 400


def test_issue_code_requires_ownership(client, make_user, course, auth_headers):
    other = make_user(UserRole.TEACHER)

    response = client.post('/api/codes/', json={'course_id': course.id},
                           headers=auth_headers(other))

    assert response.status_code == 403


def test_student_cannot_issue_code(client, student, course, auth_headers):
    response = client.post('/api/codes/', json={'course_id': course.id},
                           headers=auth_headers(student))

    assert response.status_code == 403


def test_active_code_and_invalidate(client, teacher, course, geofenced_code, auth_headers):
    headers = auth_headers(teacher)

    active = client.get(f'/api/codes/course/{course.id}/active', headers=headers)
    assert json.loads(active.data)['data']['token'] == 'AB12CD'

    response = client.post(f'/api/codes/{geofenced_code.id}/invalidate', headers=headers)
    assert response.status_code == 200
    assert json.loads(response.data)['data']['is_active'] is False

    active = client.get(f'/api/codes/course/{course.id}/active', headers=headers)
    assert active.status_code == 404


# =================== VALIDATION AND CHECK-IN ===================

def test_validate_code(client, student, geofenced_code, auth_headers):
    response = client.post('/api/attendance/validate', json={'code': ' ab12cd '},
                           headers=auth_headers(student))

    assert response.status_code == 200
    data = json.loads(response.data)['data']
    assert data['code_id'] == geofenced_code.id
    assert data['requires_location'] is True
    assert data['course_name'] == 'Distributed Systems'


def test_validate_malformed_code(client, student, auth_headers):
    response = client.post('/api/attendance/validate', json={'code': 'AB1'},
                           headers=auth_headers(student))

    assert response.status_code == 400
    assert json.loads(response.data)['error_code'] == 'INVALID_CODE'


def test_check_in_and_duplicate(client, student, geofenced_code, auth_headers):
    headers = auth_headers(student)

    first = check_in(client, headers, code='ab12cd', accuracy=6, **ORIGIN)
    assert first.status_code == 201
    data = json.loads(first.data)['data']
    assert data['status'] == 'present'
    assert data['distance_from_issuer_meters'] == pytest.approx(0, abs=0.01)
    assert data['ledger_pending'] is False

    second = check_in(client, headers, code='AB12CD', **ORIGIN)
    assert second.status_code == 409
    assert json.loads(second.data)['error_code'] == 'ALREADY_MARKED'
    assert AttendanceRecord.query.count() == 1


def test_check_in_late_flag(client, student, make_code, auth_headers):
    make_code()

    response = check_in(client, auth_headers(student), code='AB12CD', is_late='true')

    assert json.loads(response.data)['data']['status'] == 'late'


def test_check_in_out_of_range(client, student, geofenced_code, auth_headers):
    latitude, longitude = point_north_of(40.0, -75.0, 500)

    response = check_in(client, auth_headers(student), code='AB12CD',
                        latitude=latitude, longitude=longitude)

    assert response.status_code == 403
    body = json.loads(response.data)
    assert body['error_code'] == 'OUT_OF_RANGE'
    assert body['details']['distance_meters'] == pytest.approx(500, abs=0.5)
    assert body['details']['allowed_radius_meters'] == 100


def test_check_in_permission_denied(client, student, geofenced_code, auth_headers):
    response = check_in(client, auth_headers(student), code='AB12CD',
                        location_error='PERMISSION_DENIED')

    assert response.status_code == 422
    body = json.loads(response.data)
    assert body['error_code'] == 'LOCATION_UNAVAILABLE'
    assert body['details']['reason'] == 'PERMISSION_DENIED'


def test_check_in_location_timeout(client, student, geofenced_code, auth_headers):
    response = check_in(client, auth_headers(student), code='AB12CD', location_error='TIMEOUT')

    assert response.status_code == 408
    assert json.loads(response.data)['error_code'] == 'LOCATION_TIMEOUT'


def test_check_in_expired_code(client, student, make_code, auth_headers):
    make_code(created_at=datetime.utcnow() - timedelta(minutes=6))

    response = check_in(client, auth_headers(student), code='AB12CD', **ORIGIN)

    assert response.status_code == 404
    assert json.loads(response.data)['error_code'] == 'CODE_NOT_FOUND_OR_EXPIRED'


def test_teacher_cannot_check_in(client, teacher, geofenced_code, auth_headers):
    response = check_in(client, auth_headers(teacher), code='AB12CD', **ORIGIN)

    assert response.status_code == 403


# =================== REPORTING ===================

@pytest.fixture
def checked_in(client, student, geofenced_code, auth_headers):
    check_in(client, auth_headers(student), code='AB12CD', **ORIGIN)


def test_my_records_and_stats(client, student, checked_in, auth_headers):
    headers = auth_headers(student)

    records = json.loads(client.get('/api/attendance/my-records', headers=headers).data)['data']
    assert len(records) == 1
    assert records[0]['course_name'] == 'Distributed Systems'

    stats = json.loads(client.get('/api/attendance/my-stats', headers=headers).data)['data']
    assert stats['summary']['total'] == 1
    assert stats['summary']['present_percent'] == 100
    assert len(stats['monthly']) == 12


def test_course_attendance(client, teacher, course, checked_in, auth_headers):
    response = client.get(f'/api/attendance/course/{course.id}', headers=auth_headers(teacher))

    data = json.loads(response.data)['data']
    assert data['summary']['present'] == 1
    assert data['records'][0]['student_name'] == 'Alan Turing'


def test_course_attendance_requires_owner(client, make_user, course, auth_headers):
    other = make_user(UserRole.TEACHER)

    response = client.get(f'/api/attendance/course/{course.id}', headers=auth_headers(other))

    assert response.status_code == 403


def test_export_csv(client, teacher, course, checked_in, auth_headers):
    response = client.get(f'/api/attendance/course/{course.id}/export?format=csv',
                          headers=auth_headers(teacher))

    assert response.status_code == 200
    assert response.headers['Content-Type'].startswith('text/csv')
    lines = response.data.decode('utf-8-sig').splitlines()
    assert lines[0].startswith('Date,Student,Roll Number,Course,Status')
    assert 'Alan Turing' in lines[1]


def test_export_xlsx(client, teacher, course, checked_in, auth_headers):
    import pandas as pd

    response = client.get(f'/api/attendance/course/{course.id}/export?format=xlsx',
                          headers=auth_headers(teacher))

    assert response.status_code == 200
    df = pd.read_excel(io.BytesIO(response.data), sheet_name='Attendance')
    assert df.iloc[0]['Student'] == 'Alan Turing'


def test_export_unknown_format(client, teacher, course, auth_headers):
    response = client.get(f'/api/attendance/course/{course.id}/export?format=pdf',
                          headers=auth_headers(teacher))

    assert response.status_code == 400


def test_ledger_status_needs_account(client, student, auth_headers):
    response = client.get('/api/attendance/ledger/status', headers=auth_headers(student))

    assert response.status_code == 400


def test_ledger_status(client, student, auth_headers):
    account = '0x' + 'b2' * 20

    response = client.get(f'/api/attendance/ledger/status?account={account}',
                          headers=auth_headers(student))

    data = json.loads(response.data)['data']
    assert data == {'has_marked': False, 'count': 0, 'account': account, 'ledger_enabled': False}
