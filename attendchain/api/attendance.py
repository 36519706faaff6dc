"""Attendance API endpoints: code validation, check-in and reporting."""
import io
from datetime import datetime

import pandas as pd
from flask import Blueprint, current_app, g, request, send_file
from flask_jwt_extended import jwt_required

from attendchain import db, limiter
from attendchain.models.course import Course
from attendchain.services.attendance_service import AttendanceService
from attendchain.services.location_service import ReportedLocationProvider
from attendchain.utils.decorators import student_required, teacher_required, user_required
from attendchain.utils.helpers import error_response, isoformat, parse_bool, success_response
from attendchain.utils.validators import Validator

attendance_bp = Blueprint('attendance', __name__)


def _record_dict(record):
    data = record.to_dict()
    explorer = current_app.config.get('LEDGER_EXPLORER_URL')
    data['ledger_tx_url'] = None
    if explorer and record.ledger_tx_hash:
        data['ledger_tx_url'] = f'{explorer}{record.ledger_tx_hash}'
    return data


def _parse_date(value):
    if not value:
        return None
    return datetime.fromisoformat(value)


@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')


@attendance_bp.route('/validate', methods=['POST'])
@jwt_required()
@user_required
@limiter.limit("60 per minute")
def validate_code():
    """Resolve a submitted code without recording anything."""
    data = request.get_json(silent=True) or {}

    now = datetime.utcnow()
    code = AttendanceService.validate_code(data.get('code'), now=now)

    return success_response(
        data={
            'code_id': code.id,
            'course_id': code.course_id,
            'course_name': code.course.name if code.course else None,
            'expires_at': isoformat(code.expires_at),
            'seconds_remaining': code.seconds_remaining(now),
            'requires_location': code.has_geofence,
            'radius_meters': code.radius_meters if code.has_geofence else None,
            'location_name': code.location_name
        },
        message="Code is valid"
    )


@attendance_bp.route('/check-in', methods=['POST'])
@jwt_required()
@student_required
@limiter.limit("20 per minute")
def check_in():
    """Mark attendance with a code, enforcing the issuer's geofence."""
    data = request.get_json(silent=True) or {}
    user = g.current_user

    record = AttendanceService.mark_attendance(
        user.id,
        data.get('code'),
        location_provider=ReportedLocationProvider.from_payload(data),
        is_late=parse_bool(data.get('is_late')),
        ledger_account=user.wallet_address
    )

    result = _record_dict(record)
    result['ledger_pending'] = current_app.extensions['ledger'].enabled

    return success_response(data=result, message="Attendance marked successfully", status_code=201)


@attendance_bp.route('/my-records', methods=['GET'])
@jwt_required()
@student_required
def my_records():
    """Attendance history of the current student."""
    records = AttendanceService.student_records(g.current_user.id, request.args.get('course_id'))
    return success_response(data=[_record_dict(record) for record in records])


@attendance_bp.route('/my-stats', methods=['GET'])
@jwt_required()
@student_required
def my_stats():
    """Present/late split and a per-month breakdown for one year."""
    try:
        year = int(request.args.get('year', datetime.utcnow().year))
    except ValueError:
        return error_response("year must be a number", 400)

    records = AttendanceService.student_records(g.current_user.id, request.args.get('course_id'))

    return success_response(data={
        'year': year,
        'summary': AttendanceService.calculate_stats(records),
        'monthly': AttendanceService.monthly_breakdown(records, year)
    })


def _owned_course(course_id):
    course = db.session.get(Course, course_id)
    if not course:
        return None, error_response("Course not found", 404)
    if not course.is_owned_by(g.current_user):
        return None, error_response("Access denied", 403)
    return course, None


@attendance_bp.route('/course/<course_id>', methods=['GET'])
@jwt_required()
@teacher_required
def course_attendance(course_id):
    """Attendance records for a course the teacher owns."""
    course, error = _owned_course(course_id)
    if error:
        return error

    try:
        from_date = _parse_date(request.args.get('from'))
        to_date = _parse_date(request.args.get('to'))
    except ValueError:
        return error_response("Invalid date format", 400)

    records = AttendanceService.course_records(course.id, from_date, to_date)

    return success_response(data={
        'course': course.to_dict(),
        'summary': AttendanceService.calculate_stats(records),
        'records': [
            dict(_record_dict(record),
                 student_name=record.student.full_name if record.student else None,
                 roll_number=record.student.roll_number if record.student else None)
            for record in records
        ]
    })


@attendance_bp.route('/course/<course_id>/export', methods=['GET'])
@jwt_required()
@teacher_required
@limiter.limit("10 per hour")
def export_course_attendance(course_id):
    """Export a course's attendance as CSV or Excel."""
    course, error = _owned_course(course_id)
    if error:
        return error

    export_format = request.args.get('format', 'csv').lower()
    if export_format not in ('csv', 'xlsx'):
        return error_response("format must be csv or xlsx", 400)

    df = AttendanceService.records_dataframe(AttendanceService.course_records(course.id))
    filename = f"{course.code}_attendance_{datetime.utcnow().strftime('%Y%m%d')}"

    if export_format == 'csv':
        output = io.StringIO()
        df.to_csv(output, index=False, encoding='utf-8-sig')
        output.seek(0)

        return output.getvalue(), 200, {
            'Content-Type': 'text/csv; charset=utf-8',
            'Content-Disposition': f'attachment; filename={filename}.csv'
        }

    excel_buffer = io.BytesIO()
    with pd.ExcelWriter(excel_buffer, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name='Attendance', index=False)
        summary = AttendanceService.calculate_stats(course.attendance_records.all())
        pd.DataFrame([summary]).to_excel(writer, sheet_name='Summary', index=False)
    excel_buffer.seek(0)

    return send_file(
        excel_buffer,
        as_attachment=True,
        download_name=f"{filename}.xlsx",
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )


@attendance_bp.route('/ledger/status', methods=['GET'])
@jwt_required()
@user_required
def ledger_status():
    """Read-side view of the ledger for an account (defaults to the caller's wallet)."""
    account = request.args.get('account') or g.current_user.wallet_address
    if not account:
        return error_response("No ledger account given and none saved on profile", 400)

    if not Validator.validate_wallet_address(account):
        return error_response("Invalid wallet address", 400)

    ledger = current_app.extensions['ledger']
    status = ledger.query_status(account)

    return success_response(data=dict(status, account=account, ledger_enabled=ledger.enabled))
