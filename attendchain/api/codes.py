"""Attendance code API endpoints (issuer side)."""
from datetime import datetime

from flask import Blueprint, current_app, g, request
from flask_jwt_extended import jwt_required

from attendchain import db, limiter
from attendchain.models.attendance_code import AttendanceCode
from attendchain.models.course import Course
from attendchain.services.code_service import CodeService
from attendchain.services.location_service import Location
from attendchain.utils.decorators import teacher_required
from attendchain.utils.helpers import error_response, isoformat, success_response
from attendchain.utils.validators import Validator

codes_bp = Blueprint('codes', __name__)


def _issuer_location(data):
    """Issuer position from the request body, or None when not sent."""
    latitude = data.get('latitude')
    longitude = data.get('longitude')
    if latitude is None and longitude is None:
        return None, None

    if not Validator.validate_coordinates(latitude, longitude):
        return None, 'Invalid issuer coordinates'

    accuracy = data.get('accuracy')
    try:
        accuracy = float(accuracy) if accuracy is not None else None
    except (TypeError, ValueError):
        accuracy = None

    return Location(float(latitude), float(longitude), accuracy), None


@codes_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Code service is running')


@codes_bp.route('/', methods=['POST'])
@jwt_required()
@teacher_required
@limiter.limit("30 per hour")
def issue_code():
    """Issue a time-limited attendance code for a course."""
    data = request.get_json(silent=True) or {}

    if not data.get('course_id'):
        return error_response("course_id is required", 400)

    course = db.session.get(Course, data['course_id'])
    if not course:
        return error_response("Course not found", 404)

    if not course.is_owned_by(g.current_user):
        return error_response("You can only issue codes for your own courses", 403)

    config = current_app.config
    validity = data.get('validity_minutes', config['ATTENDANCE_CODE_VALIDITY_MINUTES'])
    try:
        validity = int(validity)
    except (TypeError, ValueError):
        return error_response("validity_minutes must be a whole number", 400)
    validity = max(1, min(validity, config['ATTENDANCE_CODE_MAX_VALIDITY_MINUTES']))

    radius = data.get('radius_meters')
    if radius is not None:
        try:
            radius = float(radius)
        except (TypeError, ValueError):
            return error_response("radius_meters must be a number", 400)
        if radius <= 0:
            return error_response("radius_meters must be positive", 400)

    location, location_error = _issuer_location(data)
    if location_error:
        return error_response(location_error, 400)

    now = datetime.utcnow()
    issued = CodeService.issue_code(
        issuer_id=g.current_user.id,
        course_id=course.id,
        location=location,
        validity_minutes=validity,
        radius_meters=radius,
        location_name=data.get('location_name'),
        now=now
    )

    return success_response(
        data={
            'id': issued.code.id,
            'token': issued.token,
            'course_id': course.id,
            'course_name': course.name,
            'expires_at': isoformat(issued.expires_at),
            'seconds_remaining': issued.code.seconds_remaining(now),
            'validity_minutes': validity,
            'geofence': issued.code.has_geofence,
            'radius_meters': issued.code.radius_meters,
            'location_name': issued.code.location_name,
            'qr_image': issued.qr_image
        },
        message="Attendance code generated successfully",
        status_code=201
    )


@codes_bp.route('/course/<course_id>/active', methods=['GET'])
@jwt_required()
@teacher_required
def active_code(course_id):
    """Most recent live code for a course."""
    course = db.session.get(Course, course_id)
    if not course:
        return error_response("Course not found", 404)

    if not course.is_owned_by(g.current_user):
        return error_response("Access denied", 403)

    now = datetime.utcnow()
    code = CodeService.get_active_code(course.id, now)
    if code is None:
        return error_response("No active code for this course", 404)

    return success_response(data=code.to_dict(now))


@codes_bp.route('/<code_id>/invalidate', methods=['POST'])
@jwt_required()
@teacher_required
def invalidate_code(code_id):
    """End a code before its expiry."""
    code = db.session.get(AttendanceCode, code_id)
    if not code:
        return error_response("Code not found", 404)

    if not code.course.is_owned_by(g.current_user):
        return error_response("Access denied", 403)

    now = datetime.utcnow()
    CodeService.invalidate(code, now)
    return success_response(data=code.to_dict(now), message="Code invalidated")
