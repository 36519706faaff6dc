"""Attendance code generation, issuance and QR rendering."""
import base64
import io
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import qrcode
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from attendchain import db
from attendchain.models.attendance_code import AttendanceCode
from attendchain.services.geo_service import GeoService
from attendchain.services.location_service import Location
from attendchain.utils.errors import StoreError

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


@dataclass
class IssuedCode:
    """What the issuer needs to display a code."""
    code: AttendanceCode
    qr_image: str

    @property
    def token(self) -> str:
        return self.code.token

    @property
    def expires_at(self) -> datetime:
        return self.code.expires_at


class CodeService:
    """Service for attendance code operations."""

    @staticmethod
    def generate_token(length: int = 6) -> str:
        """Random token drawn from [A-Z0-9]. Not checked against outstanding codes."""
        return ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))

    @staticmethod
    def render_qr(token: str) -> str:
        """Render the token as a PNG data URI. The token alone is the QR payload."""
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=10,
            border=4,
        )
        qr.add_data(token)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        img_str = base64.b64encode(buffered.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"

    @staticmethod
    def issue_code(issuer_id: str, course_id: str,
                   location: Optional[Location] = None,
                   validity_minutes: Optional[int] = None,
                   radius_meters: Optional[float] = None,
                   location_name: Optional[str] = None,
                   now: Optional[datetime] = None) -> IssuedCode:
        """Create and persist a new code for a course.

        ``location`` is the issuer's position; without it no geofence applies.
        """
        config = current_app.config
        now = now or datetime.utcnow()
        if validity_minutes is None:
            validity_minutes = config['ATTENDANCE_CODE_VALIDITY_MINUTES']
        if radius_meters is None:
            radius_meters = config['DEFAULT_GEOFENCE_RADIUS_METERS']

        code = AttendanceCode(
            issuer_id=issuer_id,
            course_id=course_id,
            token=CodeService.generate_token(config['ATTENDANCE_CODE_LENGTH']),
            created_at=now,
            expires_at=now + timedelta(minutes=validity_minutes),
            radius_meters=radius_meters
        )
        if location is not None:
            code.origin_latitude = location.latitude
            code.origin_longitude = location.longitude
            code.location_name = location_name or GeoService.describe_location(
                location.latitude, location.longitude
            )

        try:
            db.session.add(code)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Failed to store attendance code for course %s', course_id, exc_info=True)
            raise StoreError() from e

        logger.info('Issued code %s for course %s (expires %s, geofence=%s)',
                    code.id, course_id, code.expires_at.isoformat(), code.has_geofence)

        ledger = current_app.extensions.get('ledger')
        if ledger is not None:
            try:
                ledger.dispatch_code(code.token, validity_minutes)
            except Exception:
                logger.error('Could not dispatch ledger publish for code %s', code.id, exc_info=True)

        return IssuedCode(code=code, qr_image=CodeService.render_qr(code.token))

    @staticmethod
    def get_active_code(course_id: str, now: Optional[datetime] = None) -> Optional[AttendanceCode]:
        """Most recently created code for a course that is still alive."""
        now = now or datetime.utcnow()
        return (
            AttendanceCode.query
            .filter(AttendanceCode.course_id == course_id, AttendanceCode.expires_at > now)
            .order_by(AttendanceCode.created_at.desc())
            .first()
        )

    @staticmethod
    def invalidate(code: AttendanceCode, now: Optional[datetime] = None) -> AttendanceCode:
        """End a code early by moving its expiry to now."""
        now = now or datetime.utcnow()
        if code.expires_at <= now:
            return code

        try:
            code.expires_at = now
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StoreError() from e

        logger.info('Invalidated code %s', code.id)
        return code

    @staticmethod
    def count_expired(older_than: datetime) -> int:
        return AttendanceCode.query.filter(AttendanceCode.expires_at < older_than).count()
