"""Attendance code validation and geofence-gated check-in.

Check-in is a short, synchronous commit path:

1. resolve the submitted token to a live AttendanceCode,
2. refuse a second record for the same (student, code),
3. enforce the issuer's geofence when the code carries an origin,
4. insert the AttendanceRecord.

The unique constraint on (student_id, code_id) is what actually prevents
double marking; the lookup in step 2 only gives a friendlier early answer.
Ledger mirroring happens after the commit and never affects the result.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

import pandas as pd
from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from attendchain import db
from attendchain.models.attendance import AttendanceRecord
from attendchain.models.attendance_code import AttendanceCode
from attendchain.services.geo_service import GeoService
from attendchain.services.location_service import LocationProvider, acquire_location
from attendchain.utils.errors import (
    AlreadyMarkedError,
    AttendanceError,
    CodeNotFoundError,
    InvalidCodeError,
    LocationUnavailableError,
    OutOfRangeError,
    StoreError,
)

logger = logging.getLogger(__name__)

MONTH_NAMES = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
               'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']


class AttendanceService:
    """Service class for attendance validation and recording."""

    # =================== VALIDATION ===================

    @staticmethod
    def normalize_code(raw_code) -> str:
        """Trim and uppercase a submitted code, rejecting malformed input."""
        if not isinstance(raw_code, str):
            raise InvalidCodeError()

        normalized = raw_code.strip().upper()
        length = current_app.config['ATTENDANCE_CODE_LENGTH']
        if len(normalized) != length or not (normalized.isascii() and normalized.isalnum()):
            raise InvalidCodeError()

        return normalized

    @staticmethod
    def validate_code(raw_code, now: Optional[datetime] = None) -> AttendanceCode:
        """Resolve a submitted code to the newest live AttendanceCode.

        The store query tolerates a little clock skew; the final expiry check
        is made against ``now`` exactly.
        """
        token = AttendanceService.normalize_code(raw_code)
        now = now or datetime.utcnow()
        skew = timedelta(seconds=current_app.config['CLOCK_SKEW_TOLERANCE_SECONDS'])

        try:
            code = (
                AttendanceCode.query
                .filter(AttendanceCode.token == token,
                        AttendanceCode.expires_at > now - skew)
                .order_by(AttendanceCode.created_at.desc())
                .first()
            )
        except SQLAlchemyError as e:
            logger.error('Code lookup failed', exc_info=True)
            raise StoreError() from e

        if code is None or code.expires_at <= now:
            logger.warning('Rejected code %s: not found or expired', token)
            raise CodeNotFoundError()

        return code

    # =================== CHECK-IN ===================

    @staticmethod
    def find_existing(student_id: str, code_id: str) -> Optional[AttendanceRecord]:
        try:
            return AttendanceRecord.query.filter_by(student_id=student_id, code_id=code_id).first()
        except SQLAlchemyError as e:
            raise StoreError() from e

    @staticmethod
    def check_in(student_id: str, code: AttendanceCode,
                 location_provider: Optional[LocationProvider] = None,
                 is_late: bool = False,
                 course_name: Optional[str] = None,
                 ledger_account: Optional[str] = None,
                 now: Optional[datetime] = None) -> AttendanceRecord:
        """Record a check-in against an already validated code."""
        config = current_app.config
        now = now or datetime.utcnow()
        course_name = course_name or (code.course.name if code.course else code.course_id)

        try:
            if AttendanceService.find_existing(student_id, code.id) is not None:
                raise AlreadyMarkedError()

            record = AttendanceRecord(
                student_id=student_id,
                course_id=code.course_id,
                code_id=code.id,
                is_late=bool(is_late),
                created_at=now,
                time_in=now
            )

            if code.has_geofence:
                if location_provider is None:
                    raise LocationUnavailableError()

                location = acquire_location(location_provider, config['LOCATION_TIMEOUT_SECONDS'])
                result = GeoService.verify_location(
                    location.latitude, location.longitude,
                    code.origin_latitude, code.origin_longitude,
                    radius_meters=code.radius_meters,
                    buffer_meters=config['GPS_ACCURACY_BUFFER_METERS']
                )
                if not result.is_inside:
                    raise OutOfRangeError(result.distance_meters, code.radius_meters)

                record.student_latitude = location.latitude
                record.student_longitude = location.longitude
                record.distance_from_issuer_meters = result.distance_meters
                record.location_accuracy_meters = location.accuracy_meters

            AttendanceService._insert(record)
        except AttendanceError as e:
            logger.warning('Check-in rejected for student %s on %s (%s): %s',
                           student_id, course_name, e.code, e.message)
            raise

        logger.info('Student %s checked in to %s with code %s',
                    student_id, course_name, code.id)

        AttendanceService._mirror(record, code.token, ledger_account)
        return record

    @staticmethod
    def _insert(record: AttendanceRecord) -> None:
        try:
            db.session.add(record)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            # A concurrent submission may have won the race past the pre-check
            conflict = db.session.query(
                AttendanceRecord.query.filter_by(
                    student_id=record.student_id, code_id=record.code_id
                ).exists()
            ).scalar()
            if conflict:
                raise AlreadyMarkedError() from e
            logger.error('Integrity error storing attendance record', exc_info=True)
            raise StoreError() from e
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error('Database error storing attendance record', exc_info=True)
            raise StoreError() from e

    @staticmethod
    def _mirror(record: AttendanceRecord, token: str, account: Optional[str]) -> None:
        ledger = current_app.extensions.get('ledger')
        if ledger is None:
            return
        try:
            ledger.dispatch_check_in(record.id, token, account)
        except Exception:
            logger.error('Could not dispatch ledger mirror for record %s', record.id, exc_info=True)

    @staticmethod
    def mark_attendance(student_id: str, raw_code,
                        location_provider: Optional[LocationProvider] = None,
                        is_late: bool = False,
                        ledger_account: Optional[str] = None,
                        now: Optional[datetime] = None) -> AttendanceRecord:
        """Validate a submitted code and check the student in against it."""
        code = AttendanceService.validate_code(raw_code, now=now)
        return AttendanceService.check_in(
            student_id, code,
            location_provider=location_provider,
            is_late=is_late,
            ledger_account=ledger_account,
            now=now
        )

    # =================== QUERIES ===================

    @staticmethod
    def student_records(student_id: str, course_id: Optional[str] = None) -> List[AttendanceRecord]:
        query = AttendanceRecord.query.filter_by(student_id=student_id)
        if course_id:
            query = query.filter_by(course_id=course_id)
        return query.order_by(AttendanceRecord.created_at.desc()).all()

    @staticmethod
    def course_records(course_id: str, from_date: Optional[datetime] = None,
                       to_date: Optional[datetime] = None) -> List[AttendanceRecord]:
        query = AttendanceRecord.query.filter_by(course_id=course_id)
        if from_date:
            query = query.filter(AttendanceRecord.created_at >= from_date)
        if to_date:
            query = query.filter(AttendanceRecord.created_at <= to_date)
        return query.order_by(AttendanceRecord.created_at.desc()).all()

    # =================== STATISTICS ===================

    @staticmethod
    def calculate_stats(records: Iterable[AttendanceRecord]) -> Dict:
        """Present/late split as counts and whole percentages."""
        records = list(records)
        total = len(records)
        if not total:
            return {'total': 0, 'present': 0, 'late': 0,
                    'present_percent': 0, 'late_percent': 0}

        late = len([r for r in records if r.is_late])
        present = total - late
        return {
            'total': total,
            'present': present,
            'late': late,
            'present_percent': round(present / total * 100),
            'late_percent': round(late / total * 100)
        }

    @staticmethod
    def monthly_breakdown(records: Iterable[AttendanceRecord], year: int) -> List[Dict]:
        months = [{'month': name, 'total': 0, 'present': 0, 'late': 0} for name in MONTH_NAMES]
        for record in records:
            if record.created_at.year != year:
                continue
            bucket = months[record.created_at.month - 1]
            bucket['total'] += 1
            bucket['late' if record.is_late else 'present'] += 1
        return months

    # =================== EXPORT ===================

    @staticmethod
    def records_dataframe(records: Iterable[AttendanceRecord]) -> pd.DataFrame:
        rows = []
        for record in records:
            student = record.student
            rows.append({
                'Date': record.created_at.date().isoformat(),
                'Student': student.full_name if student else record.student_id,
                'Roll Number': student.roll_number if student else None,
                'Course': record.course.name if record.course else record.course_id,
                'Status': 'Late' if record.is_late else 'Present',
                'Time In': record.time_in.isoformat() if record.time_in else None,
                'Time Out': record.time_out.isoformat() if record.time_out else None,
                'Distance (m)': (round(record.distance_from_issuer_meters, 1)
                                 if record.distance_from_issuer_meters is not None else None),
                'Ledger Tx': record.ledger_tx_hash
            })
        columns = ['Date', 'Student', 'Roll Number', 'Course', 'Status',
                   'Time In', 'Time Out', 'Distance (m)', 'Ledger Tx']
        return pd.DataFrame(rows, columns=columns)
