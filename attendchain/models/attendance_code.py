"""Short-lived attendance codes issued by teachers."""
from datetime import datetime
from typing import Optional

from attendchain import db
from attendchain.models.base import BaseModel


class AttendanceCode(BaseModel):
    """A 6-character token tied to a course, an expiry and an optional geofence.

    Rows are never mutated except for early invalidation, which sets
    ``expires_at`` to the invalidation time.
    """

    __tablename__ = 'attendance_codes'
    __table_args__ = (
        db.Index('ix_attendance_codes_token_expires', 'token', 'expires_at'),
    )

    issuer_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    course_id = db.Column(db.String(36), db.ForeignKey('courses.id'), nullable=False, index=True)
    token = db.Column(db.String(6), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    # Geofence origin; absent means no geofence is enforced
    origin_latitude = db.Column(db.Float, nullable=True)
    origin_longitude = db.Column(db.Float, nullable=True)
    radius_meters = db.Column(db.Float, nullable=False, default=100)
    location_name = db.Column(db.String(255), nullable=True)

    # Relationships
    issuer = db.relationship('User')
    course = db.relationship('Course', backref=db.backref('attendance_codes', lazy='dynamic'))
    records = db.relationship('AttendanceRecord', backref='code', lazy='dynamic')

    @property
    def has_geofence(self) -> bool:
        return self.origin_latitude is not None and self.origin_longitude is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Dead once now >= expires_at."""
        return (now or datetime.utcnow()) >= self.expires_at

    def seconds_remaining(self, now: Optional[datetime] = None) -> int:
        remaining = (self.expires_at - (now or datetime.utcnow())).total_seconds()
        return max(0, int(remaining))

    def to_dict(self, now: Optional[datetime] = None):
        """Convert to dictionary."""
        data = super().to_dict()
        data['is_active'] = not self.is_expired(now)
        data['seconds_remaining'] = self.seconds_remaining(now)
        data['course_name'] = self.course.name if self.course else None
        data['course_code'] = self.course.code if self.course else None
        return data

    def __repr__(self):
        return f'<AttendanceCode {self.token}>'
