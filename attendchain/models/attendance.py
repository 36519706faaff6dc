"""Attendance record model with geofence audit details."""
from datetime import datetime

from attendchain import db
from attendchain.models.base import BaseModel


class AttendanceRecord(BaseModel):
    """One check-in by a student against one attendance code."""

    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'code_id', name='uq_attendance_student_code'),
    )

    student_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    course_id = db.Column(db.String(36), db.ForeignKey('courses.id'), nullable=False, index=True)
    code_id = db.Column(db.String(36), db.ForeignKey('attendance_codes.id'), nullable=False)

    # Location where check-in happened; absent when no geofence was enforced
    student_latitude = db.Column(db.Float, nullable=True)
    student_longitude = db.Column(db.Float, nullable=True)
    distance_from_issuer_meters = db.Column(db.Float, nullable=True)
    location_accuracy_meters = db.Column(db.Float, nullable=True)

    is_late = db.Column(db.Boolean, default=False, nullable=False)
    time_in = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    time_out = db.Column(db.DateTime, nullable=True)

    # Filled in after the ledger mirror confirms
    ledger_tx_hash = db.Column(db.String(100), nullable=True)

    # Relationships
    student = db.relationship('User', backref=db.backref('attendance_records', lazy='dynamic'))
    course = db.relationship('Course', backref=db.backref('attendance_records', lazy='dynamic'))

    def to_dict(self):
        """Convert to dictionary."""
        data = super().to_dict()
        data['course_name'] = self.course.name if self.course else None
        data['status'] = 'late' if self.is_late else 'present'
        return data

    def __repr__(self):
        return f'<AttendanceRecord {self.student_id}-{self.code_id}>'
