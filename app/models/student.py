from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import func

from app.extensions import db

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    NONE = 'none'
    PENDING = 'pending'
    SUCCESS = 'success'
    FAILED = 'failed'


class Student(db.Model):
    """An enrolled student and the Codeforces data reconciled for them."""

    __tablename__ = 'student'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    phone = db.Column(db.String(40), nullable=True)
    codeforces_handle = db.Column(db.String(64), unique=True, nullable=False, index=True)

    current_rating = db.Column(db.Integer, nullable=False, default=0)
    max_rating = db.Column(db.Integer, nullable=False, default=0)
    last_submission_timestamp = db.Column(db.BigInteger, nullable=True, index=True)

    sync_status = db.Column(
        db.String(20), nullable=False, default=SyncStatus.NONE.value
    )  # none | pending | success | failed
    sync_error_message = db.Column(db.Text, nullable=True)
    sync_started_at = db.Column(db.DateTime, nullable=True)
    last_synced_at = db.Column(db.DateTime, nullable=True)

    email_reminders_enabled = db.Column(db.Boolean, nullable=False, default=True)
    reminder_sent_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    contests = db.relationship(
        'ContestParticipation',
        back_populates='student',
        cascade='all, delete-orphan',
        order_by=(
            '[ContestParticipation.rating_update_time_seconds.desc(), '
            'ContestParticipation.contest_id.desc()]'
        ),
    )
    submissions = db.relationship(
        'Submission',
        back_populates='student',
        cascade='all, delete-orphan',
        order_by=(
            '[Submission.creation_time_seconds.desc(), '
            'Submission.submission_id.desc()]'
        ),
    )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @classmethod
    def find_by_handle(cls, handle: str) -> Student | None:
        """Case-insensitive lookup by Codeforces handle."""
        if not handle:
            return None
        return cls.query.filter(
            func.lower(cls.codeforces_handle) == handle.strip().lower()
        ).first()

    @classmethod
    def cleanup_stale_pending(cls, max_age_hours: float = 2) -> int:
        """Mark syncs stuck in 'pending' as failed.

        A lease older than *max_age_hours* belongs to a process that died
        mid-sync. Returns the number of records released.
        """
        cutoff = datetime.utcnow() - timedelta(hours=max_age_hours)
        stale = cls.query.filter(
            cls.sync_status == SyncStatus.PENDING.value,
            db.or_(cls.sync_started_at.is_(None), cls.sync_started_at < cutoff),
        ).all()

        for student in stale:
            logger.warning(
                f'Released stale sync lease for {student.codeforces_handle} '
                f'(started_at={student.sync_started_at})'
            )
            student.sync_status = SyncStatus.FAILED.value
            student.sync_error_message = 'Sync interrupted (process may have been terminated).'
            student.sync_started_at = None
            student.last_synced_at = datetime.utcnow()

        if stale:
            db.session.commit()

        return len(stale)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self, include_submissions: bool = False) -> dict:
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'codeforces_handle': self.codeforces_handle,
            'current_rating': self.current_rating,
            'max_rating': self.max_rating,
            'last_submission_timestamp': self.last_submission_timestamp,
            'sync_status': self.sync_status,
            'sync_error_message': self.sync_error_message,
            'last_synced_at': self.last_synced_at.isoformat() if self.last_synced_at else None,
            'email_reminders_enabled': self.email_reminders_enabled,
            'reminder_sent_count': self.reminder_sent_count,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'contests': [c.to_dict() for c in self.contests],
        }
        if include_submissions:
            data['submissions'] = [s.to_dict() for s in self.submissions]
        return data

    def __repr__(self) -> str:
        return f'<Student {self.codeforces_handle!r} (id={self.id}) sync={self.sync_status}>'
