from __future__ import annotations

import csv
import io
import logging
import re

from sqlalchemy import func

from app.extensions import db
from app.models import Student, SyncStatus
from app.services.sync_service import HandleValidationError, SyncService

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r'\S+@\S+\.\S+')

CSV_FIELDS = [
    ('Name', lambda s: s.name),
    ('Email', lambda s: s.email),
    ('Phone Number', lambda s: s.phone or ''),
    ('Codeforces Handle', lambda s: s.codeforces_handle),
    ('Current Rating', lambda s: s.current_rating),
    ('Max Rating', lambda s: s.max_rating),
    ('Last Synced At', lambda s: s.last_synced_at.strftime('%Y-%m-%d %H:%M:%S') if s.last_synced_at else 'N/A'),
    ('Reminders Sent', lambda s: s.reminder_sent_count),
    ('Email Reminders Enabled', lambda s: 'true' if s.email_reminders_enabled else 'false'),
    ('Enrolled At', lambda s: s.created_at.strftime('%Y-%m-%d') if s.created_at else 'N/A'),
]


class StudentValidationError(ValueError):
    """Bad input or a duplicate email/handle when enrolling or editing."""


class StudentService:
    """Enrollment, edits, removal and export of students.

    Handles are always validated against Codeforces first and stored in the
    canonical casing the platform returns. Syncing is left to the caller.
    """

    def __init__(self, sync_service: SyncService = None):
        self.sync_service = sync_service or SyncService()

    def enroll(
        self,
        name: str,
        email: str,
        codeforces_handle: str,
        phone: str = None,
        email_reminders_enabled: bool = True,
    ) -> Student:
        name = (name or '').strip()
        email = (email or '').strip().lower()
        handle = (codeforces_handle or '').strip()
        if not name or not email or not handle:
            raise StudentValidationError('Name, Email, and Codeforces Handle are required.')
        if not _EMAIL_RE.fullmatch(email):
            raise StudentValidationError('Please use a valid email address.')

        profile = self._validate_handle(handle)

        if self._email_taken(email):
            raise StudentValidationError('Email already exists.')
        if self._handle_taken(profile.handle):
            raise StudentValidationError('Codeforces Handle already exists.')

        student = Student(
            name=name,
            email=email,
            phone=(phone or '').strip() or None,
            codeforces_handle=profile.handle,
            current_rating=profile.rating or 0,
            max_rating=profile.max_rating or 0,
            email_reminders_enabled=(
                email_reminders_enabled if isinstance(email_reminders_enabled, bool) else True
            ),
            sync_status=SyncStatus.NONE.value,
        )
        db.session.add(student)
        db.session.commit()
        logger.info(f"Enrolled student {student.name} with handle {student.codeforces_handle}")
        return student

    def update(self, student_id: int, **changes) -> tuple[Student, bool]:
        """Apply edits to a student. Returns ``(student, handle_changed)``.

        Every check runs before anything is written, so a rejected edit
        leaves the record untouched.
        """
        student = db.session.get(Student, student_id)
        if student is None:
            raise LookupError(f'Student {student_id} not found')

        new_handle = (changes.get('codeforces_handle') or '').strip()
        profile = None
        if new_handle and new_handle != student.codeforces_handle:
            profile = self._validate_handle(new_handle)
            if profile.handle == student.codeforces_handle:
                profile = None
            elif self._handle_taken(profile.handle, exclude_id=student.id):
                raise StudentValidationError(
                    f"Codeforces Handle '{profile.handle}' is already in use by another student."
                )

        new_email = (changes.get('email') or '').strip().lower()
        if new_email and new_email != student.email:
            if not _EMAIL_RE.fullmatch(new_email):
                raise StudentValidationError('Please use a valid email address.')
            if self._email_taken(new_email, exclude_id=student.id):
                raise StudentValidationError('Email already in use by another student.')
            student.email = new_email

        name = (changes.get('name') or '').strip()
        if name:
            student.name = name
        if changes.get('phone'):
            student.phone = changes['phone'].strip()
        if isinstance(changes.get('email_reminders_enabled'), bool):
            student.email_reminders_enabled = changes['email_reminders_enabled']

        handle_changed = profile is not None
        if handle_changed:
            logger.info(
                f"Codeforces handle for {student.name} changed "
                f"{student.codeforces_handle} -> {profile.handle}"
            )
            student.codeforces_handle = profile.handle
            student.current_rating = profile.rating or student.current_rating
            student.max_rating = max(student.max_rating or 0, profile.max_rating or 0)

        db.session.commit()
        return student, handle_changed

    def delete(self, student_id: int) -> None:
        student = db.session.get(Student, student_id)
        if student is None:
            raise LookupError(f'Student {student_id} not found')
        handle = student.codeforces_handle
        db.session.delete(student)
        db.session.commit()
        logger.info(f"Deleted student {student_id} ({handle})")

    @staticmethod
    def export_csv() -> str:
        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow([label for label, _ in CSV_FIELDS])
        for student in Student.query.order_by(Student.name).all():
            writer.writerow([getter(student) for _, getter in CSV_FIELDS])
        return output.getvalue()

    # ------------------------------------------------------------------

    def _validate_handle(self, handle: str):
        try:
            return self.sync_service.validate_handle(handle)
        except HandleValidationError as e:
            raise StudentValidationError(str(e)) from e

    @staticmethod
    def _email_taken(email: str, exclude_id: int = None) -> bool:
        query = Student.query.filter(func.lower(Student.email) == email.lower())
        if exclude_id is not None:
            query = query.filter(Student.id != exclude_id)
        return db.session.query(query.exists()).scalar()

    @staticmethod
    def _handle_taken(handle: str, exclude_id: int = None) -> bool:
        query = Student.query.filter(
            func.lower(Student.codeforces_handle) == handle.lower()
        )
        if exclude_id is not None:
            query = query.filter(Student.id != exclude_id)
        return db.session.query(query.exists()).scalar()
