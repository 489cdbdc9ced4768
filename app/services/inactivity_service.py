from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from flask import current_app

from app.extensions import db
from app.models import Student
from app.services.notifier import EmailNotifier

logger = logging.getLogger(__name__)


class InactivityService:
    """Finds students with no recent submissions and reminds them by email."""

    def __init__(self, notifier=None, inactivity_days: int = None):
        self.notifier = notifier or EmailNotifier()
        self.inactivity_days = (
            inactivity_days
            if inactivity_days is not None
            else current_app.config.get('INACTIVITY_DAYS', 7)
        )

    def threshold_timestamp(self, now: datetime = None) -> int:
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return int((now - timedelta(days=self.inactivity_days)).timestamp())

    def find_inactive_students(self, now: datetime = None) -> list[Student]:
        threshold = self.threshold_timestamp(now)
        return (
            Student.query.filter(
                Student.email_reminders_enabled.is_(True),
                db.or_(
                    Student.last_submission_timestamp.is_(None),
                    Student.last_submission_timestamp < threshold,
                ),
            )
            .order_by(Student.id)
            .all()
        )

    def run(self, now: datetime = None) -> dict:
        stats = {'eligible': 0, 'sent': 0, 'failed': 0}
        students = self.find_inactive_students(now)
        stats['eligible'] = len(students)
        if not students:
            logger.info("No students found meeting inactivity criteria.")
            return stats

        logger.info(f"Found {len(students)} students eligible for an inactivity reminder.")
        for student in students:
            try:
                sent = self.notifier.send_reminder(student, self.inactivity_days)
            except Exception as e:
                logger.error(f"Reminder failed for {student.codeforces_handle}: {e}")
                sent = False

            if not sent:
                stats['failed'] += 1
                logger.error(
                    f"Failed to send inactivity email to {student.name} ({student.email})."
                )
                continue

            student.reminder_sent_count = (student.reminder_sent_count or 0) + 1
            db.session.commit()
            stats['sent'] += 1
            logger.info(
                f"Inactivity email sent to {student.name}. "
                f"New reminder count: {student.reminder_sent_count}."
            )

        logger.info(
            f"Inactivity check finished. Emails sent: {stats['sent']} "
            f"out of {stats['eligible']} eligible students."
        )
        return stats
