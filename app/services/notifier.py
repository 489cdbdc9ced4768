from __future__ import annotations

import logging

from flask import current_app
from flask_mail import Message

from app.extensions import mail

logger = logging.getLogger(__name__)

REMINDER_SUBJECT = 'Friendly Reminder: Time to jump back into Codeforces!'

_REMINDER_HTML = """\
<p>Hi {name},</p>
<p>We noticed you haven't made any submissions on Codeforces
(handle: <strong>{handle}</strong>) in the last {days} days.</p>
<p>Consistent practice is key to improvement. Why not try solving a problem today?</p>
<p>Visit <a href="https://codeforces.com/problemset">Codeforces Problemset</a>
to find your next challenge!</p>
<p>Best regards,<br/>The Student Progress Tracker</p>
"""

_REMINDER_TEXT = """\
Hi {name},

We noticed you haven't made any submissions on Codeforces (handle: {handle}) in the last {days} days.
Consistent practice is key to improvement. Why not try solving a problem today?
https://codeforces.com/problemset

Best regards,
The Student Progress Tracker
"""


class EmailNotifier:
    """Sends inactivity reminders through Flask-Mail.

    ``send_reminder`` reports success as a bool and never raises.
    """

    def send_reminder(self, student, inactivity_days: int) -> bool:
        sender = current_app.config.get('MAIL_DEFAULT_SENDER')
        if not sender:
            logger.error("MAIL_DEFAULT_SENDER not configured; cannot send reminder emails")
            return False
        if not student.email:
            logger.error(f"Student {student.codeforces_handle} has no email address")
            return False

        context = {
            'name': student.name,
            'handle': student.codeforces_handle,
            'days': inactivity_days,
        }
        msg = Message(
            subject=REMINDER_SUBJECT,
            recipients=[student.email],
            html=_REMINDER_HTML.format(**context),
            body=_REMINDER_TEXT.format(**context),
            sender=sender,
        )
        try:
            mail.send(msg)
        except Exception as e:
            logger.error(f"Error sending email to {student.email}: {e}")
            return False
        logger.info(f"Reminder email sent to {student.email}")
        return True
