from datetime import datetime

from app.extensions import db

CRON_SCHEDULE_KEY = 'cron_schedule'
CRON_TIMEZONE_KEY = 'cron_timezone'


class AdminSetting(db.Model):
    """Key-value store for global configuration (sync schedule, time zone)."""

    __tablename__ = 'admin_setting'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    @staticmethod
    def get(key, default=None):
        """Read a single setting value, returning *default* if not found."""
        s = AdminSetting.query.filter_by(key=key).first()
        return s.value if s and s.value is not None else default

    @staticmethod
    def set(key, value):
        """Create or update a setting. Caller must commit the session."""
        s = AdminSetting.query.filter_by(key=key).first()
        if s:
            s.value = value
        else:
            s = AdminSetting(key=key, value=value)
            db.session.add(s)

    def __repr__(self) -> str:
        return f'<AdminSetting key={self.key!r}>'
