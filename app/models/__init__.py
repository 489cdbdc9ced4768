from .user import User
from .student import Student, SyncStatus
from .contest_participation import ContestParticipation
from .submission import Submission
from .admin_setting import AdminSetting

__all__ = [
    'User',
    'Student',
    'SyncStatus',
    'ContestParticipation',
    'Submission',
    'AdminSetting',
]
