from app.extensions import db


class ContestParticipation(db.Model):
    """One rated contest a student took part in.

    Identity within a student is ``(contest_id, rating_update_time_seconds)``.
    Once ``details_synced`` is set the solve counts are final.
    """

    __tablename__ = 'contest_participation'
    __table_args__ = (
        db.UniqueConstraint(
            'student_id', 'contest_id', 'rating_update_time_seconds',
            name='uq_contest_participation_student_contest_update',
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(
        db.Integer, db.ForeignKey('student.id'), nullable=False, index=True
    )
    contest_id = db.Column(db.Integer, nullable=False, index=True)
    contest_name = db.Column(db.String(255), nullable=True)
    handle = db.Column(db.String(64), nullable=True)
    rank = db.Column(db.Integer, nullable=True)
    old_rating = db.Column(db.Integer, nullable=True)
    new_rating = db.Column(db.Integer, nullable=True)
    rating_update_time_seconds = db.Column(db.BigInteger, nullable=False)

    problems_solved_by_user = db.Column(db.Integer, nullable=False, default=0)
    total_problems_in_contest = db.Column(db.Integer, nullable=False, default=0)
    details_synced = db.Column(db.Boolean, nullable=False, default=False)

    student = db.relationship('Student', back_populates='contests')

    @property
    def key(self) -> tuple:
        return (self.contest_id, self.rating_update_time_seconds)

    def to_dict(self) -> dict:
        return {
            'contest_id': self.contest_id,
            'contest_name': self.contest_name,
            'handle': self.handle,
            'rank': self.rank,
            'old_rating': self.old_rating,
            'new_rating': self.new_rating,
            'rating_update_time_seconds': self.rating_update_time_seconds,
            'problems_solved_by_user': self.problems_solved_by_user,
            'total_problems_in_contest': self.total_problems_in_contest,
            'details_synced': self.details_synced,
        }

    def __repr__(self) -> str:
        return (
            f'<ContestParticipation contest={self.contest_id} '
            f'synced={self.details_synced} '
            f'{self.problems_solved_by_user}/{self.total_problems_in_contest}>'
        )
