import json

from app.extensions import db


class Submission(db.Model):
    """A single Codeforces submission synced for a student."""

    __tablename__ = 'submission'
    __table_args__ = (
        db.UniqueConstraint(
            'student_id', 'submission_id',
            name='uq_submission_student_submission',
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(
        db.Integer,
        db.ForeignKey('student.id'),
        nullable=False,
        index=True,
    )
    submission_id = db.Column(db.BigInteger, nullable=False)
    contest_id = db.Column(db.Integer, nullable=True)
    problem_name = db.Column(db.String(255), nullable=True)
    problem_index = db.Column(db.String(20), nullable=True)
    programming_language = db.Column(db.String(100), nullable=True)
    verdict = db.Column(db.String(50), nullable=True)
    problem_rating = db.Column(db.Integer, nullable=True)
    tags_json = db.Column(db.Text, nullable=True)
    creation_time_seconds = db.Column(db.BigInteger, nullable=False, index=True)

    # Relationships
    student = db.relationship('Student', back_populates='submissions')

    @property
    def tags(self) -> list:
        if self.tags_json:
            try:
                return json.loads(self.tags_json)
            except (json.JSONDecodeError, TypeError):
                return []
        return []

    @tags.setter
    def tags(self, value):
        self.tags_json = json.dumps(list(value), ensure_ascii=False) if value else None

    def to_dict(self) -> dict:
        return {
            'id': self.submission_id,
            'contest_id': self.contest_id,
            'problem_name': self.problem_name,
            'problem_index': self.problem_index,
            'programming_language': self.programming_language,
            'verdict': self.verdict,
            'problem_rating': self.problem_rating,
            'tags': self.tags,
            'creation_time_seconds': self.creation_time_seconds,
        }

    def __repr__(self) -> str:
        return (
            f'<Submission {self.submission_id} '
            f'{self.contest_id}{self.problem_index} verdict={self.verdict!r}>'
        )
