"""Tests for StudentService: enrollment, edits, removal and CSV export."""

import csv
import io

import pytest

from app.codeforces import CodeforcesAPIError
from app.models import ContestParticipation, Student, Submission
from app.services.student_service import StudentService, StudentValidationError
from app.services.sync_service import SyncService


def _service(fake):
    return StudentService(sync_service=SyncService(client=fake))


class TestEnroll:
    def test_enroll_stores_canonical_handle(self, app, db, cf_factory):
        fake = cf_factory(handle='tornike_007', rating=1720, max_rating=1801)

        student = _service(fake).enroll(
            name='Tornike', email='Tornike@Example.com', codeforces_handle='Tornike_007',
        )

        assert student.codeforces_handle == 'tornike_007'
        assert student.email == 'tornike@example.com'
        assert student.current_rating == 1720
        assert student.max_rating == 1801
        assert student.sync_status == 'none'
        assert student.email_reminders_enabled is True
        fake.fetch_profile.assert_called_once_with('Tornike_007')

    def test_duplicate_handle_any_casing(self, app, db, cf_factory):
        fake = cf_factory(handle='tornike_007')
        service = _service(fake)
        service.enroll(name='Tornike', email='t1@example.com', codeforces_handle='Tornike_007')

        with pytest.raises(StudentValidationError, match='Handle already exists'):
            service.enroll(name='Copy', email='t2@example.com', codeforces_handle='TORNIKE_007')
        assert Student.query.count() == 1

    def test_duplicate_email(self, app, db, sample_data, cf_factory):
        fake = cf_factory(handle='newbie')
        with pytest.raises(StudentValidationError, match='Email already exists'):
            _service(fake).enroll(
                name='Other', email='ALICE@example.com', codeforces_handle='newbie',
            )

    def test_missing_fields(self, app, db, fake_cf):
        with pytest.raises(StudentValidationError, match='required'):
            _service(fake_cf).enroll(name='', email='a@b.com', codeforces_handle='x')
        fake_cf.fetch_profile.assert_not_called()

    def test_invalid_email(self, app, db, fake_cf):
        with pytest.raises(StudentValidationError, match='valid email'):
            _service(fake_cf).enroll(name='A', email='not-an-email', codeforces_handle='x')

    def test_unknown_handle(self, app, db, fake_cf):
        fake_cf.fetch_profile.side_effect = CodeforcesAPIError(
            'user.info', 'not found', not_found=True,
        )
        with pytest.raises(StudentValidationError, match='not found'):
            _service(fake_cf).enroll(name='A', email='a@example.com', codeforces_handle='ghost')
        assert Student.query.count() == 0

    def test_reminder_preference(self, app, db, cf_factory):
        student = _service(cf_factory(handle='quiet')).enroll(
            name='Q', email='q@example.com', codeforces_handle='quiet',
            email_reminders_enabled=False,
        )
        assert student.email_reminders_enabled is False


class TestUpdate:
    def test_plain_fields(self, app, db, sample_data, fake_cf):
        student, handle_changed = _service(fake_cf).update(
            sample_data['alice_id'], name='Alice Smith', phone='555-0100',
            email_reminders_enabled=False,
        )

        assert handle_changed is False
        assert student.name == 'Alice Smith'
        assert student.phone == '555-0100'
        assert student.email_reminders_enabled is False
        fake_cf.fetch_profile.assert_not_called()

    def test_handle_change(self, app, db, sample_data, cf_factory):
        fake = cf_factory(handle='bob_new', rating=1250, max_rating=1250)

        student, handle_changed = _service(fake).update(
            sample_data['bob_id'], codeforces_handle='Bob_New',
        )

        assert handle_changed is True
        assert student.codeforces_handle == 'bob_new'
        assert student.current_rating == 1250
        assert student.max_rating == 1300

    def test_same_handle_different_casing_is_not_a_change(self, app, db, sample_data, cf_factory):
        fake = cf_factory(handle='alice99')
        student, handle_changed = _service(fake).update(
            sample_data['alice_id'], codeforces_handle='ALICE99',
        )
        assert handle_changed is False
        assert student.codeforces_handle == 'alice99'

    def test_handle_taken_by_other_student(self, app, db, sample_data, cf_factory):
        fake = cf_factory(handle='alice99')
        with pytest.raises(StudentValidationError, match='already in use'):
            _service(fake).update(
                sample_data['bob_id'], name='Renamed', codeforces_handle='Alice99',
            )

        bob = db.session.get(Student, sample_data['bob_id'])
        assert bob.name == 'Bob'
        assert bob.codeforces_handle == 'bob_cf'

    def test_email_taken_by_other_student(self, app, db, sample_data, fake_cf):
        with pytest.raises(StudentValidationError, match='Email already in use'):
            _service(fake_cf).update(sample_data['bob_id'], email='alice@example.com')

    def test_missing_student(self, app, db, fake_cf):
        with pytest.raises(LookupError):
            _service(fake_cf).update(999, name='Ghost')


class TestDeleteAndExport:
    def test_delete_cascades(self, app, db, sample_data, fake_cf):
        SyncService(client=fake_cf).sync_one('alice99')
        assert Submission.query.count() == 3

        _service(fake_cf).delete(sample_data['alice_id'])

        assert db.session.get(Student, sample_data['alice_id']) is None
        assert Submission.query.count() == 0
        assert ContestParticipation.query.count() == 0

    def test_delete_missing(self, app, db, fake_cf):
        with pytest.raises(LookupError):
            _service(fake_cf).delete(42)

    def test_export_csv(self, app, db, sample_data):
        rows = list(csv.reader(io.StringIO(StudentService.export_csv())))

        assert rows[0][:4] == ['Name', 'Email', 'Phone Number', 'Codeforces Handle']
        assert len(rows) == 3
        assert rows[1][0] == 'Alice'
        assert rows[1][3] == 'alice99'
        assert rows[2][4:6] == ['1200', '1300']
        assert rows[1][6] == 'N/A'
