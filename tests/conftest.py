"""Shared test fixtures for the Codeforces progress tracker test suite."""

from unittest.mock import MagicMock

import pytest

from app import create_app
from app.codeforces import (
    CodeforcesClient, FetchedSubmission, Profile, RatingChange, StandingsRow,
)
from app.extensions import db as _db
from app.models import Student, User


@pytest.fixture()
def app():
    """Create a Flask application configured for testing."""
    application = create_app('testing')
    yield application


@pytest.fixture()
def db(app):
    """Provide a clean database for each test."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def client(app, db):
    """Provide a Flask test client."""
    return app.test_client()


def _login(client, db, username, role):
    user = User(username=username, email=f'{username}@example.com', role=role)
    user.set_password('testpass123')
    db.session.add(user)
    db.session.commit()

    client.post('/auth/login', json={
        'username': username,
        'password': 'testpass123',
    })
    return client


@pytest.fixture()
def admin_client(app, db, client):
    """Provide a test client logged in as an admin."""
    return _login(client, db, 'admin', 'admin')


@pytest.fixture()
def viewer_client(app, db, client):
    """Provide a test client logged in as a read-only viewer."""
    return _login(client, db, 'viewer', 'viewer')


@pytest.fixture()
def sample_data(app, db):
    """Enroll two students without any synced data.

    Returns a dict of plain IDs (not model objects) so they survive
    across Flask request context boundaries without DetachedInstanceError.
    """
    alice = Student(
        name='Alice',
        email='alice@example.com',
        codeforces_handle='alice99',
        current_rating=0,
        max_rating=0,
    )
    bob = Student(
        name='Bob',
        email='bob@example.com',
        codeforces_handle='bob_cf',
        current_rating=1200,
        max_rating=1300,
    )
    db.session.add_all([alice, bob])
    db.session.commit()
    return {
        'alice_id': alice.id,
        'bob_id': bob.id,
    }


def make_fake_client(
    handle='alice99',
    rating=1500,
    max_rating=1600,
    contests=None,
    submissions=None,
    standings=None,
    has_credentials=True,
):
    """Build a MagicMock standing in for :class:`CodeforcesClient`.

    *contests* is a list of ``(contest_id, update_time)`` pairs, *submissions*
    a list of ``(submission_id, creation_time)`` pairs and *standings* maps a
    contest id to a ``StandingsRow``, ``None`` or an exception instance.
    """
    if contests is None:
        contests = [(42, 1_700_000_000)]
    if submissions is None:
        submissions = [(1003, 1_700_000_300), (1002, 1_700_000_200), (1001, 1_700_000_100)]
    if standings is None:
        standings = {42: StandingsRow(total_problems=6, solved_count=4)}

    fake = MagicMock(spec=CodeforcesClient)
    fake.has_credentials = has_credentials
    fake.fetch_profile.return_value = Profile(
        handle=handle, rating=rating, max_rating=max_rating,
    )
    fake.fetch_rating_history.return_value = [
        RatingChange(
            contest_id=cid,
            contest_name=f'Codeforces Round {cid}',
            handle=handle,
            rank=100 + i,
            old_rating=1400 + i,
            new_rating=1450 + i,
            rating_update_time_seconds=ts,
        )
        for i, (cid, ts) in enumerate(contests)
    ]
    fake.fetch_submissions.return_value = [
        FetchedSubmission(
            id=sid,
            creation_time_seconds=ts,
            contest_id=42,
            problem_name=f'Problem {sid}',
            problem_index='A',
            programming_language='GNU C++17',
            verdict='OK',
            problem_rating=800,
            tags=['implementation'],
        )
        for sid, ts in submissions
    ]

    def _standings(contest_id, _handle):
        outcome = standings.get(contest_id)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    fake.fetch_contest_standings_row.side_effect = _standings
    return fake


@pytest.fixture()
def fake_cf():
    """A fake Codeforces client preloaded with the alice99 account."""
    return make_fake_client()


@pytest.fixture()
def cf_factory():
    """Expose :func:`make_fake_client` to tests that need custom remote data."""
    return make_fake_client
