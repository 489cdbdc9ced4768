"""Codeforces reconciliation engine.

A sync for one handle runs strictly in sequence and commits at checkpoints:

1. take the per-handle lease (``sync_status = pending``)
2. fetch profile, rating history and submissions (any failure is fatal)
3. checkpoint: rebuilt contest list, enrichment carried over by key
4. checkpoint: submissions replaced, ratings and canonical handle applied
5. enrich unsynced contests one by one, committing after each
6. checkpoint: ``success``

Anything escaping steps 2-6 leaves the record ``failed`` and is re-raised.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from flask import current_app

from app.codeforces import CodeforcesAPIError, CodeforcesClient
from app.extensions import db
from app.models import ContestParticipation, Student, Submission, SyncStatus

logger = logging.getLogger(__name__)


class StudentNotFoundError(LookupError):
    """No enrolled student has the requested handle."""


class SyncInProgressError(RuntimeError):
    """Another sync currently holds the lease for this handle."""


class HandleValidationError(ValueError):
    """A handle could not be resolved on Codeforces."""


class SyncService:
    def __init__(self, client: CodeforcesClient = None, config=None):
        self.config = config if config is not None else current_app.config
        self.client = client or CodeforcesClient.from_config(self.config)

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def validate_handle(self, handle: str):
        """Resolve *handle* on Codeforces and return its canonical profile."""
        handle = (handle or '').strip()
        if not handle:
            raise HandleValidationError('Codeforces handle is required.')
        try:
            return self.client.fetch_profile(handle)
        except CodeforcesAPIError as e:
            logger.warning(f"Handle validation failed for {handle!r}: {e}")
            if e.not_found:
                raise HandleValidationError(
                    f"Codeforces user '{handle}' not found. Please check the handle."
                ) from e
            raise HandleValidationError(
                f"Codeforces handle '{handle}' is invalid or an issue occurred "
                f"while verifying with Codeforces."
            ) from e

    def sync_one(self, handle: str) -> Student:
        """Fetch and reconcile all Codeforces data for one enrolled student.

        Raises on fatal failure; the record's ``sync_status`` reflects the
        outcome either way.
        """
        student = Student.find_by_handle(handle)
        if student is None:
            logger.error(f"Student with handle {handle} not found in DB. Cannot sync.")
            raise StudentNotFoundError(f"Student with handle {handle} not found in DB.")

        student_id = student.id
        handle = student.codeforces_handle
        self._acquire_lease(student)
        logger.info(f"Starting full Codeforces sync for {handle}")

        try:
            profile = self.client.fetch_profile(handle)
            rating_history = self.client.fetch_rating_history(handle)
            fetched_submissions = self.client.fetch_submissions(
                handle, limit=self.config.get('CF_SUBMISSION_FETCH_LIMIT', 2000)
            )

            self._checkpoint_contests(student, rating_history)
            self._checkpoint_submissions(student, profile, fetched_submissions)
            self._enrich_contests(student)

            student.last_synced_at = datetime.utcnow()
            student.sync_status = SyncStatus.SUCCESS.value
            student.sync_error_message = None
            student.sync_started_at = None
            db.session.commit()
        except Exception as e:
            logger.error(f"Critical error during Codeforces sync for {handle}: {e}", exc_info=True)
            db.session.rollback()
            self._record_failure(student_id, handle, e)
            raise

        logger.info(
            f"Completed Codeforces sync for {student.codeforces_handle}: "
            f"{len(student.contests)} contests, {len(student.submissions)} submissions"
        )
        return student

    def sync_all(self) -> dict:
        """Sync every enrolled student in turn. Never raises."""
        stats = {'success_count': 0, 'failure_count': 0, 'skipped_count': 0}
        try:
            handles = [
                h for (h,) in db.session.query(Student.codeforces_handle)
                .order_by(Student.name, Student.id)
                .all()
            ]
        except Exception as e:
            db.session.rollback()
            logger.error(f"Could not load students for sync: {e}")
            return stats

        if not handles:
            logger.info("No students found in the database to sync.")
            return stats

        logger.info(f"Syncing Codeforces data for {len(handles)} students")
        for handle in handles:
            try:
                self.sync_one(handle)
                stats['success_count'] += 1
            except SyncInProgressError as e:
                stats['skipped_count'] += 1
                logger.warning(f"Skipped {handle}: {e}")
            except Exception as e:
                stats['failure_count'] += 1
                logger.error(f"Failed to sync data for {handle}: {e}")

        logger.info(
            f"Codeforces sync finished: success={stats['success_count']}, "
            f"failed={stats['failure_count']}, skipped={stats['skipped_count']}"
        )
        return stats

    # ------------------------------------------------------------------
    # Lease
    # ------------------------------------------------------------------

    def _acquire_lease(self, student: Student) -> None:
        """Atomically move the record to ``pending``.

        The conditional UPDATE is the per-handle lock: it only matches when
        no other sync holds a live lease.
        """
        now = datetime.utcnow()
        cutoff = now - timedelta(hours=self.config.get('SYNC_STALE_AFTER_HOURS', 2))
        claimed = Student.query.filter(
            Student.id == student.id,
            db.or_(
                Student.sync_status != SyncStatus.PENDING.value,
                Student.sync_started_at.is_(None),
                Student.sync_started_at < cutoff,
            ),
        ).update(
            {
                Student.sync_status: SyncStatus.PENDING.value,
                Student.sync_error_message: None,
                Student.sync_started_at: now,
            },
            synchronize_session=False,
        )
        db.session.commit()
        if not claimed:
            logger.warning(f"Sync already in progress for {student.codeforces_handle}")
            raise SyncInProgressError(
                f"A sync is already in progress for {student.codeforces_handle}."
            )

    def _record_failure(self, student_id: int, handle: str, error: Exception) -> None:
        max_length = self.config.get('SYNC_ERROR_MAX_LENGTH', 500)
        try:
            student = db.session.get(Student, student_id)
            if student is None:
                return
            student.last_synced_at = datetime.utcnow()
            student.sync_status = SyncStatus.FAILED.value
            student.sync_error_message = (str(error) or type(error).__name__)[:max_length]
            student.sync_started_at = None
            db.session.commit()
        except Exception as save_error:
            db.session.rollback()
            logger.error(
                f"Failed to update sync status to 'failed' for {handle}: {save_error}"
            )

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    def _checkpoint_contests(self, student: Student, rating_history) -> None:
        existing = {c.key: c for c in student.contests}
        rebuilt = []
        seen = set()
        for change in rating_history:
            if change.key in seen:
                continue
            seen.add(change.key)

            previous = existing.get(change.key)
            carried = previous is not None and previous.details_synced
            rebuilt.append(ContestParticipation(
                contest_id=change.contest_id,
                contest_name=change.contest_name,
                handle=change.handle,
                rank=change.rank,
                old_rating=change.old_rating,
                new_rating=change.new_rating,
                rating_update_time_seconds=change.rating_update_time_seconds,
                problems_solved_by_user=previous.problems_solved_by_user if carried else 0,
                total_problems_in_contest=previous.total_problems_in_contest if carried else 0,
                details_synced=carried,
            ))

        rebuilt.sort(
            key=lambda c: (c.rating_update_time_seconds, c.contest_id), reverse=True
        )
        self._replace_collection(student, 'contests', rebuilt)
        db.session.commit()
        logger.info(
            f"Saved {len(rebuilt)} contest shells for {student.codeforces_handle} "
            f"({sum(1 for c in rebuilt if c.details_synced)} already enriched)"
        )

    def _checkpoint_submissions(self, student: Student, profile, fetched) -> None:
        self._adopt_canonical_handle(student, profile.handle)

        rebuilt = []
        seen = set()
        for item in sorted(
            fetched, key=lambda s: (s.creation_time_seconds, s.id), reverse=True
        ):
            if item.id in seen:
                continue
            seen.add(item.id)
            rebuilt.append(Submission(
                submission_id=item.id,
                contest_id=item.contest_id,
                problem_name=item.problem_name,
                problem_index=item.problem_index,
                programming_language=item.programming_language,
                verdict=item.verdict,
                problem_rating=item.problem_rating,
                tags=item.tags,
                creation_time_seconds=item.creation_time_seconds,
            ))

        self._replace_collection(student, 'submissions', rebuilt)
        student.last_submission_timestamp = (
            rebuilt[0].creation_time_seconds if rebuilt else None
        )
        student.current_rating = profile.rating or 0
        student.max_rating = profile.max_rating or 0
        db.session.commit()
        logger.info(
            f"Saved {len(rebuilt)} submissions and ratings "
            f"({student.current_rating}/{student.max_rating}) for {student.codeforces_handle}"
        )

    def _adopt_canonical_handle(self, student: Student, canonical: str) -> None:
        if not canonical or canonical == student.codeforces_handle:
            return
        clash = Student.find_by_handle(canonical)
        if clash is not None and clash.id != student.id:
            logger.warning(
                f"Canonical handle {canonical} for {student.codeforces_handle} "
                f"already belongs to student {clash.id}; keeping stored handle"
            )
            return
        logger.info(f"Adopting canonical handle {canonical} (was {student.codeforces_handle})")
        student.codeforces_handle = canonical

    @staticmethod
    def _replace_collection(student: Student, attr: str, items: list) -> None:
        """Swap a child collection for freshly built rows.

        Old rows are deleted and flushed before the new ones are attached so
        the natural-key unique constraints never see both at once.
        """
        collection = getattr(student, attr)
        collection.clear()
        db.session.flush()
        collection.extend(items)

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    def _enrich_contests(self, student: Student) -> None:
        handle = student.codeforces_handle
        pending = [c for c in student.contests if not c.details_synced]
        if not pending:
            return
        if not self.client.has_credentials:
            logger.warning(
                f"API key/secret not set; {len(pending)} contests for {handle} "
                f"left for a later sync"
            )
            return

        enriched = 0
        for contest in pending:
            contest_id = contest.contest_id
            try:
                row = self.client.fetch_contest_standings_row(contest_id, handle)
            except Exception as e:
                logger.error(f"Contest {contest_id} details failed for {handle}: {e}")
                continue
            if row is None:
                logger.warning(
                    f"No standings data for contest {contest_id} ({handle}); "
                    f"will retry next sync"
                )
                continue

            contest.total_problems_in_contest = row.total_problems
            contest.problems_solved_by_user = row.solved_count
            contest.details_synced = True
            db.session.commit()
            enriched += 1
            logger.debug(
                f"Contest {contest_id} details saved for {handle}: "
                f"{row.solved_count}/{row.total_problems}"
            )

        logger.info(f"Enriched {enriched}/{len(pending)} contests for {handle}")
