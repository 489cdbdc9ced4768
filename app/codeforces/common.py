from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class Profile:
    handle: str
    rating: int = 0
    max_rating: int = 0
    rank: str | None = None
    max_rank: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> Profile:
        return cls(
            handle=data['handle'],
            rating=data.get('rating') or 0,
            max_rating=data.get('maxRating') or 0,
            rank=data.get('rank'),
            max_rank=data.get('maxRank'),
        )


@dataclass
class RatingChange:
    contest_id: int
    contest_name: str
    handle: str
    rank: int
    old_rating: int
    new_rating: int
    rating_update_time_seconds: int

    @property
    def key(self) -> tuple[int, int]:
        return (self.contest_id, self.rating_update_time_seconds)

    @classmethod
    def from_api(cls, data: dict) -> RatingChange:
        return cls(
            contest_id=data['contestId'],
            contest_name=data.get('contestName', ''),
            handle=data.get('handle', ''),
            rank=data.get('rank'),
            old_rating=data.get('oldRating'),
            new_rating=data.get('newRating'),
            rating_update_time_seconds=data['ratingUpdateTimeSeconds'],
        )


@dataclass
class FetchedSubmission:
    id: int
    creation_time_seconds: int
    contest_id: int | None = None
    problem_name: str | None = None
    problem_index: str | None = None
    programming_language: str | None = None
    verdict: str | None = None
    problem_rating: int | None = None
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> FetchedSubmission:
        problem = data.get('problem') or {}
        return cls(
            id=data['id'],
            creation_time_seconds=data['creationTimeSeconds'],
            contest_id=data.get('contestId'),
            problem_name=problem.get('name'),
            problem_index=problem.get('index'),
            programming_language=data.get('programmingLanguage'),
            verdict=data.get('verdict'),
            problem_rating=problem.get('rating'),
            tags=list(problem.get('tags') or []),
        )


@dataclass
class StandingsRow:
    total_problems: int
    solved_count: int

    @classmethod
    def from_api(cls, result: dict) -> StandingsRow:
        """Summarize a ``contest.standings`` result for a single handle.

        A problem counts as solved when it earned points or has a best
        submission time; the latter is how the platform marks credit for
        ICPC-style and practice participation where points stay at zero.
        """
        problems = result.get('problems') or []
        rows = result.get('rows') or []
        solved = 0
        if rows:
            for pr in rows[0].get('problemResults') or []:
                if (pr.get('points') or 0) > 0 or pr.get('bestSubmissionTimeSeconds') is not None:
                    solved += 1
        return cls(total_problems=len(problems), solved_count=solved)
