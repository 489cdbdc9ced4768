from __future__ import annotations

import logging
import time

import requests

from .common import FetchedSubmission, Profile, RatingChange, StandingsRow
from .rate_limiter import RateLimiter, get_platform_limiter
from .signer import format_param, sign


class CodeforcesAPIError(Exception):
    """A Codeforces API call failed or returned a non-OK status."""

    def __init__(self, method: str, message: str, status: str = None,
                 comment: str = None, http_status: int = None, not_found: bool = False):
        self.method = method
        self.status = status
        self.comment = comment
        self.http_status = http_status
        self.not_found = not_found
        super().__init__(message)


class CodeforcesClient:
    PLATFORM_NAME = "codeforces"
    BASE_URL = "https://codeforces.com/api"
    STANDINGS_METHOD = "contest.standings"

    def __init__(
        self,
        api_key: str = None,
        api_secret: str = None,
        rate_limiter: RateLimiter = None,
        base_url: str = None,
        timeout: float = 30,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        session: requests.Session = None,
    ):
        self.api_key = api_key or None
        self.api_secret = api_secret or None
        self.rate_limiter = rate_limiter or get_platform_limiter(self.PLATFORM_NAME)
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_backoff = retry_backoff
        self.logger = logging.getLogger('codeforces.client')
        self.session = session or self._create_session()

    @classmethod
    def from_config(cls, config) -> CodeforcesClient:
        return cls(
            api_key=config.get('CF_API_KEY'),
            api_secret=config.get('CF_API_SECRET'),
            rate_limiter=get_platform_limiter(
                cls.PLATFORM_NAME, config.get('CF_API_CALL_DELAY', 1.2)
            ),
            base_url=config.get('CF_API_BASE_URL'),
            timeout=config.get('CF_REQUEST_TIMEOUT', 30),
            max_retries=config.get('CF_MAX_RETRIES', 3),
            retry_backoff=config.get('CF_RETRY_BACKOFF', 1.0),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def fetch_profile(self, handle: str) -> Profile:
        result = self._call('user.info', {'handles': handle}, context=handle)
        if not result:
            message = f"User info not found for {handle}"
            self.logger.error(f"user.info {handle}: {message}")
            raise CodeforcesAPIError(
                'user.info', message, status='OK', not_found=True,
            )
        profile = self._map('user.info', handle, lambda: Profile.from_api(result[0]))
        self.logger.info(f"user.info {handle}: resolved to {profile.handle}")
        return profile

    def fetch_rating_history(self, handle: str) -> list[RatingChange]:
        result = self._call('user.rating', {'handle': handle}, context=handle)
        changes = self._map(
            'user.rating', handle,
            lambda: [RatingChange.from_api(item) for item in result or []],
        )
        self.logger.info(f"user.rating {handle}: {len(changes)} rated contests")
        return changes

    def fetch_submissions(self, handle: str, limit: int = 2000) -> list[FetchedSubmission]:
        result = self._call(
            'user.status',
            {'handle': handle, 'from': 1, 'count': limit},
            context=handle,
        )
        submissions = self._map(
            'user.status', handle,
            lambda: [FetchedSubmission.from_api(item) for item in result or []],
        )
        self.logger.info(f"user.status {handle}: {len(submissions)} submissions")
        return submissions

    def fetch_contest_standings_row(self, contest_id: int, handle: str) -> StandingsRow | None:
        """Best-effort authenticated lookup of *handle*'s row in a contest.

        Returns ``None`` instead of raising when credentials are missing or
        the call fails for any reason.
        """
        context = f"contest {contest_id}, handle {handle}"
        if not self.has_credentials:
            self.logger.warning(f"API key/secret not set, skipping {self.STANDINGS_METHOD} for {context}")
            return None

        params = {
            'contestId': contest_id,
            'handles': handle,
            'from': 1,
            'count': 1,
            'showUnofficial': True,
            'apiKey': self.api_key,
            'time': int(time.time()),
        }
        params['apiSig'] = sign(self.STANDINGS_METHOD, params, self.api_secret)
        try:
            result = self._call(self.STANDINGS_METHOD, params, context=context, max_retries=1)
            if not result:
                self.logger.warning(f"{self.STANDINGS_METHOD} returned no result for {context}")
                return None
            row = StandingsRow.from_api(result)
        except CodeforcesAPIError as e:
            self.logger.error(f"{self.STANDINGS_METHOD} failed for {context}: {e}")
            return None
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            self.logger.error(f"{self.STANDINGS_METHOD} returned malformed data for {context}: {e}")
            return None

        self.logger.info(
            f"{self.STANDINGS_METHOD} {context}: "
            f"solved {row.solved_count}/{row.total_problems}"
        )
        return row

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            'User-Agent': 'cf-progress-tracker/1.0 (+https://codeforces.com/apiHelp)',
            'Accept': 'application/json',
        })
        return session

    def _call(self, method_name: str, params: dict, context: str = '', max_retries: int = None):
        """Issue one API call and return its ``result`` payload.

        Connection errors and timeouts are retried with exponential backoff.
        A response carrying a platform status is never retried.
        """
        url = f"{self.base_url}/{method_name}"
        query = {key: format_param(value) for key, value in params.items()}
        attempts = max_retries or self.max_retries

        for attempt in range(attempts):
            self.rate_limiter.wait()
            try:
                resp = self.session.get(url, params=query, timeout=self.timeout)
            except (requests.ConnectionError, requests.Timeout) as e:
                self.logger.warning(
                    f"{method_name} {context}: request failed "
                    f"(attempt {attempt + 1}/{attempts}): {e}"
                )
                if attempt < attempts - 1:
                    time.sleep(self.retry_backoff * (2 ** attempt))
                    continue
                raise CodeforcesAPIError(
                    method_name,
                    f"Exception in {method_name} for {context}. Original error: {e}",
                ) from e
            except requests.RequestException as e:
                raise CodeforcesAPIError(
                    method_name,
                    f"Exception in {method_name} for {context}. Original error: {e}",
                ) from e
            return self._parse(method_name, resp, context)

    def _map(self, method_name: str, context: str, build):
        """Run a payload mapping, reporting malformed data as an API error."""
        try:
            return build()
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            message = f"{method_name} returned malformed data for {context}: {e!r}"
            self.logger.error(message)
            raise CodeforcesAPIError(method_name, message, status='OK') from e

    def _parse(self, method_name: str, resp, context: str):
        http_status = resp.status_code
        try:
            payload = resp.json()
        except ValueError:
            message = (
                f"Invalid response from {method_name} for {context}. "
                f"HTTP Status: {http_status}"
            )
            self.logger.error(message)
            raise CodeforcesAPIError(method_name, message, http_status=http_status)

        status = payload.get('status') if isinstance(payload, dict) else None
        self.logger.debug(f"{method_name} {context}: HTTP {http_status}, status={status}")
        if status == 'OK':
            return payload.get('result')

        comment = payload.get('comment') if isinstance(payload, dict) else None
        message = (
            f"{method_name} failed for {context}. "
            f"HTTP Status: {http_status}. CF Status: {status}, "
            f"Comment: {comment or 'N/A'}"
        )
        self.logger.error(message)
        raise CodeforcesAPIError(
            method_name,
            message,
            status=status,
            comment=comment,
            http_status=http_status,
            not_found=bool(comment and 'not found' in comment.lower()),
        )
