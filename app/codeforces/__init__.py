from .client import CodeforcesAPIError, CodeforcesClient
from .common import FetchedSubmission, Profile, RatingChange, StandingsRow
from .rate_limiter import RateLimiter, get_platform_limiter
from .signer import sign

__all__ = [
    'CodeforcesAPIError',
    'CodeforcesClient',
    'FetchedSubmission',
    'Profile',
    'RatingChange',
    'StandingsRow',
    'RateLimiter',
    'get_platform_limiter',
    'sign',
]
