"""Request signing for authenticated Codeforces API methods.

Codeforces authenticates a call by an ``apiSig`` parameter::

    apiSig = rand + sha512("{rand}/{methodName}?{sortedParams}#{secret}")

where ``rand`` is six random characters and ``sortedParams`` are the request
parameters (``apiKey`` and ``time`` included) sorted lexicographically by key.
Any other ordering produces a signature the platform rejects.
"""
from __future__ import annotations

import hashlib
import secrets
import string
from urllib.parse import quote

SALT_LENGTH = 6
_SALT_ALPHABET = string.ascii_lowercase + string.digits

# Characters left unescaped in the signed parameter string; everything else
# is percent-encoded the same way the platform encodes it.
_UNRESERVED = "!*'()"


def format_param(value) -> str:
    """Render a parameter value the way it appears on the wire."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def encode_params(params: dict) -> str:
    return '&'.join(
        f'{quote(str(key), safe=_UNRESERVED)}={quote(format_param(params[key]), safe=_UNRESERVED)}'
        for key in sorted(params)
    )


def generate_salt() -> str:
    return ''.join(secrets.choice(_SALT_ALPHABET) for _ in range(SALT_LENGTH))


def sign(method: str, params: dict, secret: str, salt: str | None = None) -> str:
    """Return the ``apiSig`` value for *method* called with *params*."""
    if salt is None:
        salt = generate_salt()
    payload = f'{salt}/{method}?{encode_params(params)}#{secret}'
    digest = hashlib.sha512(payload.encode('utf-8')).hexdigest()
    return salt + digest
