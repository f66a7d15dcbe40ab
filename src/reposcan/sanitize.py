"""
Credential redaction for text that may end up in logs, errors or the database.

The access token is embedded in the clone URL handed to git, so anything git
prints can echo it back. Every string derived from that output goes through
sanitize_output() before it is logged or stored.
"""
import itertools
import re
from typing import Iterable

REDACTED = "[REDACTED]"
REDACTED_AUTH = "[REDACTED_AUTH]"

# user:secret@ userinfo in any URL, regardless of which secret it carries
_URL_USERINFO_RE = re.compile(r"(https?://)[^/\s:@]+:[^/\s@]+@")


def _mask_for(token: str) -> str:
    # A run of a character absent from the token can never reintroduce it
    char = next(chr(i) for i in itertools.count(ord("*")) if chr(i) not in token)
    return char * 8


def sanitize_output(output: str, token: str) -> str:
    """Replace every occurrence of ``token`` in ``output`` with a redaction marker.

    The compound ``x-access-token:<token>`` form collapses into a single
    ``[REDACTED_AUTH]`` marker so the username does not survive either. Tokens
    that overlap the markers themselves are masked with a plain character run
    instead, so the result never contains ``token``.
    """
    if not output or not token:
        return output
    sanitized = output.replace(f"x-access-token:{token}", REDACTED_AUTH).replace(token, REDACTED)
    if token in sanitized:
        mask = _mask_for(token)
        sanitized = output.replace(f"x-access-token:{token}", mask).replace(token, mask)
    return sanitized


def redact_secrets(text: str, secrets: Iterable[str]) -> str:
    """Redact several secret values plus any credentials embedded in URLs."""
    if not text:
        return text
    for secret in secrets:
        if secret:
            text = sanitize_output(text, secret)
    text = _URL_USERINFO_RE.sub(lambda m: f"{m.group(1)}{REDACTED_AUTH}@", text)
    for secret in secrets:
        if secret and secret in text:
            text = text.replace(secret, _mask_for(secret))
    return text
