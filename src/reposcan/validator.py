"""
GitHub repository URL validation and normalization.

Accepted form: https://github.com/<owner>/<repo>[.git][/]

The owner and repository grammars are defined once and composed into both the
structural check used by validation and the full expression used by parsing,
so any URL that validates is guaranteed to parse.
"""
import re
from typing import Tuple

from .errors import ValidationError

GITHUB_HOST = "github.com"
GITHUB_PREFIX = f"https://{GITHUB_HOST}/"
EXAMPLE_URL = "https://github.com/owner/repo"

MAX_OWNER_LENGTH = 39

# Alphanumeric segments joined by single hyphens; no leading/trailing hyphen
OWNER_PATTERN = r"[A-Za-z0-9](?:-?[A-Za-z0-9])*"
REPO_PATTERN = r"[A-Za-z0-9._-]+"

_OWNER_RE = re.compile(rf"^{OWNER_PATTERN}$")
_REPO_RE = re.compile(rf"^{REPO_PATTERN}$")

# Two path segments with an optional .git suffix and trailing slash
_STRUCTURE_RE = re.compile(rf"^{re.escape(GITHUB_PREFIX)}([^/]+)/([^/]+?)(?:\.git)?/?$")
GITHUB_URL_RE = re.compile(
    rf"^{re.escape(GITHUB_PREFIX)}({OWNER_PATTERN})/({REPO_PATTERN}?)(?:\.git)?/?$"
)

_RESERVED_REPO_NAMES = {".", ".."}


def _is_valid_owner(owner: str) -> bool:
    return len(owner) <= MAX_OWNER_LENGTH and bool(_OWNER_RE.match(owner))


def _is_valid_repo(repo: str) -> bool:
    return (
        bool(_REPO_RE.match(repo))
        and repo not in _RESERVED_REPO_NAMES
        and not repo.endswith(".git")
    )


def validate_github_url(url: str) -> None:
    """Validate a GitHub repository URL.

    Raises:
        ValidationError: with one of the codes EMPTY_URL, INVALID_PROTOCOL,
            NOT_GITHUB, INVALID_FORMAT, INVALID_OWNER, INVALID_REPO.
    """
    url = (url or "").strip()
    if not url:
        raise ValidationError(
            "EMPTY_URL", "repository URL cannot be empty", example=EXAMPLE_URL
        )

    if not url.startswith("https://"):
        raise ValidationError(
            "INVALID_PROTOCOL", "repository URL must use HTTPS protocol", example=EXAMPLE_URL
        )

    if not url.startswith(GITHUB_PREFIX):
        raise ValidationError(
            "NOT_GITHUB", "URL must be a GitHub repository URL", example=EXAMPLE_URL
        )

    match = _STRUCTURE_RE.match(url)
    if match is None:
        raise ValidationError(
            "INVALID_FORMAT",
            f"invalid repository URL format. Use: {EXAMPLE_URL}",
            example=EXAMPLE_URL,
        )

    owner, repo = match.group(1), match.group(2)
    if not _is_valid_owner(owner):
        raise ValidationError(
            "INVALID_OWNER",
            f"invalid owner format: {owner}",
            field="owner",
            example="Valid owner names are alphanumeric with optional single hyphens",
        )

    if not _is_valid_repo(repo):
        raise ValidationError(
            "INVALID_REPO",
            f"invalid repository name format: {repo}",
            field="repo",
            example="Valid repo names are alphanumeric with optional hyphens, underscores, or dots",
        )


def is_valid_github_url(url: str) -> bool:
    try:
        validate_github_url(url)
    except ValidationError:
        return False
    return True


def parse_github_url(url: str) -> Tuple[str, str]:
    """Extract ``(owner, repo)`` from a GitHub URL, validating it first."""
    validate_github_url(url)
    match = GITHUB_URL_RE.match(url.strip())
    if match is None:
        # Unreachable while both expressions share the segment grammars
        raise ValidationError("PARSE_ERROR", "failed to parse repository URL")
    return match.group(1), match.group(2)


def normalize_github_url(url: str) -> str:
    """Strip surrounding whitespace, one trailing slash and one ``.git`` suffix."""
    url = (url or "").strip()
    if url.endswith("/"):
        url = url[:-1]
    if url.endswith(".git"):
        url = url[:-len(".git")]
    return url


def build_github_url(owner: str, repo: str) -> str:
    return f"{GITHUB_PREFIX}{owner}/{repo}"
