# validation.py
"""
Input checks for LinkedIn post URLs and project names, applied before
anything is sent to PhantomBuster.
"""

import math
from typing import Optional, Tuple
from urllib.parse import urlparse

# LinkedIn only exposes the first 3,000 likers of a post
LINKEDIN_MAX_LIKERS = 3000

# Observed agent throughput: ~25 seconds per 900 likers
LIKERS_PER_BATCH = 900
SECONDS_PER_BATCH = 25
SETUP_BUFFER_SECONDS = 30


def validate_post_url(url: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Return (valid, error message) for a candidate post URL."""
    if url is None or (isinstance(url, str) and not url.strip()):
        return False, "LinkedIn post URL is required"
    if not isinstance(url, str):
        return False, "Invalid URL format"

    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False, "Invalid URL format"

    host = parsed.hostname.lower()
    if host != "linkedin.com" and not host.endswith(".linkedin.com"):
        return False, "URL must be from linkedin.com domain"

    if "/pulse/" in parsed.path:
        return False, (
            "Pulse posts (linkedin.com/pulse/...) are not supported. "
            "Please use regular LinkedIn posts."
        )

    if "/posts/" not in parsed.path:
        return False, "URL must be a LinkedIn post URL (containing /posts/)"

    return True, None


def validate_project_name(name: Optional[str]) -> Tuple[bool, Optional[str]]:
    if not name or not isinstance(name, str) or not name.strip():
        return False, "Project name is required"
    return True, None


def estimate_execution_time(num_likers: int) -> int:
    """Seconds the agent should need for a post with `num_likers` reactors."""
    num_likers = max(0, min(num_likers, LINKEDIN_MAX_LIKERS))
    return math.ceil(num_likers / LIKERS_PER_BATCH * SECONDS_PER_BATCH) + SETUP_BUFFER_SECONDS
