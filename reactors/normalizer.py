# normalizer.py
"""
Turns whatever PhantomBuster put in a container's output into a list of
ProfileRecord.

The agent's result schema is not fixed and has changed between runs, so
the payload is matched against an ordered list of shapes (first match
wins) and every profile field is resolved from an ordered list of alias
keys. Add a new alias or shape to the tables below; the control flow
does not change.
"""

import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from .models import ProfileRecord

logger = logging.getLogger(__name__)

PROFILE_URL_KEYS = ("profileUrl", "url", "linkedinUrl", "profile", "linkedin")
NAME_KEYS = ("name", "fullName")
FIRST_NAME_KEY = "firstName"
LAST_NAME_KEY = "lastName"
HEADLINE_KEYS = ("headline", "title", "jobTitle", "position")


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


# -------------------------------------------------------------------
# Payload shapes
# -------------------------------------------------------------------
def _match_sequence(raw: Any) -> Optional[Sequence[Any]]:
    """[p1, p2, ...]"""
    return raw if _is_sequence(raw) else None


def _match_first_non_empty_sequence(raw: Any) -> Optional[Sequence[Any]]:
    """{"meta": {...}, "likers": [p1, p2, ...]}"""
    if not isinstance(raw, Mapping):
        return None
    return next((v for v in raw.values() if _is_sequence(v) and len(v) > 0), None)


def _match_any_sequence(raw: Any) -> Optional[Sequence[Any]]:
    """{"likers": []}"""
    if not isinstance(raw, Mapping):
        return None
    return next((v for v in raw.values() if _is_sequence(v)), None)


SHAPES: Sequence[Callable[[Any], Optional[Sequence[Any]]]] = (
    _match_sequence,
    _match_first_non_empty_sequence,
    _match_any_sequence,
)


def extract_profile_objects(raw: Any) -> Sequence[Any]:
    for shape in SHAPES:
        found = shape(raw)
        if found is not None:
            return found
    return []


# -------------------------------------------------------------------
# Field resolution
# -------------------------------------------------------------------
def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _first_text(obj: Mapping[str, Any], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = _text(obj.get(key))
        if value:
            return value
    return None


def _resolve_name(obj: Mapping[str, Any]) -> Optional[str]:
    name = _first_text(obj, NAME_KEYS)
    if name:
        return name
    first = _text(obj.get(FIRST_NAME_KEY))
    last = _text(obj.get(LAST_NAME_KEY))
    if first and last:
        return f"{first} {last}"
    return first


def to_profile(obj: Any) -> Optional[ProfileRecord]:
    """Resolve one raw profile; None when it has no usable profile URL."""
    if not isinstance(obj, Mapping):
        return None
    profile_url = _first_text(obj, PROFILE_URL_KEYS)
    if not profile_url:
        return None
    return ProfileRecord(
        profile_url=profile_url,
        name=_resolve_name(obj),
        headline=_first_text(obj, HEADLINE_KEYS),
    )


def normalize(raw_output: Any) -> List[ProfileRecord]:
    """
    Extract profiles from a raw container output. Never raises:
    an unrecognised payload yields an empty list.
    """
    if isinstance(raw_output, (str, bytes)):
        try:
            raw_output = json.loads(raw_output)
        except (ValueError, RecursionError):
            logger.warning("Container output is not decodable JSON; no profiles extracted")
            return []

    objects = extract_profile_objects(raw_output)
    profiles = [p for p in (to_profile(o) for o in objects) if p is not None]

    dropped = len(objects) - len(profiles)
    if dropped:
        logger.info("Dropped %d raw profile(s) without a profile URL", dropped)
    return profiles


def summarize_shape(raw_output: Any) -> Dict[str, Any]:
    """Small description of a payload for the operation log."""
    if _is_sequence(raw_output):
        return {"type": "array", "length": len(raw_output)}
    if isinstance(raw_output, Mapping):
        return {"type": "object", "keys": list(raw_output.keys())[:20]}
    return {"type": type(raw_output).__name__}
