"""URL slugs for organizations and donors, plus collision avoidance."""

from __future__ import annotations

import re
import secrets
import string
from typing import Callable

ORG_SLUG_MAX = 60
DONOR_SLUG_MAX = 40

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_LEADING_THE = re.compile(r"^the\s+", re.IGNORECASE)
_HONORIFIC = re.compile(r"^(mr\.?|mrs\.?|ms\.?|dr\.?|prof\.?)\s+", re.IGNORECASE)
_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")
_VALID = re.compile(r"^[a-z0-9][a-z0-9-]{2,60}[a-z0-9]$")


class SlugCollisionError(RuntimeError):
    pass


def _slugify(text: str, max_len: int) -> str:
    s = _DISALLOWED.sub("", text)
    s = _WHITESPACE.sub("-", s)
    s = _HYPHENS.sub("-", s).strip("-")
    return s[:max_len]


def org_slug(name: str) -> str:
    """
    "Boys & Girls Club of Permian Basin" -> "boys-and-girls-club-of-permian-basin"
    "The Nature Conservancy"             -> "nature-conservancy"
    """
    s = _LEADING_THE.sub("", (name or "").strip().lower())
    return _slugify(s.replace("&", "and"), ORG_SLUG_MAX)


def donor_slug(name: str) -> str:
    """"Dr. Jane Doe" -> "jane-doe" """
    s = _HONORIFIC.sub("", (name or "").strip().lower())
    return _slugify(s, DONOR_SLUG_MAX)


def random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def unique_slug(
    base: str,
    exists: Callable[[str], bool],
    suffix_length: int = 6,
    attempts: int = 5,
) -> str:
    """
    Return `base` if it's free, otherwise `base-<suffix>` with a random
    lowercase suffix. `exists` is usually a DB lookup.
    """
    if not base:
        base = random_suffix(suffix_length)
    if not exists(base):
        return base

    for _ in range(attempts):
        candidate = f"{base}-{random_suffix(suffix_length)}"
        if not exists(candidate):
            return candidate
    raise SlugCollisionError(f"Could not find a free slug for {base!r} after {attempts} attempts")


def is_valid_slug(slug: str) -> bool:
    return bool(_VALID.match(slug or ""))
