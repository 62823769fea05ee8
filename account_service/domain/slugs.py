"""URL-safe account slugs derived from email addresses.

Examples::

    john.doe@example.com -> john-doe
    admin@template.com   -> admin
"""

from __future__ import annotations

import re
from typing import Collection

_DISALLOWED = re.compile(r"[^a-z0-9-]")
_SEPARATORS = re.compile(r"[._]")
SLUG_PATTERN = re.compile(r"^[a-z0-9-]*$")


def slug_base(email: str) -> str:
    """Return the un-suffixed slug candidate for ``email``.

    May be the empty string when the local part has no usable characters.
    """
    local_part = email.split("@", 1)[0].lower()
    return _DISALLOWED.sub("", _SEPARATORS.sub("-", local_part))


def make_unique(base: str, existing_slugs: Collection[str]) -> str:
    """Probe ``base``, ``base-1``, ``base-2``, ... and return the first free candidate."""
    candidate = base
    counter = 1
    while candidate in existing_slugs:
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


def assign_slug(email: str, existing_slugs: Collection[str]) -> str:
    """Derive a slug for ``email`` that does not collide with ``existing_slugs``."""
    return make_unique(slug_base(email), existing_slugs)
