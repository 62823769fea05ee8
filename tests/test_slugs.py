from __future__ import annotations

import pytest

from account_service.domain.slugs import assign_slug, slug_base


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("john.doe@example.com", "john-doe"),
        ("admin@template.com", "admin"),
        ("Mary_Ann.Smith@example.com", "mary-ann-smith"),
        ("o'brien+news@example.com", "obriennews"),
        ("+++@x.com", ""),
    ],
)
def test_slug_base_normalises_local_part(email, expected):
    assert slug_base(email) == expected


def test_assign_slug_returns_base_when_free():
    assert assign_slug("john.doe@example.com", set()) == "john-doe"


def test_assign_slug_appends_first_free_counter():
    assert assign_slug("john.doe@example.com", {"john-doe"}) == "john-doe-1"
    assert assign_slug("john.doe@example.com", {"john-doe", "john-doe-1"}) == "john-doe-2"


def test_assign_slug_fills_smallest_gap():
    existing = {"john-doe", "john-doe-1", "john-doe-3"}
    assert assign_slug("john.doe@example.com", existing) == "john-doe-2"


def test_assign_slug_is_deterministic():
    existing = {"sam", "sam-1"}
    assert assign_slug("sam@example.com", existing) == assign_slug("sam@example.com", existing)


def test_assign_slug_empty_base_still_probes():
    assert assign_slug("+++@x.com", set()) == ""
    assert assign_slug("+++@x.com", {""}) == "-1"
    assert assign_slug("+++@x.com", {"", "-1"}) == "-2"
