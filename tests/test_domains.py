"""
tests/test_domains.py

Host normalization and same-site matching.
"""

from __future__ import annotations

import pytest

from ranking.domains import domain_matches, normalize_domain


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("https://www.Example.com/path?q=1", "example.com"),
        ("http://user:pw@shop.example.com:8080/", "shop.example.com"),
        ("example.com", "example.com"),
        ("www.example.com.", "example.com"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_domain(value, expected) -> None:
    assert normalize_domain(value) == expected


class TestDomainMatches:
    def test_exact_match_ignores_www_and_scheme(self) -> None:
        assert domain_matches("https://www.acme.fr/page", "acme.fr")

    def test_subdomain_matches_reference(self) -> None:
        assert domain_matches("blog.acme.fr", "https://www.acme.fr")

    def test_suffix_without_label_boundary_does_not_match(self) -> None:
        assert not domain_matches("notacme.fr", "acme.fr")

    def test_reference_as_prefix_does_not_match(self) -> None:
        assert not domain_matches("acme.fr.evil.tld", "acme.fr")

    def test_parent_does_not_match_subdomain_reference(self) -> None:
        assert not domain_matches("acme.fr", "shop.acme.fr")

    def test_empty_sides_never_match(self) -> None:
        assert not domain_matches("", "acme.fr")
        assert not domain_matches("acme.fr", None)
