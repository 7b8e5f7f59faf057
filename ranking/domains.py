"""
ranking/domains.py

Host normalization and same-site matching for ranked result domains.
"""

from __future__ import annotations

from urllib.parse import urlparse


def normalize_domain(value: str | None) -> str:
    """Reduce a URL or bare host to a comparable domain.

    Lower-cases, drops scheme, credentials, port, path and a single leading
    ``www.`` label. Returns an empty string when no host can be derived.

    Args:
        value: A full URL (``https://www.example.com/a``) or a bare host.

    Returns:
        The normalized domain, e.g. ``example.com``.
    """
    if not value:
        return ""
    candidate = value.strip().lower()
    if not candidate:
        return ""
    if "://" not in candidate:
        candidate = f"//{candidate}"
    host = urlparse(candidate).hostname or ""
    host = host.rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def domain_matches(result_domain: str | None, reference: str | None) -> bool:
    """Return True when ``result_domain`` belongs to the same site as ``reference``.

    Both sides are normalized first. A match is either exact equality or a
    subdomain of the reference (``shop.example.com`` matches
    ``example.com``). Suffix checks are label-aligned so ``notexample.com``
    and ``example.com.evil.tld`` never match ``example.com``.
    """
    left = normalize_domain(result_domain)
    right = normalize_domain(reference)
    if not left or not right:
        return False
    return left == right or left.endswith(f".{right}")
