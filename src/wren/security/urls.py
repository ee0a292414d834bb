"""URL safety validation for redirect targets.

``Controller.back()`` redirects to the ``Referer`` header, which the
client controls. Only same-origin targets are followed.
"""

from urllib.parse import urlsplit


def is_safe_url(url: str, allowed_hosts: frozenset[str] | set[str] = frozenset()) -> bool:
    """Check whether *url* is safe to redirect to.

    Relative paths are safe (``/dashboard``), protocol-relative and
    absolute URLs are not, unless their host is in *allowed_hosts*::

        >>> is_safe_url("/dashboard")
        True
        >>> is_safe_url("//evil.com")
        False
        >>> is_safe_url("https://example.com/x", {"example.com"})
        True
    """
    if not url or not isinstance(url, str):
        return False
    if url.startswith("/") and not url.startswith("//") and "\\" not in url:
        return "://" not in url
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and parts.hostname is not None and parts.hostname in allowed_hosts
