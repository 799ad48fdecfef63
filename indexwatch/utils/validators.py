"""Input validation for site URLs and WordPress content collections."""

from urllib.parse import urlparse

CONTENT_TYPES = ("pages", "posts")


def validate_site_url(url: str) -> tuple[bool, str]:
    """Check that *url* names a site root or section that can be diagnosed.

    Returns:
        Tuple of (is_valid, error_message). error_message is empty on success.
    """
    if not url or not isinstance(url, str):
        return False, "Site URL is empty or not a string."
    try:
        parsed = urlparse(url.strip())
    except ValueError as exc:
        return False, f"URL parse error: {exc}"
    if parsed.scheme not in ("http", "https"):
        return False, f"Invalid scheme: {parsed.scheme!r}. Must be http or https."
    hostname = parsed.hostname or ""
    if not hostname:
        return False, "Site URL has no host."
    if len(hostname) > 253:
        return False, "Invalid hostname length."
    if parsed.query or parsed.fragment:
        return False, "Site URL must not carry a query string or fragment."
    return True, ""


def validate_content_type(content_type: str) -> tuple[bool, str]:
    """Validate a WordPress REST collection name (``pages`` or ``posts``)."""
    if content_type not in CONTENT_TYPES:
        return False, f"Unsupported content type: {content_type!r}. Use 'pages' or 'posts'."
    return True, ""
