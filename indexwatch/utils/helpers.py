"""General-purpose helper utilities."""

from bs4 import BeautifulSoup


def normalise_site_url(url: str) -> str:
    """Ensure *url* has a scheme and no trailing slash.

    Examples:
        >>> normalise_site_url("example.com/")
        'https://example.com'
        >>> normalise_site_url("http://example.com")
        'http://example.com'
    """
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    return url.rstrip("/")


def strip_html(html: str) -> str:
    """Strip HTML tags and return whitespace-collapsed plain text."""
    if not html:
        return ""
    text = BeautifulSoup(html, "html.parser").get_text(separator=" ")
    return " ".join(text.split())


def mask_secret(value: str, visible: int = 4) -> str:
    """Mask all but the first and last *visible* characters of a secret."""
    if not value:
        return ""
    if len(value) <= visible * 2:
        return "*" * len(value)
    return value[:visible] + "..." + value[-visible:]
