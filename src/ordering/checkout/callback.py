"""Payment return callback parsing.

The payment page hands control back through a URL such as
``betza://payment-callback?reference=abc`` (or ``?trxref=abc``). Both
parameters are accepted; ``reference`` wins when both are present.
"""

from urllib.parse import parse_qs, urlsplit

REFERENCE_PARAMS = ("reference", "trxref")


def parse_callback_reference(url: str) -> str | None:
    """Return the payment reference carried by ``url``, or None."""
    query = parse_qs(urlsplit(url).query)
    for name in REFERENCE_PARAMS:
        values = [v.strip() for v in query.get(name, []) if v.strip()]
        if values:
            return values[0]
    return None


def _target(url: str) -> tuple[str, str, str]:
    parts = urlsplit(url)
    return parts.scheme.lower(), parts.netloc.lower(), parts.path.rstrip("/")


def matches_redirect(url: str, redirect_url: str) -> bool:
    """True if ``url`` returns to ``redirect_url`` (query string ignored)."""
    return _target(url) == _target(redirect_url)
