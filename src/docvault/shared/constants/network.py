"""
Network Configuration Constants

Defaults for fetch admission, retries, deadlines and payload checks.
"""

from .cache import BASE_SECOND


class FetchDefaults:
    """Fetch orchestration defaults."""

    MAX_CONCURRENT = 3
    MAX_RETRIES = 2
    BASE_RETRY_DELAY = 2.0 * BASE_SECOND

    # Per-attempt deadline is BASE_TIMEOUT + attempt * TIMEOUT_STEP
    BASE_TIMEOUT = 10.0 * BASE_SECOND
    TIMEOUT_STEP = 5.0 * BASE_SECOND
    HARD_TIMEOUT = 20.0 * BASE_SECOND

    LOCATOR_TEMPLATE = "https://www.amazon.com/dp/{key}"

    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
    ACCEPT = "text/html,application/xhtml+xml,application/xml,application/json"
    ACCEPT_LANGUAGE = "en-US,en;q=0.9"


class PayloadLimits:
    """Sanity checks applied to fetched payloads."""

    # HTML pages shorter than this are error or interstitial pages
    MIN_HTML_PAYLOAD_CHARS = 1000
    CHALLENGE_MARKERS = ("captcha", "robot")
    NOT_FOUND_MARKERS = ("page you requested could not be found",)


class MetricsDefaults:
    """Request metrics defaults."""

    # Timings kept for averages; older samples are dropped
    MAX_SAMPLES = 500
    SLOW_REQUEST_MS = 500.0
