"""
Bookkeeping for a pending bridge redirect.

The record lives in whatever mapping the caller hands in; routes pass the
Flask session, so it travels with the shopper's browser and survives reloads.
There is a single slot per browser: two tabs customizing at once share it.
The app never learns whether the bridge page succeeded, so the record only
matters on the bounce straight back from that page.
"""
import logging
from datetime import datetime, timezone
from urllib.parse import urlparse

from ..errors import RedirectExhaustedError
from .cart_strategies import normalize_shop_domain

log = logging.getLogger(__name__)

PENDING_KEY = "pending_bridge_request"
EXHAUSTED_KEY = "bridge_request_exhausted"
DEFAULT_MAX_RETRIES = 3

IDLE = "idle"
PENDING = "pending"
EXHAUSTED = "exhausted"


class BridgeTracker:
    def __init__(self, storage, max_retries: int = DEFAULT_MAX_RETRIES, shop_domain: str | None = None):
        self.storage = storage
        self.max_retries = max_retries
        self.shop_domain = normalize_shop_domain(shop_domain)

    @property
    def request(self) -> dict | None:
        return self.storage.get(PENDING_KEY)

    @property
    def state(self) -> str:
        if self.storage.get(EXHAUSTED_KEY):
            return EXHAUSTED
        if self.request:
            return PENDING
        return IDLE

    @property
    def retry_count(self) -> int:
        return int((self.request or {}).get("retry_count") or 0)

    def _save(self, record: dict):
        # the session only tracks top-level assignment
        self.storage[PENDING_KEY] = dict(record)

    def begin(self, url: str) -> dict:
        """Start tracking a fresh bridge redirect, dropping any stale one."""
        self.clear()
        record = {
            "url": url,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "retry_count": 0,
        }
        self._save(record)
        return record

    def retry(self) -> str | None:
        """Return the URL to navigate to again, or None when there is nothing to do."""
        if self.state != PENDING:
            return None

        record = dict(self.request)
        if self.retry_count >= self.max_retries:
            log.warning("Bridge redirect gave up after %s retries: %s", self.retry_count, record.get("url"))
            self.storage.pop(PENDING_KEY, None)
            self.storage[EXHAUSTED_KEY] = True
            raise RedirectExhaustedError()

        record["retry_count"] = self.retry_count + 1
        self._save(record)
        log.info("Retrying bridge redirect (%s/%s)", record["retry_count"], self.max_retries)
        return record["url"]

    def clear(self):
        self.storage.pop(PENDING_KEY, None)
        self.storage.pop(EXHAUSTED_KEY, None)

    def is_bridge_bounce(self, referrer: str | None) -> bool:
        """True when the shopper arrived here from one of the storefront's bridge pages."""
        if not referrer or not self.shop_domain:
            return False
        parsed = urlparse(referrer)
        return (
            (parsed.hostname or "").lower() == self.shop_domain
            and parsed.path.startswith("/pages/")
            and parsed.path.rstrip("/").endswith("-bridge")
        )

    def resume(self, referrer: str | None) -> str | None:
        """Retry when the shopper bounced back from the bridge page.

        Any other visit means the handoff finished one way or another, so the
        record (and a spent exhaustion flag) is dropped without navigating.
        """
        if not self.is_bridge_bounce(referrer):
            if self.state != IDLE:
                log.info("Discarding %s bridge request on a fresh visit", self.state)
            self.clear()
            return None
        if self.state != PENDING:
            return None
        return self.retry()

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "retryCount": self.retry_count,
            "maxRetries": self.max_retries,
            "url": (self.request or {}).get("url"),
        }
