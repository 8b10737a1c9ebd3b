"""Time-bounded customer cache.

One instance is owned by a resolver (and thereby by a pipeline); nothing is
process-global. Expired entries are evicted on the next lookup.
"""

import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from customer_resolver.models import CustomerInfo


class CustomerCache:
    """Domain -> CustomerInfo map guarded by a lock."""

    def __init__(
        self,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CustomerInfo] = {}
        self._lock = threading.Lock()

    def get(self, domain: str) -> Optional[CustomerInfo]:
        """Cached entry younger than the TTL, evicting it if it has expired."""
        with self._lock:
            entry = self._entries.get(domain)
            if entry is None:
                return None
            if entry.cached_at is None or self._clock() - entry.cached_at >= self.ttl:
                del self._entries[domain]
                return None
            return entry

    def put(self, domain: str, customer: CustomerInfo) -> CustomerInfo:
        """Store a customer stamped with the current time."""
        stamped = customer.model_copy(update={"cached_at": self._clock()})
        with self._lock:
            self._entries[domain] = stamped
        return stamped

    def invalidate(self, domain: Optional[str] = None) -> None:
        with self._lock:
            if domain is None:
                self._entries.clear()
            else:
                self._entries.pop(domain, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, domain: str) -> bool:
        with self._lock:
            return domain in self._entries
