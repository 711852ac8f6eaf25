"""Serialized sequence-number assignment for one signing account.

Every mutating ledger call for the account reserves its sequence number(s)
through ``NonceCoordinator.reserve``. Reservations are served strictly in
arrival order; the next waiter is admitted only after the previous holder's
submission returned (plus a short broadcast delay), so "assign next nonce" and
"advance the cache" never interleave between callers.
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple

from .client import SequenceNumberSource

logger = logging.getLogger(__name__)

DEFAULT_CACHE_WINDOW = 2.0
DEFAULT_RELEASE_DELAY = 0.1


@dataclass(frozen=True)
class NonceTicket:
    account: str
    nonces: Tuple[int, ...]

    @property
    def nonce(self) -> int:
        return self.nonces[0]


class NonceCoordinator:
    """One instance per signing account, shared by every caller that submits
    transactions for it."""

    def __init__(
        self,
        account: str,
        source: SequenceNumberSource,
        cache_window: float = DEFAULT_CACHE_WINDOW,
        release_delay: float = DEFAULT_RELEASE_DELAY,
        block_tag: str = "pending",
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if cache_window < 0 or release_delay < 0:
            raise ValueError("cache_window and release_delay must be non-negative.")
        self._account = account
        self._source = source
        self._cache_window = cache_window
        self._release_delay = release_delay
        self._block_tag = block_tag
        self._clock = clock or time.monotonic

        self._queue = threading.Condition()
        self._next_ticket = 0
        self._now_serving = 0

        self._state_lock = threading.Lock()
        self._cached_nonce: Optional[int] = None
        self._cached_at = 0.0

    @property
    def account(self) -> str:
        return self._account

    @property
    def cached_nonce(self) -> Optional[int]:
        with self._state_lock:
            return self._cached_nonce

    @property
    def waiting(self) -> int:
        with self._queue:
            return self._next_ticket - self._now_serving

    def invalidate(self) -> None:
        with self._state_lock:
            if self._cached_nonce is not None:
                logger.warning(
                    "Invalidating cached nonce %s for %s", self._cached_nonce, self._account
                )
            self._cached_nonce = None
            self._cached_at = 0.0

    @contextmanager
    def reserve(self, count: int = 1) -> Iterator[NonceTicket]:
        """Hold the account's submission slot and assign ``count`` nonces.

        Leave the block only once the submission(s) using the ticket returned.
        An exception inside the block invalidates the cache so the next
        reservation re-reads the ledger.
        """

        if count < 1:
            raise ValueError("count must be at least 1.")

        self._acquire()
        try:
            nonces = self._assign(count)
        except BaseException:
            self.invalidate()
            self._release()
            raise

        try:
            yield NonceTicket(account=self._account, nonces=nonces)
        except BaseException:
            self.invalidate()
            self._release()
            raise

        self._schedule_release()

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the account's submission slot without assigning a nonce.

        Used to replace a transaction at a nonce that was already handed out.
        The cache is dropped on exit since the ledger's pending view changed.
        """

        self._acquire()
        try:
            yield
        except BaseException:
            self.invalidate()
            self._release()
            raise

        self.invalidate()
        self._schedule_release()

    def _assign(self, count: int) -> Tuple[int, ...]:
        now = self._clock()
        with self._state_lock:
            cached = self._cached_nonce
            fresh = cached is not None and now - self._cached_at < self._cache_window

        if fresh:
            first = cached
        else:
            first = self._source.get_next_sequence_number(self._account, self._block_tag)
            logger.debug("Seeded nonce cache for %s at %s", self._account, first)

        with self._state_lock:
            if not fresh:
                self._cached_at = now
            self._cached_nonce = first + count
        return tuple(range(first, first + count))

    def _acquire(self) -> None:
        with self._queue:
            ticket = self._next_ticket
            self._next_ticket += 1
            while self._now_serving != ticket:
                self._queue.wait()

    def _release(self) -> None:
        with self._queue:
            self._now_serving += 1
            self._queue.notify_all()

    def _schedule_release(self) -> None:
        if self._release_delay == 0:
            self._release()
            return
        timer = threading.Timer(self._release_delay, self._release)
        timer.daemon = True
        timer.start()
