"""This module contains the class NotificationHub which pushes currency rate changes to its subscribers"""

import asyncio
import threading
from collections import deque
from decimal import Decimal
from typing import Deque, List, Optional, Tuple

from common.logging_adapter import get_configured_logger
from rate_notifier.entities import (RateInput, RateStore, RateUpdateResult, RateValidationError, SubscriberRegistry,
                                    normalize_symbol, parse_rate)
from rate_notifier.observers import RateObserver


class NotificationHub:
    """
    Subject of the rate notification system:
        - Keeps the latest rate of every currency symbol
        - Keeps an ordered list of distinct subscribers
        - On every accepted rate change, pushes the new rate to every subscriber in attachment order

    NotificationHub state consists of:
        :_store: RateStore: latest rate per normalized symbol
        :_registry: SubscriberRegistry: subscribers in attachment order
        :_lock: threading.RLock: serializes validate -> mutate -> snapshot -> notify across callers.
            Re-entrant so that a subscriber reaction may itself call attach, detach or set_rate.
        :_notifying: bool: True while a notification pass runs
        :_pending: Deque[Tuple[str, Optional[Decimal]]]: updates requested during a pass, as (symbol, rate) pairs.
            They are applied after the pass so that passes never interleave; rate None only republishes the symbol.
    """

    def __init__(self):
        self.logger = get_configured_logger(self.__class__.__name__)
        self._store = RateStore()
        self._registry = SubscriberRegistry()
        self._lock = threading.RLock()
        self._notifying = False
        self._pending: Deque[Tuple[str, Optional[Decimal]]] = deque()

    @property
    def subscribers(self) -> List[RateObserver]:
        return self._registry.snapshot()

    def attach(self, observer: RateObserver) -> bool:
        """
        Subscribe observer to rate updates; attaching an already attached observer is a no-op

        :param observer: RateObserver: subscriber to add
        :returns: bool: True if observer was added

        """
        with self._lock:
            added = self._registry.attach(observer)
        if added:
            self.logger.info("subscriber attached", subscriber=observer.name, subscriber_count=len(self._registry))
        else:
            self.logger.info("subscriber already attached", subscriber=observer.name)
        return added

    def detach(self, observer: RateObserver) -> bool:
        """
        Unsubscribe observer; detaching an observer which is not attached is a no-op

        :param observer: RateObserver: subscriber to remove
        :returns: bool: True if observer was removed

        """
        with self._lock:
            removed = self._registry.detach(observer)
        if removed:
            self.logger.info("subscriber detached", subscriber=observer.name, subscriber_count=len(self._registry))
        else:
            self.logger.info("subscriber not attached", subscriber=observer.name)
        return removed

    def get_rate(self, symbol: str) -> Optional[Decimal]:
        """
        Return latest rate of given symbol if available, None otherwise

        :param symbol: str: currency symbol, matched case-insensitively

        """
        return self._store.get(symbol)

    def set_rate(self, symbol: str, rate: RateInput) -> RateUpdateResult:
        """
        Update the rate of symbol and notify subscribers:
            - an invalid symbol or a non-positive rate is rejected before any mutation, and nobody is notified
            - otherwise the rate is stored and every current subscriber receives it
            - when called by a subscriber during a pass, the update is validated now but stored and published
              after the running pass ends; the result is then marked as deferred

        :param symbol: str: currency symbol
        :param rate: RateInput: new rate, must be > 0
        :returns: RateUpdateResult: outcome, including the reason of a rejection

        """
        with self._lock:
            try:
                key, value = normalize_symbol(symbol), parse_rate(rate)
            except RateValidationError as e:
                self.logger.warning("rate rejected", symbol=symbol, rate=rate, reason=e)
                return RateUpdateResult(symbol=str(symbol), success=False, reason=str(e))
            if self._notifying:
                self._pending.append((key, value))
                self.logger.info("rate update deferred until end of current pass", symbol=key, new=value)
                return RateUpdateResult(symbol=key, success=True, rate=value, deferred=True)
            self._apply(key, value)
            failed = self.notify(key)
            return RateUpdateResult(symbol=key, success=True, rate=value, failed_subscribers=tuple(failed))

    async def set_rate_async(self, symbol: str, rate: RateInput, delay: float = 0.5) -> RateUpdateResult:
        """
        Wait for a simulated latency, then apply set_rate

        :param symbol: str: currency symbol
        :param rate: RateInput: new rate, must be > 0
        :param delay: float:  (Default value = 0.5) seconds to wait before applying the change

        """
        self.logger.debug("delaying rate update", symbol=symbol, delay=delay)
        await asyncio.sleep(delay)
        return self.set_rate(symbol, rate)

    def notify(self, symbol: str) -> List[str]:
        """
        Push current rate of symbol to a snapshot of subscribers, in attachment order.
        A subscriber raising an exception is logged and skipped; the remaining subscribers are still notified.
        Updates requested by subscribers during the pass are applied and published, in request order,
        only once the pass has reached every subscriber.

        :param symbol: str: currency symbol
        :returns: List[str]: names of subscribers whose reaction failed during the pass for symbol

        """
        with self._lock:
            if self._notifying:
                self._pending.append((symbol, None))
                return []
            self._notifying = True
            try:
                failed = self._publish(symbol)
                while self._pending:
                    key, value = self._pending.popleft()
                    if value is not None:
                        self._apply(key, value)
                    self._publish(key)
            finally:
                self._notifying = False
        return failed

    def _apply(self, key: str, value: Decimal) -> None:
        old_rate = self._store.get(key)
        self._store.set(key, value)
        self.logger.info("updated rate", symbol=key, old=old_rate, new=value)

    def _publish(self, symbol: str) -> List[str]:
        failed: List[str] = []
        rate = self._store.get(symbol)
        if rate is None:
            self.logger.debug("no rate to publish", symbol=symbol)
            return failed
        subscribers = self._registry.snapshot()
        self.logger.info("publishing rate update", symbol=symbol, subscriber_count=len(subscribers))
        for cnt, subscriber in enumerate(subscribers, start=1):
            try:
                subscriber.receive(symbol, rate)
            except Exception:
                failed.append(subscriber.name)
                self.logger.error("subscriber failed", subscriber=subscriber.name, symbol=symbol)
                continue
            self.logger.debug("published rate update", count=f"{cnt}/{len(subscribers)}",
                              subscriber=subscriber.name)
        self.logger.info("published rate update", symbol=symbol, subscriber_count=len(subscribers),
                         failed_count=len(failed))
        return failed
