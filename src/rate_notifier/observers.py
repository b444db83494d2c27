"""This module contains the rate observers which react to updates pushed by NotificationHub"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Optional, TextIO

from rate_notifier.entities import (AlertLevel, RateInput, RateValidationError, SymbolStats, ThresholdRule,
                                    normalize_symbol, parse_rate)


class RateObserver(ABC):
    """
    Base class of all subscribers of NotificationHub.
    Each observer owns its state exclusively and writes what it emits to its own output stream.
    """

    def __init__(self, out_stream: TextIO):
        self.out_stream = out_stream

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def receive(self, symbol: str, rate: Decimal) -> None:
        """
        React to a rate update

        :param symbol: str: normalized currency symbol
        :param rate: Decimal: new rate of symbol

        """

    def publish(self, message: str) -> None:
        print(message, file=self.out_stream)


class RateLogger(RateObserver):
    """Emits one line for every update it receives"""

    def receive(self, symbol: str, rate: Decimal) -> None:
        self.publish(f"[LOG] {symbol} = {rate}")


class ThresholdAlert(RateObserver):
    """
    Classifies every update against a per-symbol rule:
        - below-min / above-max when the rate leaves the inclusive [min, max] range
        - in-range otherwise
        - unruled when no rule is configured for the symbol
    Rules may be set before or after the observer is attached.
    """

    def __init__(self, out_stream: TextIO):
        super().__init__(out_stream)
        self._rules: Dict[str, ThresholdRule] = {}

    def set_rule(self, symbol: str, min_rate: Optional[RateInput] = None,
                 max_rate: Optional[RateInput] = None) -> ThresholdRule:
        """
        Set (or overwrite) the rule for symbol

        :param symbol: str: currency symbol, matched case-insensitively
        :param min_rate: Optional[RateInput]:  (Default value = None) lower bound, None disables it
        :param max_rate: Optional[RateInput]:  (Default value = None) upper bound, None disables it
        :returns: ThresholdRule: the stored rule
        :raises: RateValidationError: if a bound is not a positive number or min exceeds max

        """
        key = normalize_symbol(symbol)
        low = None if min_rate is None else parse_rate(min_rate)
        high = None if max_rate is None else parse_rate(max_rate)
        if low is not None and high is not None and low > high:
            raise RateValidationError(f"Rule for {key} has min {low} greater than max {high}")
        rule = ThresholdRule(min_rate=low, max_rate=high)
        self._rules[key] = rule
        return rule

    def get_rule(self, symbol: str) -> Optional[ThresholdRule]:
        return self._rules.get(normalize_symbol(symbol))

    def classify(self, symbol: str, rate: Decimal) -> AlertLevel:
        rule = self._rules.get(normalize_symbol(symbol))
        if rule is None:
            return AlertLevel.UNRULED
        if rule.min_rate is not None and rate < rule.min_rate:
            return AlertLevel.BELOW_MIN
        if rule.max_rate is not None and rate > rule.max_rate:
            return AlertLevel.ABOVE_MAX
        return AlertLevel.IN_RANGE

    def receive(self, symbol: str, rate: Decimal) -> None:
        level = self.classify(symbol, rate)
        if level is AlertLevel.UNRULED:
            self.publish(f"[ALERT] {symbol} {level.value}: rate {rate}")
            return
        rule = self._rules[normalize_symbol(symbol)]
        self.publish(f"[ALERT] {symbol} {level.value}: rate {rate} (min={rule.min_rate}, max={rule.max_rate})")


class RateStats(RateObserver):
    """Counts updates and remembers the last rate of every symbol it has seen"""

    def __init__(self, out_stream: TextIO):
        super().__init__(out_stream)
        self._stats: Dict[str, SymbolStats] = {}

    def receive(self, symbol: str, rate: Decimal) -> None:
        stats = self._stats.setdefault(normalize_symbol(symbol), SymbolStats())
        stats.count += 1
        stats.last_rate = rate
        self.publish(f"[STATS] {symbol}: updates={stats.count}, last={stats.last_rate}")

    def get(self, symbol: str) -> Optional[SymbolStats]:
        """
        Return a copy of counters of symbol, or None if no update was received for it

        :param symbol: str: currency symbol, matched case-insensitively

        """
        stats = self._stats.get(normalize_symbol(symbol))
        return None if stats is None else SymbolStats(stats.count, stats.last_rate)

    def report(self) -> str:
        """Render counters of all tracked symbols, in the order they were first seen"""
        if not self._stats:
            return "[STATS] no updates received"
        lines = ["[STATS] report:"]
        for symbol, stats in self._stats.items():
            lines.append(f"  {symbol}: updates={stats.count}, last={stats.last_rate}")
        return "\n".join(lines)
