"""This module contains entity-definitions that constitute the data and state of NotificationHub and its observers"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

RateInput = Union[Decimal, int, float, str]


class RateValidationError(ValueError):
    """Raised when a currency symbol, a rate or an alert rule is not acceptable"""


def normalize_symbol(symbol: str) -> str:
    """
    Return the lookup key of a currency symbol: surrounding whitespace stripped, upper-cased

    :param symbol: str: currency symbol, e.g. "usd/kzt"
    :raises: RateValidationError: if symbol is not a string or is blank

    """
    if not isinstance(symbol, str) or not symbol.strip():
        raise RateValidationError(f"Currency symbol must be a non-empty string: {symbol!r}")
    return symbol.strip().upper()


def parse_rate(rate: RateInput) -> Decimal:
    """
    Convert rate to Decimal and check it is strictly positive

    :param rate: RateInput: Decimal, int, float or numeric string ("," accepted as decimal separator)
    :raises: RateValidationError: if rate is not a finite positive number

    """
    if isinstance(rate, bool) or not isinstance(rate, (Decimal, int, float, str)):
        raise RateValidationError(f"Rate must be a number: {rate!r}")
    text = rate.strip().replace(",", ".") if isinstance(rate, str) else str(rate)
    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise RateValidationError(f"Rate must be a number: {rate!r}") from e
    if not value.is_finite() or value <= 0:
        raise RateValidationError(f"Rate must be greater than 0: {rate}")
    return value


class AlertLevel(Enum):
    """Classification of a rate against a threshold rule"""
    BELOW_MIN = "below-min"
    ABOVE_MAX = "above-max"
    IN_RANGE = "in-range"
    UNRULED = "unruled"


@dataclass(frozen=True)
class RateUpdateResult:
    """
    Outcome of NotificationHub.set_rate.
    `reason` explains a rejection; `failed_subscribers` names subscribers whose reaction raised during the pass.
    `deferred` marks an update requested during a running pass, stored and published once that pass ends.
    """
    symbol: str
    success: bool
    rate: Optional[Decimal] = None
    reason: Optional[str] = None
    failed_subscribers: Tuple[str, ...] = field(default=())
    deferred: bool = False


@dataclass(frozen=True)
class ThresholdRule:
    """Inclusive bounds for one symbol; a missing bound disables that side of the check"""
    min_rate: Optional[Decimal] = None
    max_rate: Optional[Decimal] = None


@dataclass
class SymbolStats:
    """Per-symbol counters kept by RateStats. This class is mutable as every update changes it."""
    count: int = 0
    last_rate: Optional[Decimal] = None


class RateStore:
    """Latest rate per currency symbol, keyed by normalized symbol"""

    def __init__(self):
        self._rates: Dict[str, Decimal] = {}

    def set(self, symbol: str, rate: RateInput) -> Tuple[str, Decimal]:
        """
        Store rate for symbol, overwriting any prior value

        :param symbol: str: currency symbol, matched case-insensitively
        :param rate: RateInput: strictly positive rate
        :returns: Tuple[str, Decimal]: normalized symbol and stored rate
        :raises: RateValidationError: if symbol is blank or rate is not a positive number; nothing is stored

        """
        key = normalize_symbol(symbol)
        value = parse_rate(rate)
        self._rates[key] = value
        return key, value

    def get(self, symbol: str) -> Optional[Decimal]:
        """
        Return latest rate of symbol, or None if it was never set

        :param symbol: str: currency symbol, matched case-insensitively

        """
        if not isinstance(symbol, str):
            return None
        return self._rates.get(symbol.strip().upper())

    def __len__(self) -> int:
        return len(self._rates)


class SubscriberRegistry:
    """
    Ordered collection of distinct subscribers.
    Membership is identity based: two observers with the same configuration are still two subscribers.
    """

    def __init__(self):
        self._handles: List[Any] = []

    def __contains__(self, handle) -> bool:
        return any(existing is handle for existing in self._handles)

    def __len__(self) -> int:
        return len(self._handles)

    def attach(self, handle) -> bool:
        """
        Append handle unless already present

        :param handle: subscriber to add
        :returns: bool: True if membership changed

        """
        if handle in self:
            return False
        self._handles.append(handle)
        return True

    def detach(self, handle) -> bool:
        """
        Remove handle if present; detaching an absent handle is a no-op

        :param handle: subscriber to remove
        :returns: bool: True if membership changed

        """
        for idx, existing in enumerate(self._handles):
            if existing is handle:
                del self._handles[idx]
                return True
        return False

    def snapshot(self) -> List[Any]:
        """Return a copy of current membership in attachment order"""
        return list(self._handles)


@dataclass(frozen=True)
class AlertRuleConfig:
    """Threshold rule of the scripted scenario, applied to ThresholdAlert before the first step"""
    symbol: str
    min_rate: Optional[RateInput] = None
    max_rate: Optional[RateInput] = None


@dataclass(frozen=True)
class ScenarioStep:
    """
    One step of the scripted scenario.
    `observer` is used by attach/detach, `symbol`, `rate` and `delay` by set_rate/set_rate_async.
    `error` is set on a step which could not be parsed; such a step is reported and skipped when the scenario runs.
    """
    action: str
    observer: Optional[str] = None
    symbol: Optional[str] = None
    rate: Optional[RateInput] = None
    delay: float = 0.0
    error: Optional[str] = None


@dataclass(frozen=False)
class Scenario:
    """Scripted sequence of the rates demo: alert rules followed by ordered steps"""
    rules: List[AlertRuleConfig] = field(default_factory=list)
    steps: List[ScenarioStep] = field(default_factory=list)
