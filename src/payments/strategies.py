"""This module contains the payment strategies and the context which runs a payment with the selected one"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Dict, Optional

AMOUNT_PATTERN = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)")
CENT = Decimal("0.01")
CARD_FEE_RATE = Decimal("0.02")
PAYPAL_FEE_RATE = Decimal("0.035")
PAYPAL_FIXED_FEE = Decimal("0.30")
CRYPTO_NETWORK_FEES: Dict[str, Decimal] = {
    "BTC": Decimal("3.00"),
    "ETH": Decimal("2.00"),
    "USDT": Decimal("1.00")
}
CRYPTO_DEFAULT_FEE = Decimal("1.50")
AMOUNT_NOT_POSITIVE = "Amount must be greater than 0."


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of a payment attempt. `total` is the charged amount including fees, set only on success."""
    success: bool
    message: str
    total: Optional[Decimal] = field(default=None)


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half to even"""
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def parse_amount(text: str) -> Decimal:
    """
    Parse a monetary amount typed by a user, accepting "," as decimal separator

    :param text: str: e.g. "199.99" or "199,99"
    :returns: Decimal: parsed amount, sign is not checked here
    :raises: ValueError: if text is not plain decimal notation (no exponent, underscores, inf or NaN)

    """
    normalized = text.strip().replace(",", ".")
    if not AMOUNT_PATTERN.fullmatch(normalized):
        raise ValueError(f"Invalid amount: {text!r}")
    return Decimal(normalized)


class PaymentStrategy(ABC):
    """A payment method: validates its own details, computes its fee and charges the amount"""

    method: str = ""

    @abstractmethod
    def pay(self, amount: Decimal) -> PaymentResult:
        """
        Charge amount with this payment method

        :param amount: Decimal: amount before fees, must be > 0
        :returns: PaymentResult: failure with a reason, or success with the total charged

        """


class CardPaymentStrategy(PaymentStrategy):
    """Bank card: 12-19 digit number, 3-4 digit CVV, 2% fee"""

    method = "Card"

    def __init__(self, card_number: Optional[str], holder: Optional[str], cvv: Optional[str]):
        self._card_number = (card_number or "").replace(" ", "")
        self._holder = holder or ""
        self._cvv = cvv or ""

    def pay(self, amount: Decimal) -> PaymentResult:
        if not 12 <= len(self._card_number) <= 19:
            return PaymentResult(False, "Card number is invalid.")
        if not 3 <= len(self._cvv) <= 4:
            return PaymentResult(False, "CVV is invalid.")
        if amount <= 0:
            return PaymentResult(False, AMOUNT_NOT_POSITIVE)
        total = amount + round_money(amount * CARD_FEE_RATE)
        return PaymentResult(
            True,
            f"[CARD] Holder: {self._holder}. Amount: {amount} + 2% fee = {total}. Payment completed.",
            total
        )


class PayPalPaymentStrategy(PaymentStrategy):
    """PayPal account identified by e-mail, 3.5% + 0.30 fee"""

    method = "PayPal"

    def __init__(self, email: Optional[str]):
        self._email = email or ""

    def pay(self, amount: Decimal) -> PaymentResult:
        if not self._email.strip() or "@" not in self._email:
            return PaymentResult(False, "PayPal e-mail is invalid.")
        if amount <= 0:
            return PaymentResult(False, AMOUNT_NOT_POSITIVE)
        total = amount + round_money(amount * PAYPAL_FEE_RATE + PAYPAL_FIXED_FEE)
        return PaymentResult(
            True,
            f"[PayPal] Account: {self._email}. Amount: {amount} + 3.5%+0.30 fee = {total}. Payment completed.",
            total
        )


class CryptoPaymentStrategy(PaymentStrategy):
    """Crypto transfer: fixed network fee, wallet address is masked in messages"""

    method = "Crypto"

    def __init__(self, network: Optional[str], wallet: Optional[str]):
        self._network = (network or "").upper()
        self._wallet = wallet or ""

    @staticmethod
    def mask(wallet: str) -> str:
        if len(wallet) <= 6:
            return wallet
        return f"{wallet[:4]}...{wallet[-2:]}"

    def pay(self, amount: Decimal) -> PaymentResult:
        if amount <= 0:
            return PaymentResult(False, AMOUNT_NOT_POSITIVE)
        if not self._wallet.strip():
            return PaymentResult(False, "Wallet address is missing.")
        network_fee = CRYPTO_NETWORK_FEES.get(self._network, CRYPTO_DEFAULT_FEE)
        total = amount + network_fee
        return PaymentResult(
            True,
            f"[CRYPTO] Network={self._network}, Wallet={self.mask(self._wallet)}. "
            f"Amount: {amount} + network {network_fee} = {total}. Transaction sent.",
            total
        )


class PaymentContext:
    """Runs payments with whichever strategy is currently selected; the strategy can be swapped at any time"""

    def __init__(self, strategy: Optional[PaymentStrategy] = None):
        self._strategy = strategy

    @property
    def strategy(self) -> Optional[PaymentStrategy]:
        return self._strategy

    def set_strategy(self, strategy: PaymentStrategy) -> None:
        self._strategy = strategy

    def process(self, amount: Decimal) -> PaymentResult:
        if self._strategy is None:
            return PaymentResult(False, "No payment method selected.")
        return self._strategy.pay(amount)
