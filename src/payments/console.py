"""This module contains the class PaymentConsole - the interactive session of the payment demo"""

import uuid
from decimal import Decimal
from typing import Callable, Dict, TextIO

from common.logging_adapter import get_configured_logger
from payments.strategies import (CardPaymentStrategy, CryptoPaymentStrategy, PaymentContext, PaymentResult,
                                 PaymentStrategy, PayPalPaymentStrategy, parse_amount)

SWITCH_DEMO_EMAIL = "student@example.com"
SWITCH_DEMO_AMOUNT = Decimal("50")


class PaymentConsole:
    """
    A line-oriented session that:
        - Reads payment method and amount, then the details required by the chosen method
        - Runs the payment through PaymentContext and reports the result
        - Switches the same context to PayPal to show the strategy can be swapped without other changes

    An unknown method or an unparsable amount ends the session with a message, never with an exception.
    """

    def __init__(self, in_stream: TextIO, out_stream: TextIO):
        self.logger = get_configured_logger(self.__class__.__name__)
        self.in_stream = in_stream
        self.out_stream = out_stream
        self.context = PaymentContext()
        builders: Dict[str, Callable[[], PaymentStrategy]] = {
            "card": self.read_card,
            "paypal": self.read_paypal,
            "crypto": self.read_crypto
        }
        self._builders = {**builders, "1": builders["card"], "2": builders["paypal"], "3": builders["crypto"]}

    def run(self) -> None:
        """Run one interactive payment followed by the strategy switch demonstration"""
        self.logger.extra = dict(correlation_id=str(uuid.uuid4()))
        self.publish("Payment system (Strategy)")
        self.publish("Available methods: 1) card  2) paypal  3) crypto")
        method = self.ask("Payment method: ").lower()
        raw_amount = self.ask("Amount (e.g. 199.99): ")
        try:
            amount = parse_amount(raw_amount)
        except ValueError:
            self.logger.warning("invalid amount", amount=raw_amount)
            self.publish("Invalid amount.")
            return
        try:
            builder = self._builders[method]
        except KeyError:
            self.logger.warning("unknown payment method", method=method, valid=list(self._builders.keys()))
            self.publish("Unknown payment method.")
            return
        self.context.set_strategy(builder())
        self.report(self.context.process(amount))

        self.publish("")
        self.publish("-- Switching to PayPal without changing the rest of the code --")
        self.context.set_strategy(PayPalPaymentStrategy(SWITCH_DEMO_EMAIL))
        result = self.context.process(SWITCH_DEMO_AMOUNT)
        self.log_result(result)
        self.publish(result.message)

    def read_card(self) -> PaymentStrategy:
        card_number = self.ask("Card number: ")
        holder = self.ask("Card holder (name on card): ")
        cvv = self.ask("CVV: ")
        return CardPaymentStrategy(card_number, holder, cvv)

    def read_paypal(self) -> PaymentStrategy:
        return PayPalPaymentStrategy(self.ask("PayPal e-mail: "))

    def read_crypto(self) -> PaymentStrategy:
        network = self.ask("Network (BTC/ETH/USDT/...): ")
        wallet = self.ask("Wallet address: ")
        return CryptoPaymentStrategy(network, wallet)

    def report(self, result: PaymentResult) -> None:
        """
        Publish result of a payment prefixed with OK or FAILED, and log its outcome

        :param result: PaymentResult: outcome of PaymentContext.process

        """
        self.log_result(result)
        self.publish(f"{'OK' if result.success else 'FAILED'}: {result.message}")

    def log_result(self, result: PaymentResult) -> None:
        method = self.context.strategy.method if self.context.strategy else None
        if result.success:
            self.logger.info("payment processed", method=method, total=result.total)
        else:
            self.logger.info("payment failed", method=method, reason=result.message)

    def ask(self, prompt: str) -> str:
        """
        Write prompt without a line break and read one line of input

        :param prompt: str: text shown to the user
        :returns: str: the line read, stripped; empty at end of input

        """
        self.out_stream.write(prompt)
        self.out_stream.flush()
        return self.in_stream.readline().strip()

    def publish(self, message: str) -> None:
        print(message, file=self.out_stream)
