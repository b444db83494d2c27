"""This module contains the class RatesScenario which plays a scripted sequence of steps against NotificationHub"""

import asyncio
import uuid
from typing import Awaitable, Callable, Dict, TextIO

from common.logging_adapter import get_configured_logger
from rate_notifier.core import NotificationHub
from rate_notifier.entities import RateUpdateResult, Scenario, ScenarioStep
from rate_notifier.observers import RateLogger, RateObserver, RateStats, ThresholdAlert


class RatesScenario:
    """
    Runs the rates demo:
        - Builds a NotificationHub and one instance of each observer, all writing to out_stream
        - Applies configured alert rules
        - Executes steps strictly one after another on a single event loop, so the notification pass of a step
          completes before the next step starts (set_rate_async steps are awaited, never overlapped)

    An invalid step or alert rule is logged, reported on out_stream and skipped; the remaining ones still run.
    """

    def __init__(self, scenario: Scenario, out_stream: TextIO):
        self.logger = get_configured_logger(self.__class__.__name__)
        self.out_stream = out_stream
        self.scenario = scenario
        self.hub = NotificationHub()
        self.observers: Dict[str, RateObserver] = {
            "logger": RateLogger(out_stream),
            "alert": ThresholdAlert(out_stream),
            "stats": RateStats(out_stream)
        }
        for rule in scenario.rules:
            try:
                self.observers["alert"].set_rule(rule.symbol, rule.min_rate, rule.max_rate)
            except ValueError as e:
                self.logger.error("invalid alert rule", symbol=rule.symbol, min=rule.min_rate, max=rule.max_rate)
                self.publish(f"! skipped alert rule: {e}")
                continue
            self.logger.info("alert rule configured", symbol=rule.symbol, min=rule.min_rate, max=rule.max_rate)
        self._processors: Dict[str, Callable[[ScenarioStep], Awaitable[None]]] = {
            "attach": self.on_attach,
            "detach": self.on_detach,
            "set_rate": self.on_set_rate,
            "set_rate_async": self.on_set_rate_async,
            "report": self.on_report
        }

    def run(self) -> None:
        """Execute all steps in order on a fresh event loop"""
        asyncio.run(self.run_async())

    async def run_async(self) -> None:
        """
        Execute all steps in order.
        For each step, set a new UUID as correlation id into the log-context of the scenario and of the hub

        """
        hub_logger = self.hub.logger
        try:
            for step in self.scenario.steps:
                correlation_id = str(uuid.uuid4())
                self.logger.extra = dict(correlation_id=correlation_id)
                self.hub.logger = hub_logger.bind(correlation_id=correlation_id)
                await self.process_one(step)
        finally:
            self.hub.logger = hub_logger
        self.logger.info("CHECKPOINT: scenario finished", steps=len(self.scenario.steps))

    async def process_one(self, step: ScenarioStep) -> None:
        """
        Process a single step with error handling

        :param step: ScenarioStep: step to process

        """
        try:
            self.logger.info("CHECKPOINT: start processing step", action=step.action)
            if step.error is not None:
                raise ValueError(step.error)
            await self._processors[step.action](step)
        except KeyError:
            self.logger.error("unknown step", valid=list(self._processors.keys()), action=step.action,
                              observer=step.observer)
        except ValueError as e:
            self.logger.error("invalid step", action=step.action)
            self.publish(f"! skipped step: {e}")
        finally:
            self.logger.info("CHECKPOINT: end processing step", action=step.action)

    async def on_attach(self, step: ScenarioStep) -> None:
        observer = self.observers[step.observer]
        self.hub.attach(observer)
        self.publish(f"+ {observer.name} subscribed")

    async def on_detach(self, step: ScenarioStep) -> None:
        observer = self.observers[step.observer]
        self.hub.detach(observer)
        self.publish(f"- {observer.name} unsubscribed")

    async def on_set_rate(self, step: ScenarioStep) -> None:
        self.publish(f"> set {step.symbol} = {step.rate}")
        self._report_result(self.hub.set_rate(step.symbol, step.rate))

    async def on_set_rate_async(self, step: ScenarioStep) -> None:
        self.publish(f"> set {step.symbol} = {step.rate} (after {step.delay}s)")
        self._report_result(await self.hub.set_rate_async(step.symbol, step.rate, delay=step.delay))

    async def on_report(self, step: ScenarioStep) -> None:
        self.publish(self.observers["stats"].report())

    def _report_result(self, result: RateUpdateResult) -> None:
        if not result.success:
            self.publish(f"! rejected: {result.reason}")
        elif result.failed_subscribers:
            self.publish(f"! failed subscribers: {', '.join(result.failed_subscribers)}")

    def publish(self, message: str) -> None:
        """
        Write given message to the output stream of this scenario

        :param message: str: text to publish

        """
        print(message, file=self.out_stream)
