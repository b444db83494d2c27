from decimal import Decimal

import pytest
from pytest_mock import MockerFixture

from rate_notifier.entities import AlertRuleConfig, Scenario, ScenarioStep
from rate_notifier.scenario import RatesScenario


@pytest.fixture
def patched_loggers(string_logger, mocker: MockerFixture):
    mocker.patch("rate_notifier.scenario.get_configured_logger").return_value = string_logger
    mocker.patch("rate_notifier.core.get_configured_logger").return_value = string_logger
    mocker.patch("rate_notifier.core.asyncio.sleep", new=mocker.AsyncMock())


@pytest.fixture
def scenario():
    return Scenario(
        rules=[AlertRuleConfig("USD/KZT", 470, 520)],
        steps=[
            ScenarioStep("attach", observer="logger"),
            ScenarioStep("attach", observer="alert"),
            ScenarioStep("attach", observer="stats"),
            ScenarioStep("set_rate", symbol="USD/KZT", rate=490),
            ScenarioStep("set_rate_async", symbol="usd/kzt", rate=Decimal("465"), delay=0.3),
            ScenarioStep("set_rate", symbol="USD/KZT", rate=-1),
            ScenarioStep("detach", observer="logger"),
            ScenarioStep("set_rate", symbol="EUR/KZT", rate="530"),
            ScenarioStep("report"),
        ]
    )


def test_run(patched_loggers, scenario, out_stream):
    runner = RatesScenario(scenario=scenario, out_stream=out_stream)
    runner.run()
    assert out_stream.getvalue().splitlines() == [
        "+ RateLogger subscribed",
        "+ ThresholdAlert subscribed",
        "+ RateStats subscribed",
        "> set USD/KZT = 490",
        "[LOG] USD/KZT = 490",
        "[ALERT] USD/KZT in-range: rate 490 (min=470, max=520)",
        "[STATS] USD/KZT: updates=1, last=490",
        "> set usd/kzt = 465 (after 0.3s)",
        "[LOG] USD/KZT = 465",
        "[ALERT] USD/KZT below-min: rate 465 (min=470, max=520)",
        "[STATS] USD/KZT: updates=2, last=465",
        "> set USD/KZT = -1",
        "! rejected: Rate must be greater than 0: -1",
        "- RateLogger unsubscribed",
        "> set EUR/KZT = 530",
        "[ALERT] EUR/KZT unruled: rate 530",
        "[STATS] EUR/KZT: updates=1, last=530",
        "[STATS] report:",
        "  USD/KZT: updates=2, last=465",
        "  EUR/KZT: updates=1, last=530",
    ]
    assert runner.hub.get_rate("USD/KZT") == Decimal("465")


def test_run_sets_correlation_id_per_step(patched_loggers, out_stream, log_stream, mocker: MockerFixture):
    mocker.patch("rate_notifier.scenario.uuid.uuid4", side_effect=["u1", "u2"])
    steps = [ScenarioStep("attach", observer="stats"), ScenarioStep("report")]
    runner = RatesScenario(scenario=Scenario(steps=steps), out_stream=out_stream)
    runner.run()
    logs = log_stream.getvalue().splitlines()
    assert logs[0] == ('level=INFO logger=string_logger event="CHECKPOINT: start processing step" action="attach" '
                       'correlation_id="u1"')
    assert logs[1] == ('level=INFO logger=string_logger event="subscriber attached" subscriber="RateStats" '
                       'subscriber_count="1" correlation_id="u1"')
    assert 'event="CHECKPOINT: start processing step" action="report" correlation_id="u2"' in logs[3]
    assert logs[-1] == ('level=INFO logger=string_logger event="CHECKPOINT: scenario finished" steps="2" '
                        'correlation_id="u2"')


def test_unknown_step_is_logged_and_skipped(patched_loggers, out_stream, log_stream):
    steps = [
        ScenarioStep("explode"),
        ScenarioStep("attach", observer="printer"),
        ScenarioStep("attach", observer="stats"),
        ScenarioStep("set_rate", symbol="USD/KZT", rate=490),
    ]
    runner = RatesScenario(scenario=Scenario(steps=steps), out_stream=out_stream)
    runner.run()
    assert out_stream.getvalue().splitlines() == [
        "+ RateStats subscribed",
        "> set USD/KZT = 490",
        "[STATS] USD/KZT: updates=1, last=490",
    ]
    assert log_stream.getvalue().count('event="unknown step"') == 2


def test_failed_subscriber_is_reported(patched_loggers, out_stream, mocker: MockerFixture):
    steps = [ScenarioStep("attach", observer="stats"), ScenarioStep("set_rate", symbol="USD/KZT", rate=490)]
    runner = RatesScenario(scenario=Scenario(steps=steps), out_stream=out_stream)
    mocker.patch.object(runner.observers["stats"], "receive", side_effect=RuntimeError("boom"))
    runner.run()
    assert out_stream.getvalue().splitlines()[-1] == "! failed subscribers: RateStats"


def test_invalid_rule_is_skipped(patched_loggers, out_stream, log_stream):
    rules = [
        AlertRuleConfig("USD/KZT", 520, 470),
        AlertRuleConfig(None, 1, 2),
        AlertRuleConfig("EUR/KZT", max_rate=600)
    ]
    runner = RatesScenario(scenario=Scenario(rules=rules), out_stream=out_stream)
    assert runner.observers["alert"].get_rule("USD/KZT") is None
    assert runner.observers["alert"].get_rule("EUR/KZT").max_rate == Decimal("600")
    assert out_stream.getvalue().splitlines() == [
        "! skipped alert rule: Rule for USD/KZT has min 520 greater than max 470",
        "! skipped alert rule: Currency symbol must be a non-empty string: None",
    ]
    assert log_stream.getvalue().count('event="invalid alert rule"') == 2


def test_step_with_parse_error_is_reported_and_skipped(patched_loggers, out_stream, log_stream):
    steps = [
        ScenarioStep("attach", observer="stats"),
        ScenarioStep("explode", error="Step 2: Unknown scenario action: explode"),
        ScenarioStep("set_rate", symbol="USD/KZT", rate=490),
    ]
    RatesScenario(scenario=Scenario(steps=steps), out_stream=out_stream).run()
    assert out_stream.getvalue().splitlines() == [
        "+ RateStats subscribed",
        "! skipped step: Step 2: Unknown scenario action: explode",
        "> set USD/KZT = 490",
        "[STATS] USD/KZT: updates=1, last=490",
    ]
    assert 'event="invalid step" action="explode"' in log_stream.getvalue()


def test_hub_logger_restored_when_run_is_interrupted(
        patched_loggers, string_logger, out_stream, mocker: MockerFixture
):
    runner = RatesScenario(scenario=Scenario(steps=[ScenarioStep("report")]), out_stream=out_stream)
    mocker.patch.object(runner, "process_one", side_effect=RuntimeError("interrupted"))
    with pytest.raises(RuntimeError):
        runner.run()
    assert runner.hub.logger is string_logger
