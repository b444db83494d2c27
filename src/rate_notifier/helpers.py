"""This module holds helper functions for the rate notification demo"""

import json
from decimal import Decimal
from typing import Any, Dict, Optional

from rate_notifier.entities import AlertRuleConfig, Scenario, ScenarioStep

OBSERVER_NAMES = ("logger", "alert", "stats")
ACTIONS = ("attach", "detach", "set_rate", "set_rate_async", "report")
INVALID_ACTION = "invalid"


def parse_step(raw: Dict[str, Any]) -> ScenarioStep:
    """
    Build a ScenarioStep out of one JSON object of the `steps` list

    :param raw: Dict[str, Any]: step definition, e.g. {"action": "set_rate", "symbol": "USD/KZT", "rate": 490}
    :returns: ScenarioStep
    :raises: ValueError: if step is not an object, action or observer is unknown, required fields are missing
        or delay is not a number

    """
    if not isinstance(raw, dict):
        raise ValueError(f"Scenario step must be an object: {raw!r}")
    action = raw.get("action")
    if action not in ACTIONS:
        raise ValueError(f"Unknown scenario action: {action}")
    observer: Optional[str] = raw.get("observer")
    if action in ("attach", "detach") and observer not in OBSERVER_NAMES:
        raise ValueError(f"Unknown observer for {action}: {observer}")
    if action in ("set_rate", "set_rate_async") and ("symbol" not in raw or "rate" not in raw):
        raise ValueError(f"Action {action} requires symbol and rate")
    try:
        delay = float(raw.get("delay", 0.0))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid delay for {action}: {raw.get('delay')!r}") from e
    return ScenarioStep(
        action=action,
        observer=observer,
        symbol=raw.get("symbol"),
        rate=raw.get("rate"),
        delay=delay
    )


def parse_step_or_invalid(raw: Any, position: int) -> ScenarioStep:
    """
    Build a ScenarioStep; a malformed definition becomes a step carrying the parse error instead of raising

    :param raw: Any: step definition as found in the `steps` list
    :param position: int: 1-based position of the step, used in the error text
    :returns: ScenarioStep

    """
    try:
        return parse_step(raw)
    except ValueError as e:
        action = raw.get("action") if isinstance(raw, dict) else None
        return ScenarioStep(action=action if isinstance(action, str) else INVALID_ACTION,
                            error=f"Step {position}: {e}")


def load_scenario(config_path: str) -> Scenario:
    """
    Load a scripted rate scenario from given JSON file.
    JSON numbers with a fraction are read as Decimal so rates keep their exact value.
    Malformed steps and rules are kept, so that they are reported and skipped when the scenario runs
    instead of preventing the remaining ones from running.

    :param config_path: str: path to scenario JSON file
    :returns: Instance of Scenario
    :raises: OSError: if the file cannot be read
    :raises: ValueError: if the file is not valid JSON or its top level is not an object

    """
    with open(config_path, encoding='utf-8') as fp:
        config_json = json.load(fp, parse_float=Decimal)
    if not isinstance(config_json, dict):
        raise ValueError(f"Scenario must be a JSON object: {config_path}")
    rules = []
    for rule in config_json.get("rules", []):
        rule = rule if isinstance(rule, dict) else {}
        rules.append(AlertRuleConfig(symbol=rule.get("symbol"), min_rate=rule.get("min"), max_rate=rule.get("max")))
    steps = [parse_step_or_invalid(step, position) for position, step in enumerate(config_json.get("steps", []), 1)]
    return Scenario(rules=rules, steps=steps)
