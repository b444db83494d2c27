#!/usr/bin/env python
"""This module is main entrypoint of the application"""
import sys

from payments.console import PaymentConsole
from rate_notifier.helpers import load_scenario
from rate_notifier.scenario import RatesScenario

DEFAULT_SCENARIO_PATH = "config/rates_scenario.json"
USAGE = "usage: app.py rates [scenario.json] | app.py payment"


def main():
    """
    Entrypoint to the application:
        - `rates [scenario.json]`: load the scripted scenario and run it against NotificationHub.
          A scenario file which cannot be read or is not a JSON object exits with status 1
        - `payment`: run the interactive payment session

    """
    demo = sys.argv[1] if len(sys.argv) > 1 else None
    if demo == "rates":
        scenario_path = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_SCENARIO_PATH
        try:
            scenario = load_scenario(scenario_path)
        except (OSError, ValueError) as e:
            print(f"cannot load scenario {scenario_path}: {e}", file=sys.stderr)
            sys.exit(1)
        RatesScenario(scenario=scenario, out_stream=sys.stdout).run()
    elif demo == "payment":
        PaymentConsole(in_stream=sys.stdin, out_stream=sys.stdout).run()
    else:
        print(USAGE, file=sys.stderr)
        sys.exit(2)


if __name__ == '__main__':
    main()
