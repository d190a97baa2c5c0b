"""
Pulseflow Debug Agent - Diagnose one automation from the command line

Run:
    python scripts/diagnose_automation.py cmkwhwr4j0001jp0412bdp8zw
    python scripts/diagnose_automation.py https://pulseflow.co/automations/<id> --llm
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.agents.llm_analyzer import LLMAnalyzer
from src.clients.pulseflow_client import PulseflowClient, extract_automation_id
from src.config import get_settings, load_env_vars
from src.diagnosis.diagnoser import ExecutionDiagnoser
from src.diagnosis.report import render_report
from src.utils.logging_setup import setup_logging


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Diagnose the latest execution of a Pulseflow automation")
    parser.add_argument("automation", help="Automation ID or pulseflow.co/automations/... URL")
    parser.add_argument("--llm", action="store_true", help="Append an LLM explanation (needs OPENAI_API_KEY)")
    args = parser.parse_args(argv)

    load_env_vars()
    setup_logging()
    settings = get_settings()

    automation_id = extract_automation_id(args.automation)
    if not automation_id:
        print(f"[ERROR] Not an automation ID or URL: {args.automation}")
        return 2

    automation = PulseflowClient().fetch_automation(automation_id)
    if automation is None:
        print(f"[ERROR] Could not fetch automation {automation_id}")
        print("   [FIX] Check the ID and PULSEFLOW_API_PASSWORD")
        return 1

    diagnosis = ExecutionDiagnoser().diagnose_latest(automation)
    print(
        render_report(
            automation,
            diagnosis,
            recent_limit=settings.RECENT_EXECUTIONS_SHOWN,
            preview_chars=settings.INPUT_PREVIEW_CHARS,
        )
    )

    if args.llm:
        if not settings.llm_enabled:
            print("\n[WARN] OPENAI_API_KEY not set, skipping AI analysis")
        else:
            explanation = LLMAnalyzer(settings).explain(automation, diagnosis)
            print(f"\n🤖 AI analysis:\n{explanation or '(unavailable)'}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
