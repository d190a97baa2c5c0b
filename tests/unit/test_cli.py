"""
diagnose_automation.py CLI 테스트
"""

import importlib.util
from pathlib import Path
from unittest.mock import patch

import pytest

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "diagnose_automation.py"
AUTOMATION_ID = "cmkwhwr4j0001jp0412bdp8zw"


@pytest.fixture
def cli():
    spec = importlib.util.spec_from_file_location("diagnose_automation", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_invalid_id(cli, capsys):
    assert cli.main(["not-an-id"]) == 2
    assert "Not an automation ID" in capsys.readouterr().out


def test_not_found(cli, capsys):
    with patch.object(cli, "PulseflowClient") as client_cls:
        client_cls.return_value.fetch_automation.return_value = None

        assert cli.main([AUTOMATION_ID]) == 1

    assert f"Could not fetch automation {AUTOMATION_ID}" in capsys.readouterr().out


def test_prints_report(cli, capsys, failed_automation):
    with patch.object(cli, "PulseflowClient") as client_cls:
        client_cls.return_value.fetch_automation.return_value = failed_automation

        assert cli.main([f"https://pulseflow.co/automations/{AUTOMATION_ID}", "--llm"]) == 0

    client_cls.return_value.fetch_automation.assert_called_once_with(AUTOMATION_ID)
    out = capsys.readouterr().out
    assert "Pulseflow Debug Report" in out
    assert "OPENAI_API_KEY not set" in out
