import json

from typer.testing import CliRunner

from flowsync.cli import app

DRAFT = """
steps:
  - type: question
    title: Is the customer verified?
    answer_type: yes_no
    variable_name: verified
  - type: question
    title: Plan
    answer_type: multiple_choice
    variable_name: plan
    options:
      - {label: Basic, value: basic}
      - {label: Pro, value: pro}
  - type: message
    title: Hello
    content: "Hi {{customer_name}}, your plan is {{plan}}"
  - type: decision
    title: Route
"""


def _draft(tmp_path, text=DRAFT):
    path = tmp_path / "draft.yaml"
    path.write_text(text)
    return str(path)


def test_extract_prints_records(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["extract", _draft(tmp_path)])
    assert result.exit_code == 0, result.output

    records = json.loads(result.output)
    assert [r["type"] for r in records] == ["question", "question", "message", "decision"]
    assert records[1]["payload"]["options"] == [
        {"label": "Basic", "value": "basic"},
        {"label": "Pro", "value": "pro"},
    ]
    assert records[3]["index"] == 3


def test_variables_lists_question_variables(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["variables", _draft(tmp_path)])
    assert result.exit_code == 0, result.output
    assert result.output.split() == ["verified", "plan"]

    empty = runner.invoke(app, ["variables", _draft(tmp_path, "[]")])
    assert "No variables defined" in empty.output


def test_branches_shows_questions_and_suggestions(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["branches", _draft(tmp_path), "3"])
    assert result.exit_code == 0, result.output
    assert "1. Is the customer verified? [verified]" in result.output
    assert "* Branch based on \"Plan\"" in result.output
    assert "plan == 'pro'" in result.output


def test_branches_rejects_non_decision_step(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["branches", _draft(tmp_path), "2"])
    assert result.exit_code == 1
    assert "Step 3 is not a decision step" in result.output

    missing = runner.invoke(app, ["branches", _draft(tmp_path), "9"])
    assert missing.exit_code == 1
    assert "No step at position 10" in missing.output


def test_check_reports_unknown_variables(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["check", _draft(tmp_path)])
    assert result.exit_code == 1
    assert "Step 3 content: unknown variable {{customer_name}}" in result.output
    assert "{{plan}}" not in result.output


def test_missing_or_malformed_draft(tmp_path):
    runner = CliRunner()
    result = runner.invoke(app, ["extract", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 1
    assert "File not found" in result.output

    bad = runner.invoke(app, ["extract", _draft(tmp_path, "steps: 3")])
    assert bad.exit_code == 1
    assert "Draft must be a list" in bad.output
