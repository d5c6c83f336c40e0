"""Command line interface for inspecting workflow drafts."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

import typer
import yaml

from flowsync.branching import BranchInferenceEngine, most_relevant, suggest_branches
from flowsync.catalog import step_variables, undefined_references
from flowsync.contracts import StepRecord
from flowsync.editor import StepList
from flowsync.errors import UserInputError

app = typer.Typer(help="CLI for flowsync workflow drafts")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Logging level for flowsync output"),
) -> None:
    """flowsync CLI entry point."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


def _load_steps(path: Path) -> StepList:
    if not path.exists():
        typer.secho(f"File not found: {path}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    with open(path) as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("steps", [])
    if not isinstance(data, list) or not all(isinstance(step, dict) for step in data):
        typer.secho("Draft must be a list of step field mappings", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return StepList(data)


@app.command("extract")
def extract_command(path: Path) -> None:
    """
    Print the canonical step records extracted from a draft file.

    The draft is a YAML or JSON list of step field mappings, the same shape
    the editor form submits (``options[0][label]`` style keys or nested lists).

    Example:
        flowsync extract draft.yaml
    """
    steps = _load_steps(path)
    records = [record.model_dump(mode="json") for record in steps.records()]
    typer.echo(json.dumps(records, indent=2))


@app.command("variables")
def variables_command(path: Path) -> None:
    """List the variables defined by question steps of a draft."""
    names = step_variables(_load_steps(path).records())
    if not names:
        typer.echo("No variables defined")
        return
    for name in names:
        typer.echo(name)


@app.command("branches")
def branches_command(path: Path, decision_index: int) -> None:
    """
    Show branch suggestions for the decision step at DECISION_INDEX (0-based).

    Example:
        flowsync branches draft.yaml 4
        # Output: Yes/No questions (nearest first):
        #           3. Is the customer verified? [verified]
    """
    records: List[StepRecord] = _load_steps(path).records()
    try:
        if not 0 <= decision_index < len(records):
            raise UserInputError(f"No step at position {decision_index + 1}")
        if records[decision_index].type != "decision":
            raise UserInputError(f"Step {decision_index + 1} is not a decision step")
    except UserInputError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    questions = BranchInferenceEngine.infer_preceding(decision_index, records)
    if questions:
        typer.echo("Yes/No questions (nearest first):")
        for question in questions:
            typer.echo(f"  {question.step_number}. {question.title} [{question.variable_name}]")
    else:
        typer.echo("No preceding Yes/No questions")

    suggestions = suggest_branches(records, decision_index)
    best = most_relevant(suggestions)
    for suggestion in suggestions:
        marker = "*" if suggestion is best else "-"
        typer.echo(f"{marker} {suggestion.title}: {suggestion.description}")
        for branch in suggestion.branches:
            typer.echo(f"    {branch.label}: {branch.condition}")


@app.command("check")
def check_command(path: Path) -> None:
    """Report ``{{name}}`` references to variables no question defines."""
    records = _load_steps(path).records()
    missing = undefined_references(records, step_variables(records))
    if not missing:
        typer.echo("All variable references resolve")
        return
    for index, field, name in missing:
        typer.secho(f"Step {index + 1} {field}: unknown variable {{{{{name}}}}}", fg=typer.colors.YELLOW)
    raise typer.Exit(code=1)
