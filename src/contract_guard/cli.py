"""CLI entry point for contract-guard."""

import json
import sys
from pathlib import Path

import click

from contract_guard.catalog.lint import lint_catalog
from contract_guard.catalog.registry import RuleCatalog
from contract_guard.errors import ContractGuardError
from contract_guard.store import ValidatorState, load_validator
from contract_guard.transport import SimpleRequest
from contract_guard.validation.outcome import Outcome
from contract_guard.validation.populate import populate_request
from contract_guard.validation.response import validate_response

schema_option = click.option(
    "--schema", "schema_path", default=None, type=click.Path(exists=True, path_type=Path),
    help="OpenAPI document (default: bundled Petstore document).",
)
draft_option = click.option("--draft", default=None, help="JSON schema draft URI.")
catalog_option = click.option(
    "--catalog", "catalog_path", default=None, type=click.Path(exists=True, path_type=Path),
    help="Declarative catalog file overriding the one derived from the document.",
)


def _load(schema_path: Path | None, draft: str | None, catalog_path: Path | None) -> ValidatorState:
    """Load the validator state, optionally with an explicit catalog."""
    try:
        state = load_validator(schema_path, draft)
        if catalog_path:
            state = ValidatorState(state.document, state.draft, catalog=RuleCatalog.from_file(catalog_path))
        state.catalog
    except (ContractGuardError, OSError) as e:
        raise click.ClickException(str(e)) from e
    return state


def _dump(value) -> str:
    return json.dumps(value, indent=2, default=repr, ensure_ascii=False)


def _pair(value: str, sep: str) -> tuple[str, str]:
    name, found, rest = value.partition(sep)
    if not found:
        raise click.BadParameter(f"expected NAME{sep}VALUE, got {value!r}")
    return name.strip(), rest.strip()


@click.group()
def main():
    """contract-guard: validate API requests and responses against an OpenAPI contract."""
    pass


@main.command()
@click.argument("operation")
@click.option("-q", "--query", default="", help="Raw query string, e.g. 'status=sold'.")
@click.option("-H", "--header", "headers", multiple=True, help="Header as 'Name: value'. Repeatable.")
@click.option("-b", "--binding", "bindings", multiple=True, help="Path binding as 'name=value'. Repeatable.")
@click.option("--body", "body_path", default=None, type=click.Path(exists=True, path_type=Path), help="Request body file.")
@schema_option
@draft_option
@catalog_option
def check_request(operation, query, headers, bindings, body_path, schema_path, draft, catalog_path):
    """Validate a request for OPERATION and print the parameter map."""
    state = _load(schema_path, draft, catalog_path)
    request = SimpleRequest(
        query_string=query,
        headers=dict(_pair(h, ":") for h in headers),
        bindings=dict(_pair(b, "=") for b in bindings),
        body=body_path.read_bytes() if body_path else b"",
    )
    try:
        outcome = populate_request(operation, request, state)
    except ContractGuardError as e:
        raise click.ClickException(str(e)) from e

    if not outcome.ok:
        click.echo(f"Rejected: {outcome.error}", err=True)
        click.echo(_dump(outcome.error.model_dump(exclude={"body"})))
        sys.exit(1)
    click.echo(_dump(outcome.params))


@main.command()
@click.argument("operation")
@click.argument("status", type=int)
@click.argument("body_path", type=click.Path(exists=True, path_type=Path))
@schema_option
@draft_option
@catalog_option
def check_response(operation, status, body_path, schema_path, draft, catalog_path):
    """Validate the JSON response body in BODY_PATH for OPERATION and STATUS."""
    state = _load(schema_path, draft, catalog_path)
    try:
        body = json.loads(body_path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise click.ClickException(f"{body_path}: invalid JSON: {e}") from e

    result = validate_response(operation, status, body, state)
    if isinstance(result, Outcome):
        failures = {"": result} if not result.ok else {}
    elif isinstance(result, list):
        failures = {f"[{i}]": o for i, o in enumerate(result) if not o.ok}
    else:
        failures = {f"[{k!r}]": o for k, o in result.items() if not o.ok}

    if failures:
        for where, outcome in failures.items():
            click.echo(f"Invalid{' ' + where if where else ''}: {outcome.error}")
        sys.exit(1)
    click.echo("Response matches its contract.")


@main.command()
@schema_option
@draft_option
@catalog_option
def lint(schema_path, draft, catalog_path):
    """Check the catalog for missing entries, bad rules and unresolvable schemas."""
    state = _load(schema_path, draft, catalog_path)
    errors = lint_catalog(state.catalog, state.document)
    if errors:
        for key, message in errors.items():
            click.echo(f"  {key}: {message}")
        click.echo(f"Found {len(errors)} problem(s).")
        sys.exit(1)
    click.echo(f"Catalog OK ({len(state.catalog.operations())} operations).")


@main.command()
@schema_option
@catalog_option
def operations(schema_path, catalog_path):
    """List operations with their parameters and rules."""
    state = _load(schema_path, None, catalog_path)
    catalog = state.catalog
    for op in catalog.operations():
        click.echo(op)
        for spec in catalog.params(op):
            rules = ", ".join(str(rule) for rule in spec.rules)
            click.echo(f"  {spec.name} ({spec.source.value}): {rules}")
