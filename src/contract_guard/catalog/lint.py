"""Checks a rule catalog for the defects the engine assumes away.

The engine trusts the catalog at runtime; these checks are meant for
startup, CI, or the ``lint`` CLI command.
"""

import re
from typing import Any, Iterator

from contract_guard.catalog.base import SCHEMA_REF_PREFIX, TYPE_NAMES, RuleKind
from contract_guard.catalog.registry import RuleCatalog
from contract_guard.errors import CatalogError

NUMERIC_KINDS = {RuleKind.MAX.value, RuleKind.MIN.value, RuleKind.EXCLUSIVE_MAX.value, RuleKind.EXCLUSIVE_MIN.value}
LENGTH_KINDS = {RuleKind.MAX_LENGTH.value, RuleKind.MIN_LENGTH.value}


def lint_completeness(catalog: RuleCatalog) -> dict[str, str]:
    """Every listed parameter has exactly one entry with a non-empty rule list.

    Returns dict of {"operation.param": error_message}.
    """
    errors = {}
    for op in catalog.operations():
        seen = set()
        for name in catalog.request_params(op):
            key = f"{op}.{name}"
            if name in seen:
                errors[key] = "declared more than once"
                continue
            seen.add(name)
            try:
                spec = catalog.param_info(op, name)
            except CatalogError as e:
                errors[key] = str(e)
                continue
            if not spec.rules:
                errors[key] = "empty rule list"
    return errors


def lint_rules(catalog: RuleCatalog) -> dict[str, str]:
    """Rule kinds are known, arguments well-formed, required/not_required not both set.

    Returns dict of {"operation.param": error_message}.
    """
    errors = {}
    for op in catalog.operations():
        for spec in catalog.params(op):
            problem = _rule_problem(spec.rules)
            if problem:
                errors[f"{op}.{spec.name}"] = problem
    return errors


def lint_schemas(catalog: RuleCatalog, document: dict) -> dict[str, str]:
    """Every schema reference used by a rule or a response contract exists in ``document``.

    Returns dict of {"operation.param" or "operation:status": error_message}.
    """
    errors = {}
    for op in catalog.operations():
        for spec in catalog.params(op):
            for rule in spec.rules:
                if rule.kind != RuleKind.SCHEMA:
                    continue
                schema = rule.arg if isinstance(rule.arg, dict) else {"$ref": SCHEMA_REF_PREFIX + (rule.arg or spec.name)}
                missing = [ref for ref in _local_refs(schema) if not _resolves(document, ref)]
                if missing:
                    errors[f"{op}.{spec.name}"] = f"unresolvable schema reference {missing[0]}"
        for status, contract in catalog.responses(op).items():
            if contract.ref and not _resolves(document, SCHEMA_REF_PREFIX + contract.ref):
                errors[f"{op}:{status}"] = f"unresolvable schema reference {SCHEMA_REF_PREFIX + contract.ref}"
    return errors


def lint_catalog(catalog: RuleCatalog, document: dict | None = None) -> dict[str, str]:
    """Run all checks.

    Returns dict of {key: error_message} for every defect found.
    Schema references are only checked when the structural checks pass.
    """
    errors = {}
    errors.update(lint_completeness(catalog))
    errors.update(lint_rules(catalog))

    if not errors and document is not None:
        errors.update(lint_schemas(catalog, document))

    return errors


def _rule_problem(rules) -> str | None:
    kinds = [rule.kind for rule in rules]
    if RuleKind.REQUIRED in kinds and RuleKind.NOT_REQUIRED in kinds:
        return "both required and not_required"
    for rule in rules:
        if not rule.known:
            return f"unknown rule kind {rule.kind!r}"
        if rule.kind == RuleKind.TYPE and rule.arg not in TYPE_NAMES:
            return f"unknown type {rule.arg!r}"
        if rule.kind == RuleKind.ENUM and not (isinstance(rule.arg, list) and rule.arg):
            return "enum needs a non-empty list of members"
        if rule.kind in NUMERIC_KINDS and (not isinstance(rule.arg, (int, float)) or isinstance(rule.arg, bool)):
            return f"{rule.kind} needs a numeric bound"
        if rule.kind in LENGTH_KINDS and (not isinstance(rule.arg, int) or isinstance(rule.arg, bool) or rule.arg < 0):
            return f"{rule.kind} needs a non-negative integer"
        if rule.kind == RuleKind.PATTERN:
            try:
                re.compile(rule.arg)
            except (re.error, TypeError) as e:
                return f"invalid pattern {rule.arg!r}: {e}"
    return None


def _local_refs(schema: Any) -> Iterator[str]:
    if isinstance(schema, dict):
        for key, value in schema.items():
            if key == "$ref" and isinstance(value, str) and value.startswith("#"):
                yield value
            else:
                yield from _local_refs(value)
    elif isinstance(schema, list):
        for item in schema:
            yield from _local_refs(item)


def _resolves(document: dict, ref: str) -> bool:
    target: Any = document
    for part in ref.lstrip("#/").split("/"):
        if not isinstance(target, dict) or part not in target:
            return False
        target = target[part]
    return True
