"""Rule engine: apply an ordered rule list to one raw parameter value.

Every rule either leaves the value alone, replaces it with a coerced value
(``Replaced``) or rejects it (``WrongParam``). The first rejection stops
the pass. A rule kind or type name the engine does not know is a
catalog defect and raises ``UnknownRuleError`` instead of producing a rejection.
"""

import logging
import math
import re
from typing import Any, Callable

from contract_guard.catalog.base import SCHEMA_REF_PREFIX, Rule, RuleKind
from contract_guard.errors import UnknownRuleError
from contract_guard.store import ValidatorState
from contract_guard.validation.outcome import ABSENT, EMPTY, Outcome, Replaced, WrongParam

logger = logging.getLogger(__name__)

Verdict = None | Replaced | WrongParam

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?")


def apply_rules(rules: list[Rule], name: str, value: Any, state: ValidatorState) -> Outcome:
    """Fold ``rules`` left to right over ``value``, stopping at the first failure."""
    for rule in rules:
        verdict = check(rule, value, name, state)
        if isinstance(verdict, WrongParam):
            return Outcome(error=verdict)
        if isinstance(verdict, Replaced):
            value = verdict.value
    return Outcome(value=value)


def check(rule: Rule, value: Any, name: str, state: ValidatorState) -> Verdict:
    """Apply a single rule."""
    checker = _CHECKS.get(rule.kind)
    if checker is None:
        logger.error("Cannot validate rule %s for parameter %r", rule, name)
        raise UnknownRuleError(rule)
    if rule.kind == RuleKind.TYPE.value and not (isinstance(rule.arg, str) and rule.arg in _TYPE_CHECKS):
        logger.error("Cannot validate type %r for parameter %r", rule.arg, name)
        raise UnknownRuleError(rule)
    # Absence is only ever enforced by ``required``.
    if value is ABSENT and rule.kind not in (RuleKind.REQUIRED, RuleKind.NOT_REQUIRED):
        return None
    return checker(rule, value, name, state)


def _fail(rule: Rule, name: str, value: Any, info=None) -> WrongParam:
    return WrongParam(name=name, value=value, rule=rule, info=info)


def _is_text(value: Any) -> bool:
    return isinstance(value, (str, bytes)) or value is EMPTY


def _as_str(value: Any) -> str | None:
    """Text value as ``str``; ``None`` if it is not text (or not UTF-8)."""
    if value is EMPTY:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_required(rule, value, name, state):
    if value is ABSENT:
        return _fail(rule, name, value)
    return None


def _check_not_required(rule, value, name, state):
    return None


def _check_type(rule, value, name, state):
    return _TYPE_CHECKS[rule.arg](rule, value, name)


def _type_binary(rule, value, name):
    return None if _is_text(value) else _fail(rule, name, value)


def _type_integer(rule, value, name):
    if isinstance(value, int) and not isinstance(value, bool):
        return None
    text = _as_str(value)
    if text is not None and _INT_RE.fullmatch(text):
        return Replaced(int(text))
    return _fail(rule, name, value)


def _type_float(rule, value, name):
    if _is_number(value):
        return None
    text = _as_str(value)
    if text is not None and _FLOAT_RE.fullmatch(text):
        number = float(text)
        if math.isfinite(number):
            return Replaced(number)
    return _fail(rule, name, value)


def _type_boolean(rule, value, name):
    if isinstance(value, bool):
        return None
    text = _as_str(value)
    if text is not None:
        lowered = text.lower()
        if lowered == "true":
            return Replaced(True)
        if lowered == "false":
            return Replaced(False)
    return _fail(rule, name, value)


_TYPE_CHECKS: dict[str, Callable] = {
    "binary": _type_binary,
    "integer": _type_integer,
    "float": _type_float,
    "boolean": _type_boolean,
    # No format check at this layer, only that the value is text.
    "date": _type_binary,
    "datetime": _type_binary,
}


def _check_enum(rule, value, name, state):
    text = _as_str(value)
    for member in rule.arg or []:
        if text is not None:
            if member == text:
                return Replaced(member)
        elif isinstance(member, bool) == isinstance(value, bool) and member == value:
            return None
    return _fail(rule, name, value)


def _bound_check(passes: Callable[[Any, Any], bool]):
    def _check(rule, value, name, state):
        if _is_number(value) and passes(value, rule.arg):
            return None
        return _fail(rule, name, value)

    return _check


def _length_check(passes: Callable[[int, int], bool]):
    def _check(rule, value, name, state):
        if _is_text(value) and passes(len(value), rule.arg):
            return None
        return _fail(rule, name, value)

    return _check


def _check_pattern(rule, value, name, state):
    text = _as_str(value)
    if text is not None and re.search(rule.arg, text):
        return None
    return _fail(rule, name, value)


def _check_schema(rule, value, name, state):
    if isinstance(rule.arg, dict):
        schema = rule.arg
    else:
        schema = {"$ref": SCHEMA_REF_PREFIX + (rule.arg or name)}
    instance = "" if value is EMPTY else value
    info = state.validate(schema, instance)
    if info is not None:
        return _fail(rule, name, value, info)
    return None


_CHECKS: dict[str, Callable[..., Verdict]] = {
    RuleKind.REQUIRED.value: _check_required,
    RuleKind.NOT_REQUIRED.value: _check_not_required,
    RuleKind.TYPE.value: _check_type,
    RuleKind.ENUM.value: _check_enum,
    RuleKind.MAX.value: _bound_check(lambda value, bound: value <= bound),
    RuleKind.EXCLUSIVE_MAX.value: _bound_check(lambda value, bound: value < bound),
    RuleKind.MIN.value: _bound_check(lambda value, bound: value >= bound),
    RuleKind.EXCLUSIVE_MIN.value: _bound_check(lambda value, bound: value > bound),
    RuleKind.MAX_LENGTH.value: _length_check(lambda length, bound: length <= bound),
    RuleKind.MIN_LENGTH.value: _length_check(lambda length, bound: length >= bound),
    RuleKind.PATTERN.value: _check_pattern,
    RuleKind.SCHEMA.value: _check_schema,
}
