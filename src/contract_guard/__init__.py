"""contract-guard: request/response validation for API operation handlers.

Load the schema document once, then validate each request before the
handler runs and each response after it::

    state = load_validator()
    outcome = populate_request("getPetById", request, state)
    if outcome.ok:
        code, body = handle(outcome.params)
        validate_response("getPetById", code, body, state)
"""

from .catalog.base import ParamSpec, ResponseContract, Rule, RuleKind, Source
from .catalog.lint import lint_catalog
from .catalog.openapi import build_catalog, parse_openapi
from .catalog.registry import RuleCatalog
from .store import ValidatorState, load_validator
from .transport import SimpleRequest, Transport, WsgiRequest
from .validation.extract import RequestContext, extract
from .validation.outcome import ABSENT, EMPTY, InvalidJson, Outcome, RequestOutcome, SchemaErrorDetail, WrongParam
from .validation.populate import populate_request
from .validation.response import validate_response
from .validation.rules import apply_rules

__all__ = [
    "ABSENT",
    "EMPTY",
    "InvalidJson",
    "Outcome",
    "ParamSpec",
    "RequestContext",
    "RequestOutcome",
    "ResponseContract",
    "Rule",
    "RuleCatalog",
    "RuleKind",
    "SchemaErrorDetail",
    "SimpleRequest",
    "Source",
    "Transport",
    "ValidatorState",
    "WrongParam",
    "WsgiRequest",
    "apply_rules",
    "build_catalog",
    "extract",
    "lint_catalog",
    "load_validator",
    "parse_openapi",
    "populate_request",
    "validate_response",
]
