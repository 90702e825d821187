"""Response validator: check a handler's body against the contract for its status."""

import logging
from typing import Any

from contract_guard.catalog.base import ResponseContract, Rule
from contract_guard.catalog.registry import RuleCatalog
from contract_guard.store import ValidatorState
from contract_guard.validation.outcome import Outcome, WrongParam

logger = logging.getLogger(__name__)


def validate_response(
    operation: str,
    status: int,
    body: Any,
    state: ValidatorState,
    catalog: RuleCatalog | None = None,
) -> Outcome | list[Outcome] | dict[str, Outcome]:
    """Validate ``body`` against the contract for (``operation``, ``status``).

    Returns a single outcome for ``single`` (and uncontracted) responses,
    one outcome per element for ``list`` and one per key for ``map``.
    Failures are logged and returned; the response itself is never blocked.
    """
    if catalog is None:
        catalog = state.catalog
    contract = catalog.response_contract(operation, status)
    if contract is None or contract.shape == "none" or contract.target_schema() is None:
        return Outcome(value=body)

    if contract.shape == "list":
        if not isinstance(body, list):
            return _reject(operation, status, contract, body, "expected a list body")
        return [_validate_item(operation, status, contract, item, state) for item in body]
    if contract.shape == "map":
        if not isinstance(body, dict):
            return _reject(operation, status, contract, body, "expected an object body")
        return {key: _validate_item(operation, status, contract, item, state) for key, item in body.items()}
    return _validate_item(operation, status, contract, body, state)


def _contract_rule(contract: ResponseContract) -> Rule:
    return Rule(kind="schema", arg=contract.ref or contract.target_schema())


def _validate_item(operation: str, status: int, contract: ResponseContract, item: Any,
                   state: ValidatorState) -> Outcome:
    info = state.validate(contract.target_schema(), item)
    if info is None:
        return Outcome(value=item)
    error = WrongParam(name=contract.ref or contract.type, value=item, rule=_contract_rule(contract), info=info)
    logger.warning("Response of %s (%s) breaks its contract: %s", operation, status, error)
    return Outcome(error=error)


def _reject(operation: str, status: int, contract: ResponseContract, body: Any, reason: str) -> Outcome:
    logger.warning("Response of %s (%s) breaks its contract: %s", operation, status, reason)
    return Outcome(error=WrongParam(name=contract.ref or contract.type, value=body, rule=_contract_rule(contract)))
