"""Request populator: validate every declared parameter of one operation."""

import logging

from contract_guard.catalog.registry import RuleCatalog
from contract_guard.errors import BodyDecodeError
from contract_guard.store import ValidatorState
from contract_guard.transport import Transport
from contract_guard.validation.extract import RequestContext, extract
from contract_guard.validation.outcome import InvalidJson, Outcome, RequestOutcome
from contract_guard.validation.rules import apply_rules

logger = logging.getLogger(__name__)


def populate_request(
    operation: str,
    request: Transport | RequestContext,
    state: ValidatorState,
    catalog: RuleCatalog | None = None,
) -> RequestOutcome:
    """Build the parameter map for ``operation``, stopping at the first invalid parameter.

    ``catalog`` defaults to the one derived from the state's document.
    The returned outcome carries the ``RequestContext`` so the caller can
    reuse the already-read body.
    """
    if catalog is None:
        catalog = state.catalog
    ctx = request if isinstance(request, RequestContext) else RequestContext(request)

    params = {}
    for name in catalog.request_params(operation):
        outcome = populate_param(operation, name, ctx, state, catalog)
        if not outcome.ok:
            logger.debug("Rejected %s request: %s", operation, outcome.error)
            return RequestOutcome(error=outcome.error, request=ctx)
        params[name] = outcome.value
    return RequestOutcome(params=params, request=ctx)


def populate_param(
    operation: str, name: str, ctx: RequestContext, state: ValidatorState, catalog: RuleCatalog
) -> Outcome:
    """Extract and validate a single parameter."""
    spec = catalog.param_info(operation, name)
    try:
        value = extract(spec.source, name, ctx)
    except BodyDecodeError as e:
        return Outcome(error=InvalidJson(body=e.body, reason=e.reason))
    return apply_rules(spec.rules, name, value, state)
