"""The rule catalog: operation -> parameters -> rules, and response contracts."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from contract_guard.catalog.base import ParamSpec, ResponseContract
from contract_guard.errors import CatalogFormatError, UnknownOperationError, UnknownParameterError

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "default"


def normalize_status(status: int | str) -> str:
    """Map a declared status to its lookup key. ``0`` denotes the default response."""
    key = str(status).strip()
    if key in ("0", DEFAULT_STATUS):
        return DEFAULT_STATUS
    return key.upper()


class RuleCatalog:
    """Read-only lookup tables, populated once at startup.

    ``params`` maps each operation to its parameters in declaration order;
    ``responses`` maps each operation to ``{status key: contract}`` where
    the key is a code (``"200"``), a range (``"2XX"``) or ``"default"``.
    """

    def __init__(
        self,
        params: dict[str, list[ParamSpec]],
        responses: dict[str, dict[str, ResponseContract]] | None = None,
    ):
        self._params = {op: list(specs) for op, specs in params.items()}
        self._responses = {
            op: {normalize_status(code): contract for code, contract in contracts.items()}
            for op, contracts in (responses or {}).items()
        }
        self._index: dict[tuple[str, str], ParamSpec] = {}
        for op, specs in self._params.items():
            for spec in specs:
                self._index.setdefault((op, spec.name), spec)

    def operations(self) -> list[str]:
        """Operation ids in declaration order."""
        return list(self._params)

    def request_params(self, operation: str) -> list[str]:
        """Parameter names of ``operation`` in evaluation order."""
        return [spec.name for spec in self.params(operation)]

    def params(self, operation: str) -> list[ParamSpec]:
        try:
            return self._params[operation]
        except KeyError:
            logger.error("Operation %r is not in the catalog", operation)
            raise UnknownOperationError(operation) from None

    def param_info(self, operation: str, name: str) -> ParamSpec:
        try:
            return self._index[(operation, name)]
        except KeyError:
            logger.error("Parameter %r of %r is not in the catalog", name, operation)
            raise UnknownParameterError(operation, name) from None

    def responses(self, operation: str) -> dict[str, ResponseContract]:
        return dict(self._responses.get(operation, {}))

    def response_contract(self, operation: str, status: int) -> ResponseContract | None:
        """Contract for ``status``: exact code, then ``NXX`` range, then ``default``."""
        contracts = self._responses.get(operation)
        if not contracts:
            return None
        for key in (str(status), f"{int(status) // 100}XX", DEFAULT_STATUS):
            if key in contracts:
                return contracts[key]
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "RuleCatalog":
        """Build from the declarative layout::

            operations:
              getOrderById:
                params:
                  - {name: orderId, source: binding, rules: [{type: integer}, required]}
                responses:
                  200: {shape: single, ref: Order}
        """
        if not isinstance(data, dict) or not isinstance(data.get("operations"), dict):
            raise CatalogFormatError("catalog must be a mapping with an 'operations' mapping")

        params: dict[str, list[ParamSpec]] = {}
        responses: dict[str, dict[str, ResponseContract]] = {}
        for op, entry in data["operations"].items():
            entry = entry or {}
            try:
                params[op] = [ParamSpec(**p) for p in entry.get("params", [])]
                responses[op] = {
                    code: ResponseContract(**(contract or {}))
                    for code, contract in entry.get("responses", {}).items()
                }
            except (ValidationError, TypeError) as e:
                raise CatalogFormatError(f"operation {op!r}: {e}") from e
        logger.debug("Loaded catalog with %d operations", len(params))
        return cls(params, responses)

    @classmethod
    def from_file(cls, file_path: Path) -> "RuleCatalog":
        """Load a declarative catalog written in YAML or JSON."""
        text = Path(file_path).read_text(encoding="utf-8")
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise CatalogFormatError(f"{file_path}: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Inverse of ``from_dict``."""
        operations = {}
        for op in self.operations():
            operations[op] = {
                "params": [
                    {
                        "name": spec.name,
                        "source": spec.source.value,
                        "rules": [rule.dump() for rule in spec.rules],
                    }
                    for spec in self._params.get(op, [])
                ],
                "responses": {
                    code: contract.model_dump(exclude_none=True)
                    for code, contract in self._responses.get(op, {}).items()
                },
            }
        return {"operations": operations}
