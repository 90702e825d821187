"""Result values produced by the validation engine.

Validation failures are returned, not raised: callers branch on
``Outcome.ok`` and may call ``unwrap()`` to get an exception instead.
"""

from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict

from contract_guard.catalog.base import Rule
from contract_guard.errors import ParamValidationError


class _Sentinel:
    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False


class _Empty(_Sentinel):
    """A present but empty request body; behaves as empty text."""

    def __len__(self) -> int:
        return 0


ABSENT = _Sentinel("ABSENT")
EMPTY = _Empty("EMPTY")


class Replaced(NamedTuple):
    """A rule passed and coerced the value."""

    value: Any


class SchemaErrorDetail(BaseModel):
    """Where and why a value failed structural (JSON schema) validation."""

    type: Literal["schema_invalid", "data_invalid"]
    error: str  # the violated keyword, e.g. "required" or "type"
    message: str
    subschema: Any = None
    path: list[str | int] = []


class WrongParam(BaseModel):
    kind: Literal["wrong_param"] = "wrong_param"
    name: str
    value: Any = None
    rule: Rule
    info: SchemaErrorDetail | None = None

    def __str__(self) -> str:
        text = f"parameter {self.name!r} violates rule {self.rule}: got {self.value!r}"
        if self.info:
            text += f" ({self.info.message} at {self.info.path})"
        return text


class InvalidJson(BaseModel):
    kind: Literal["invalid_json"] = "invalid_json"
    body: bytes
    reason: str

    def __str__(self) -> str:
        return f"invalid JSON body: {self.reason}"


class Outcome(BaseModel):
    """Either a (possibly coerced) value or an error."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Any = None
    error: WrongParam | InvalidJson | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise ParamValidationError(self.error)
        return self.value


class RequestOutcome(Outcome):
    """Result of populating one request: the parameter map, or the first error."""

    params: dict[str, Any] = {}
    request: Any = None

    def unwrap(self) -> dict[str, Any]:
        super().unwrap()
        return self.params
