"""Data models for the rule catalog.

Catalog builders (OpenAPI document, declarative YAML/JSON file) convert
their input into these models; the validation engine only reads them.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

from contract_guard.errors import CatalogFormatError

SCHEMA_REF_PREFIX = "#/components/schemas/"


class Source(str, Enum):
    """Where a parameter's raw value is read from."""

    QUERY = "qs_val"
    HEADER = "header"
    BINDING = "binding"
    BODY = "body"


class RuleKind(str, Enum):
    TYPE = "type"
    ENUM = "enum"
    MAX = "max"
    EXCLUSIVE_MAX = "exclusive_max"
    MIN = "min"
    EXCLUSIVE_MIN = "exclusive_min"
    MAX_LENGTH = "max_length"
    MIN_LENGTH = "min_length"
    PATTERN = "pattern"
    SCHEMA = "schema"
    REQUIRED = "required"
    NOT_REQUIRED = "not_required"


TYPE_NAMES = ("binary", "integer", "float", "boolean", "date", "datetime")

# Rules written as a bare word rather than a one-key mapping.
BARE_KINDS = {RuleKind.SCHEMA.value, RuleKind.REQUIRED.value, RuleKind.NOT_REQUIRED.value}


class Rule(BaseModel):
    """One atomic check: ``kind`` plus its argument, if any.

    ``kind`` is kept as a plain string so that a catalog naming a rule the
    engine does not know still loads; the engine rejects it when applied.
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    arg: Any = None

    @classmethod
    def parse(cls, raw: Any) -> "Rule":
        """Parse the declarative notation: ``"required"`` or ``{"max": 5}``."""
        if isinstance(raw, Rule):
            return raw
        if isinstance(raw, str):
            return cls(kind=raw)
        if isinstance(raw, dict) and len(raw) == 1:
            ((kind, arg),) = raw.items()
            return cls(kind=str(kind), arg=arg)
        raise CatalogFormatError(f"cannot parse rule {raw!r}")

    @property
    def known(self) -> bool:
        return self.kind in RuleKind._value2member_map_

    def dump(self) -> Any:
        """Inverse of ``parse``."""
        if self.arg is None:
            return self.kind
        return {self.kind: self.arg}

    def __str__(self) -> str:
        if self.arg is None:
            return self.kind
        return f"{self.kind}({self.arg!r})"


class ParamSpec(BaseModel):
    """A single operation parameter with its source and ordered rules."""

    name: str
    source: Source
    rules: list[Rule]

    @field_validator("rules", mode="before")
    @classmethod
    def _parse_rules(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [Rule.parse(item) for item in value]
        return value


class ResponseContract(BaseModel):
    """Expected body shape for one (operation, status) pair.

    The target is either a component schema (``ref``) or a primitive
    JSON type (``type``), e.g. ``integer`` for an inventory map.
    """

    shape: Literal["none", "single", "list", "map"] = "none"
    ref: str | None = None
    type: str | None = None

    def target_schema(self) -> dict | None:
        if self.ref:
            return {"$ref": SCHEMA_REF_PREFIX + self.ref}
        if self.type:
            return {"type": self.type}
        return None
