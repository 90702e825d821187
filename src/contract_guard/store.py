"""Schema store: the loaded OpenAPI document plus the JSON-schema draft used to validate against it.

A ``ValidatorState`` is built once at startup and only read afterwards,
so it can be shared by any number of concurrent requests.
"""

import json
import logging
from functools import cached_property
from pathlib import Path
from typing import Any

import yaml
from jsonschema.exceptions import SchemaError, best_match
from jsonschema.validators import validator_for
from referencing import Registry, Resource
from referencing.exceptions import Unresolvable
from referencing.jsonschema import specification_with

from contract_guard.catalog.openapi import build_catalog
from contract_guard.catalog.registry import RuleCatalog
from contract_guard.config import DEFAULT_DRAFT, Settings
from contract_guard.errors import ConfigurationError, SchemaParseError
from contract_guard.validation.outcome import SchemaErrorDetail

logger = logging.getLogger(__name__)

# Base URI the document is registered under, so "#/..." refs can be made absolute.
DOCUMENT_URI = "https://contract-guard.invalid/openapi.json"

# Keywords whose values are instance data, not subschemas.
DATA_KEYWORDS = frozenset({"enum", "const", "default", "example", "examples"})
# Keywords mapping arbitrary names to subschemas.
NAMED_SCHEMA_KEYWORDS = frozenset({"properties", "patternProperties", "definitions", "$defs", "dependencies"})


def load_validator(path: Path | str | None = None, draft: str | None = None) -> "ValidatorState":
    """Load the schema document at ``path`` into a ValidatorState.

    Defaults come from ``Settings.from_env()``: the bundled Petstore
    document and draft-06. Raises ``OSError`` if the file cannot be read
    and ``SchemaParseError`` if it is not a JSON/YAML mapping.
    """
    settings = Settings.from_env()
    path = Path(path) if path is not None else settings.schema_path
    draft = draft or settings.draft

    text = path.read_text(encoding="utf-8")
    document = parse_document(text, source=str(path))

    catalog = RuleCatalog.from_file(settings.catalog_path) if settings.catalog_path else None
    logger.debug("Loaded schema document %s (draft %s)", path, draft)
    return ValidatorState(document, draft, catalog=catalog)


def parse_document(text: str, source: str = "<string>") -> dict:
    """Parse a JSON or YAML document; anything but a mapping is rejected."""
    try:
        data = json.loads(text)
    except ValueError:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise SchemaParseError(f"{source}: not valid JSON or YAML: {e}") from e

    if not isinstance(data, dict):
        raise SchemaParseError(f"{source}: expected a mapping at the top level, got {type(data).__name__}")
    return data


def absolutize_refs(schema: Any, base_uri: str = DOCUMENT_URI) -> Any:
    """Return a copy of ``schema`` whose local ``$ref``s point into the registered document.

    Instance data under keywords such as ``enum`` or ``default`` is left as is.
    """
    if isinstance(schema, dict):
        result = {}
        for key, value in schema.items():
            if key == "$ref" and isinstance(value, str) and value.startswith("#"):
                result[key] = base_uri + value
            elif key in DATA_KEYWORDS:
                result[key] = value
            elif key in NAMED_SCHEMA_KEYWORDS and isinstance(value, dict):
                result[key] = {name: absolutize_refs(sub, base_uri) for name, sub in value.items()}
            else:
                result[key] = absolutize_refs(value, base_uri)
        return result
    if isinstance(schema, list):
        return [absolutize_refs(item, base_uri) for item in schema]
    return schema


class ValidatorState:
    """The loaded document, its draft, and a ``$ref``-resolving validator over it."""

    def __init__(self, document: dict, draft: str = DEFAULT_DRAFT, catalog: RuleCatalog | None = None):
        validator_cls = validator_for({"$schema": draft}, default=None)
        if validator_cls is None:
            raise ConfigurationError(f"unsupported JSON schema draft {draft!r}")

        self._document = document
        self._draft = draft
        self._validator_cls = validator_cls
        resource = Resource(contents=document, specification=specification_with(draft))
        self._registry = Registry().with_resource(DOCUMENT_URI, resource)
        if catalog is not None:
            self.__dict__["catalog"] = catalog

    @property
    def document(self) -> dict:
        return self._document

    @property
    def draft(self) -> str:
        return self._draft

    @cached_property
    def catalog(self) -> RuleCatalog:
        """The rule catalog derived from the document's operations."""
        return build_catalog(self._document)

    def validate_ref(self, ref: str, value: Any) -> SchemaErrorDetail | None:
        """Validate ``value`` against ``ref`` (e.g. ``#/components/schemas/Pet``)."""
        return self.validate({"$ref": ref}, value)

    def validate(self, schema: dict, value: Any) -> SchemaErrorDetail | None:
        """Validate ``value`` against a schema fragment whose refs point into the document.

        Returns ``None`` on success, otherwise the most relevant violation.
        """
        schema = absolutize_refs(schema)
        try:
            if set(schema) != {"$ref"}:
                self._validator_cls.check_schema(schema)
            validator = self._validator_cls(schema, registry=self._registry)
            error = best_match(validator.iter_errors(value))
        except SchemaError as e:
            return SchemaErrorDetail(
                type="schema_invalid", error=str(e.validator), message=e.message, subschema=schema
            )
        except Unresolvable as e:
            return SchemaErrorDetail(
                type="schema_invalid", error="unresolvable", message=str(e), subschema=schema
            )

        if error is None:
            return None
        path = list(error.absolute_path)
        if error.validator == "required" and isinstance(error.instance, dict):
            missing = [p for p in error.validator_value if p not in error.instance]
            path.extend(missing[:1])
        return SchemaErrorDetail(
            type="data_invalid",
            error=str(error.validator),
            message=error.message,
            subschema=error.schema,
            path=path,
        )
