"""OpenAPI 3.x document -> RuleCatalog.

Derives the per-operation parameter rules and response contracts from
the operations, parameters, request bodies and responses of a document.
"""

import logging
from pathlib import Path

import yaml

from contract_guard.catalog.base import SCHEMA_REF_PREFIX, ParamSpec, ResponseContract, Rule, Source
from contract_guard.catalog.registry import RuleCatalog
from contract_guard.errors import CatalogError

logger = logging.getLogger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")

LOCATIONS = {
    "query": Source.QUERY,
    "header": Source.HEADER,
    "path": Source.BINDING,
}

JSON_CONTENT_TYPES = ("application/json", "application/xml", "text/plain")
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# Name given to a body that is a list rather than a named component.
LIST_BODY_NAME = "list"
INLINE_BODY_NAME = "body"


def parse_openapi(file_path: Path) -> RuleCatalog:
    """Parse an OpenAPI file (YAML or JSON) into a RuleCatalog."""
    text = Path(file_path).read_text(encoding="utf-8")
    return build_catalog(yaml.safe_load(text))


def build_catalog(doc: dict) -> RuleCatalog:
    """Build a RuleCatalog from an already-loaded OpenAPI document."""
    params: dict[str, list[ParamSpec]] = {}
    responses: dict[str, dict[str, ResponseContract]] = {}

    for path, item in doc.get("paths", {}).items():
        shared = item.get("parameters", [])
        for method, operation in item.items():
            if method.upper() not in HTTP_METHODS:
                continue
            op_id = operation.get("operationId")
            if not op_id:
                logger.warning("Skipping %s %s: no operationId", method.upper(), path)
                continue

            specs = _parse_parameters(doc, _merge_parameters(doc, shared, operation.get("parameters", [])))
            specs.extend(_parse_request_body(doc, operation.get("requestBody")))
            params[op_id] = specs
            responses[op_id] = _parse_responses(doc, operation.get("responses", {}))

    logger.debug("Derived catalog for %d operations", len(params))
    return RuleCatalog(params, responses)


def schema_rules(schema: dict, required: bool) -> list[Rule]:
    """Translate the keywords of a parameter schema into an ordered rule list."""
    rules = []
    type_name = _type_name(schema)
    # Text enums coerce to their member; other enums check the coerced value.
    if type_name and not ("enum" in schema and type_name == "binary"):
        rules.append(Rule(kind="type", arg=type_name))
    if "enum" in schema:
        rules.append(Rule(kind="enum", arg=list(schema["enum"])))

    if "maximum" in schema:
        kind = "exclusive_max" if schema.get("exclusiveMaximum") is True else "max"
        rules.append(Rule(kind=kind, arg=schema["maximum"]))
    elif _is_number(schema.get("exclusiveMaximum")):
        rules.append(Rule(kind="exclusive_max", arg=schema["exclusiveMaximum"]))
    if "minimum" in schema:
        kind = "exclusive_min" if schema.get("exclusiveMinimum") is True else "min"
        rules.append(Rule(kind=kind, arg=schema["minimum"]))
    elif _is_number(schema.get("exclusiveMinimum")):
        rules.append(Rule(kind="exclusive_min", arg=schema["exclusiveMinimum"]))

    for keyword, kind in (("maxLength", "max_length"), ("minLength", "min_length"), ("pattern", "pattern")):
        if keyword in schema:
            rules.append(Rule(kind=kind, arg=schema[keyword]))

    rules.append(Rule(kind="required" if required else "not_required"))
    return rules


def _type_name(schema: dict) -> str | None:
    json_type = schema.get("type")
    if json_type == "string":
        return {"date": "date", "date-time": "datetime"}.get(schema.get("format"), "binary")
    return {"integer": "integer", "number": "float", "boolean": "boolean"}.get(json_type)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _resolve(doc: dict, node: dict) -> dict:
    """Follow a local ``$ref`` (one level is all OpenAPI components need)."""
    ref = node.get("$ref") if isinstance(node, dict) else None
    if not ref:
        return node
    target = doc
    for part in ref.lstrip("#/").split("/"):
        if not isinstance(target, dict) or part not in target:
            logger.error("Unresolvable reference %r in document", ref)
            raise CatalogError(f"unresolvable reference {ref!r}")
        target = target[part]
    return target


def _ref_name(schema: dict) -> str | None:
    ref = schema.get("$ref", "")
    if ref.startswith(SCHEMA_REF_PREFIX):
        return ref[len(SCHEMA_REF_PREFIX):]
    return None


def _merge_parameters(doc: dict, shared: list[dict], own: list[dict]) -> list[dict]:
    """Operation-level parameters override path-level ones with the same name and location."""
    merged = {}
    for p in [*shared, *own]:
        p = _resolve(doc, p)
        merged[(p["name"], p.get("in", "query"))] = p
    return list(merged.values())


def _parse_parameters(doc: dict, params: list[dict]) -> list[ParamSpec]:
    result = []
    for p in params:
        location = p.get("in", "query")
        source = LOCATIONS.get(location)
        if source is None:
            logger.warning("Skipping parameter %r: unsupported location %r", p["name"], location)
            continue
        schema = _resolve(doc, p.get("schema", {}))
        result.append(
            ParamSpec(
                name=p["name"],
                source=source,
                rules=schema_rules(schema, p.get("required", location == "path")),
            )
        )
    return result


def _parse_request_body(doc: dict, body: dict | None) -> list[ParamSpec]:
    if not body:
        return []
    body = _resolve(doc, body)
    required = body.get("required", False)
    content = body.get("content", {})

    for content_type in FORM_CONTENT_TYPES:
        if content_type in content:
            schema = _resolve(doc, content[content_type].get("schema", {}))
            props = schema.get("properties", {})
            return [
                ParamSpec(
                    name=name,
                    source=Source.BODY,
                    rules=schema_rules(_resolve(doc, prop), name in schema.get("required", [])),
                )
                for name, prop in props.items()
            ]

    schema = None
    for content_type in JSON_CONTENT_TYPES:
        if content_type in content:
            schema = content[content_type].get("schema")
            break
    if schema is None:
        # Fallback: first available schema
        for ct_data in content.values():
            schema = ct_data.get("schema")
            break
    if schema is None:
        return []

    presence = Rule(kind="required" if required else "not_required")
    name = _ref_name(schema)
    if name:
        return [ParamSpec(name=name, source=Source.BODY, rules=[Rule(kind="schema"), presence])]
    name = LIST_BODY_NAME if schema.get("type") == "array" else INLINE_BODY_NAME
    return [ParamSpec(name=name, source=Source.BODY, rules=[Rule(kind="schema", arg=schema), presence])]


def _parse_responses(doc: dict, responses: dict) -> dict[str, ResponseContract]:
    result = {}
    for status_code, resp in responses.items():
        resp = _resolve(doc, resp)
        schema = None
        for ct_data in resp.get("content", {}).values():
            schema = ct_data.get("schema")
            break
        result[str(status_code)] = _contract_for(schema)
    return result


def _contract_for(schema: dict | None) -> ResponseContract:
    if not schema:
        return ResponseContract()
    if _ref_name(schema):
        return ResponseContract(shape="single", ref=_ref_name(schema))

    json_type = schema.get("type")
    if json_type == "array":
        return _element_contract("list", schema.get("items", {}))
    if json_type == "object" and isinstance(schema.get("additionalProperties"), dict):
        return _element_contract("map", schema["additionalProperties"])
    if json_type in ("string", "integer", "number", "boolean"):
        return ResponseContract(shape="single", type=json_type)
    logger.debug("No contract derived for inline response schema %r", schema)
    return ResponseContract()


def _element_contract(shape: str, items: dict) -> ResponseContract:
    if _ref_name(items):
        return ResponseContract(shape=shape, ref=_ref_name(items))
    if items.get("type"):
        return ResponseContract(shape=shape, type=items["type"])
    return ResponseContract()
