from pathlib import Path

import pytest

from contract_guard.config import DEFAULT_DRAFT, Settings
from contract_guard.errors import ConfigurationError, SchemaParseError
from contract_guard.store import ValidatorState, absolutize_refs, load_validator, parse_document

FIXTURES = Path(__file__).parent / "fixtures"


class TestLoadValidator:
    def test_defaults_to_bundled_document(self, state):
        assert state.document["info"]["title"] == "OpenAPI Petstore"
        assert state.draft == DEFAULT_DRAFT

    def test_loads_yaml_document(self):
        state = load_validator(FIXTURES / "petstore.yaml")
        assert "Pet" in state.document["components"]["schemas"]

    def test_explicit_draft(self):
        state = load_validator(draft="https://json-schema.org/draft/2020-12/schema")
        assert state.draft.endswith("2020-12/schema")

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_validator(tmp_path / "missing.json")

    def test_unparseable_content(self, tmp_path):
        f = tmp_path / "openapi.json"
        f.write_text("openapi: [unclosed\n")
        with pytest.raises(SchemaParseError):
            load_validator(f)

    def test_non_mapping_content(self, tmp_path):
        f = tmp_path / "openapi.json"
        f.write_text("[1, 2, 3]")
        with pytest.raises(SchemaParseError):
            load_validator(f)

    def test_unsupported_draft(self):
        with pytest.raises(ConfigurationError):
            load_validator(draft="http://example.com/not-a-draft#")

    def test_schema_path_from_env(self, monkeypatch):
        monkeypatch.setenv("CONTRACT_GUARD_SCHEMA_PATH", str(FIXTURES / "petstore.yaml"))
        state = load_validator()
        assert state.document["info"]["title"] == "Mini Petstore"

    def test_catalog_path_from_env(self, monkeypatch):
        monkeypatch.setenv("CONTRACT_GUARD_CATALOG_PATH", str(FIXTURES / "catalog.yaml"))
        state = load_validator()
        assert state.catalog.operations() == ["getOrderById", "logoutUser", "getInventory"]


class TestSettings:
    def test_from_env_defaults(self, monkeypatch):
        monkeypatch.delenv("CONTRACT_GUARD_SCHEMA_PATH", raising=False)
        monkeypatch.delenv("CONTRACT_GUARD_DRAFT", raising=False)
        monkeypatch.delenv("CONTRACT_GUARD_CATALOG_PATH", raising=False)
        settings = Settings.from_env()
        assert settings.schema_path.name == "openapi.json"
        assert settings.schema_path.exists()
        assert settings.catalog_path is None

    def test_draft_from_env(self, monkeypatch):
        monkeypatch.setenv("CONTRACT_GUARD_DRAFT", "http://json-schema.org/draft-07/schema#")
        assert Settings.from_env().draft == "http://json-schema.org/draft-07/schema#"


class TestParseDocument:
    def test_json(self):
        assert parse_document('{"a": 1}') == {"a": 1}

    def test_yaml(self):
        assert parse_document("a: 1\n") == {"a": 1}

    def test_scalar_rejected(self):
        with pytest.raises(SchemaParseError):
            parse_document("42")


class TestAbsolutizeRefs:
    def test_local_refs_rewritten(self):
        schema = {"type": "array", "items": {"$ref": "#/components/schemas/User"}}
        result = absolutize_refs(schema, "urn:doc")
        assert result["items"]["$ref"] == "urn:doc#/components/schemas/User"
        assert schema["items"]["$ref"] == "#/components/schemas/User"

    def test_remote_refs_untouched(self):
        schema = {"allOf": [{"$ref": "http://example.com/s.json"}]}
        assert absolutize_refs(schema, "urn:doc") == schema

    def test_instance_data_untouched(self):
        schema = {
            "type": "object",
            "enum": [{"$ref": "#/x"}],
            "const": {"$ref": "#/x"},
            "default": {"$ref": "#/x"},
            "example": {"$ref": "#/x"},
        }
        assert absolutize_refs(schema, "urn:doc") == schema

    def test_properties_named_like_keywords(self):
        schema = {"properties": {"default": {"$ref": "#/components/schemas/Tag"}}}
        result = absolutize_refs(schema, "urn:doc")
        assert result["properties"]["default"]["$ref"] == "urn:doc#/components/schemas/Tag"

    def test_enum_data_validates_literally(self, state):
        assert state.validate({"enum": [{"$ref": "#/x"}]}, {"$ref": "#/x"}) is None


class TestValidateRef:
    def test_valid_value(self, state):
        assert state.validate_ref("#/components/schemas/Tag", {"id": 1, "name": "x"}) is None

    def test_type_mismatch(self, state):
        detail = state.validate_ref("#/components/schemas/Pet", {"name": 5, "photoUrls": []})
        assert detail.type == "data_invalid"
        assert detail.error == "type"
        assert detail.path == ["name"]

    def test_missing_required_field_names_its_path(self, state):
        detail = state.validate_ref("#/components/schemas/Pet", {"name": "doggie"})
        assert detail.error == "required"
        assert detail.path == ["photoUrls"]
        assert "photoUrls" in detail.message

    def test_nested_refs_resolve_against_document(self, state):
        pet = {"name": "doggie", "photoUrls": [], "category": {"name": "-bad"}}
        detail = state.validate_ref("#/components/schemas/Pet", pet)
        assert detail.error == "pattern"
        assert detail.path == ["category", "name"]

    def test_unknown_component(self, state):
        detail = state.validate_ref("#/components/schemas/Nope", {})
        assert detail.type == "schema_invalid"

    def test_inline_schema_with_refs(self, state):
        schema = {"type": "array", "items": {"$ref": "#/components/schemas/User"}}
        assert state.validate(schema, [{"username": "a"}]) is None
        assert state.validate(schema, [{"username": 5}]).path == [0, "username"]

    def test_invalid_inline_schema(self, state):
        detail = state.validate({"type": 12}, "x")
        assert detail.type == "schema_invalid"


class TestValidatorState:
    def test_catalog_is_built_once(self, state):
        assert state.catalog is state.catalog

    def test_explicit_catalog(self, state):
        from contract_guard.catalog.registry import RuleCatalog

        catalog = RuleCatalog({})
        assert ValidatorState(state.document, catalog=catalog).catalog is catalog
