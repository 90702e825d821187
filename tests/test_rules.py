import pytest

from contract_guard.catalog.base import Rule
from contract_guard.errors import UnknownRuleError
from contract_guard.validation.outcome import ABSENT, EMPTY, Replaced, WrongParam
from contract_guard.validation.rules import apply_rules, check


def r(kind, arg=None) -> Rule:
    return Rule(kind=kind, arg=arg)


class TestRequired:
    def test_absent_fails(self, state):
        outcome = apply_rules([r("required")], "status", ABSENT, state)
        assert not outcome.ok
        assert outcome.error.name == "status"
        assert outcome.error.value is ABSENT
        assert outcome.error.rule == r("required")

    def test_present_passes(self, state):
        assert apply_rules([r("required")], "status", "sold", state).value == "sold"

    def test_empty_body_counts_as_present(self, state):
        assert apply_rules([r("required")], "name", EMPTY, state).value is EMPTY

    def test_not_required_passes_absent(self, state):
        assert apply_rules([r("not_required")], "api_key", ABSENT, state).value is ABSENT

    def test_other_rules_skip_absent(self, state):
        rules = [r("type", "integer"), r("max", 5), r("pattern", "^x$"), r("not_required")]
        assert apply_rules(rules, "limit", ABSENT, state).value is ABSENT


class TestTypeInteger:
    @pytest.mark.parametrize(
        "raw, expected",
        [("42", 42), ("-7", -7), ("+3", 3), ("007", 7), (b"12", 12), (42, 42)],
    )
    def test_accepts(self, state, raw, expected):
        assert apply_rules([r("type", "integer")], "petId", raw, state).value == expected

    @pytest.mark.parametrize("raw", ["abc", "4.2", "", " 4", "1e3", EMPTY, True, 4.0, None])
    def test_rejects(self, state, raw):
        outcome = apply_rules([r("type", "integer")], "petId", raw, state)
        assert outcome.error.rule == r("type", "integer")
        assert outcome.error.value is raw or outcome.error.value == raw

    def test_coercion_is_replacement(self, state):
        assert check(r("type", "integer"), "42", "petId", state) == Replaced(42)
        assert check(r("type", "integer"), 42, "petId", state) is None


class TestTypeFloat:
    @pytest.mark.parametrize(
        "raw, expected",
        [("1.5", 1.5), ("-2", -2.0), (".5", 0.5), ("3.", 3.0), ("1e3", 1000.0), ("2.5E-1", 0.25)],
    )
    def test_accepts(self, state, raw, expected):
        assert apply_rules([r("type", "float")], "price", raw, state).value == expected

    @pytest.mark.parametrize("raw", ["nan", "inf", "-Infinity", "1e999", "abc", "", "1.2.3", False])
    def test_rejects(self, state, raw):
        assert not apply_rules([r("type", "float")], "price", raw, state).ok

    def test_native_numbers_pass_unchanged(self, state):
        assert apply_rules([r("type", "float")], "price", 3, state).value == 3
        assert apply_rules([r("type", "float")], "price", 2.5, state).value == 2.5


class TestTypeBoolean:
    @pytest.mark.parametrize(
        "raw, expected",
        [("true", True), ("TRUE", True), ("False", False), (True, True), (False, False)],
    )
    def test_accepts(self, state, raw, expected):
        assert apply_rules([r("type", "boolean")], "flag", raw, state).value is expected

    @pytest.mark.parametrize("raw", ["yes", "1", "", 1])
    def test_rejects(self, state, raw):
        assert not apply_rules([r("type", "boolean")], "flag", raw, state).ok


class TestTypeText:
    @pytest.mark.parametrize("type_name", ["binary", "date", "datetime"])
    def test_text_passes_unchanged(self, state, type_name):
        assert apply_rules([r("type", type_name)], "since", "2024-01-01", state).value == "2024-01-01"
        assert apply_rules([r("type", type_name)], "since", EMPTY, state).value is EMPTY

    def test_non_text_fails(self, state):
        assert not apply_rules([r("type", "binary")], "name", {"a": 1}, state).ok
        assert not apply_rules([r("type", "binary")], "name", 5, state).ok


class TestEnum:
    def test_numeric_members_after_coercion(self, state):
        rules = [r("type", "integer"), r("enum", [1, 2, 3])]
        assert apply_rules(rules, "level", "2", state).value == 2
        assert apply_rules(rules, "level", "4", state).error.rule == r("enum", [1, 2, 3])

    def test_bool_is_not_an_int_member(self, state):
        assert not apply_rules([r("enum", [1, 0])], "level", True, state).ok

    def test_member(self, state):
        assert apply_rules([r("enum", ["available", "sold"])], "status", "sold", state).value == "sold"

    def test_non_member(self, state):
        outcome = apply_rules([r("enum", ["available", "sold"])], "status", "lost", state)
        assert outcome.error.rule == r("enum", ["available", "sold"])
        assert outcome.error.value == "lost"

    def test_case_sensitive(self, state):
        assert not apply_rules([r("enum", ["sold"])], "status", "SOLD", state).ok

    def test_bytes_coerced_to_member(self, state):
        assert apply_rules([r("enum", ["sold"])], "status", b"sold", state).value == "sold"


class TestBounds:
    @pytest.mark.parametrize(
        "kind, value, ok",
        [
            ("max", 5, True),
            ("max", 6, False),
            ("min", 1, True),
            ("min", 0, False),
            ("exclusive_max", 4, True),
            ("exclusive_max", 5, False),
            ("exclusive_min", 2, True),
            ("exclusive_min", 1, False),
        ],
    )
    def test_boundaries(self, state, kind, value, ok):
        bound = 5 if "max" in kind else 1
        assert apply_rules([r(kind, bound)], "orderId", value, state).ok is ok

    def test_non_number_fails(self, state):
        assert not apply_rules([r("max", 5)], "orderId", "3", state).ok

    def test_float_bounds(self, state):
        assert apply_rules([r("max", 2.5)], "price", 2.5, state).ok
        assert not apply_rules([r("exclusive_max", 2.5)], "price", 2.5, state).ok


class TestLength:
    @pytest.mark.parametrize(
        "kind, value, ok",
        [
            ("max_length", "abc", True),
            ("max_length", "abcd", False),
            ("min_length", "abc", True),
            ("min_length", "ab", False),
            ("min_length", EMPTY, False),
        ],
    )
    def test_boundaries(self, state, kind, value, ok):
        assert apply_rules([r(kind, 3)], "name", value, state).ok is ok

    def test_empty_passes_zero_minimum(self, state):
        assert apply_rules([r("min_length", 0)], "name", EMPTY, state).ok

    def test_non_text_fails(self, state):
        assert not apply_rules([r("max_length", 3)], "name", 12, state).ok


class TestPattern:
    def test_match(self, state):
        assert apply_rules([r("pattern", "^[a-z]+$")], "username", "alice", state).ok

    def test_unanchored_search(self, state):
        assert apply_rules([r("pattern", "[0-9]")], "username", "user1x", state).ok

    def test_no_match(self, state):
        outcome = apply_rules([r("pattern", "^[a-z]+$")], "username", "Alice!", state)
        assert outcome.error.rule == r("pattern", "^[a-z]+$")

    def test_non_text_fails(self, state):
        assert not apply_rules([r("pattern", ".*")], "username", 5, state).ok


class TestSchema:
    def test_component_named_by_param(self, state):
        body = {"name": "doggie", "photoUrls": []}
        assert apply_rules([r("schema")], "Pet", body, state).value == body

    def test_component_named_by_arg(self, state):
        assert apply_rules([r("schema", "Tag")], "body", {"id": 1, "name": "x"}, state).ok

    def test_inline_schema(self, state):
        schema = {"type": "array", "items": {"$ref": "#/components/schemas/User"}}
        outcome = apply_rules([r("schema", schema)], "list", [{"username": 5}], state)
        assert outcome.error.info.path == [0, "username"]

    def test_missing_property(self, state):
        outcome = apply_rules([r("schema")], "Pet", {"name": "doggie"}, state)
        info = outcome.error.info
        assert info.type == "data_invalid"
        assert info.error == "required"
        assert info.path == ["photoUrls"]

    def test_empty_body_validated_as_empty_text(self, state):
        outcome = apply_rules([r("schema")], "Pet", EMPTY, state)
        assert outcome.error.info.error == "type"

    def test_unresolvable_component(self, state):
        outcome = apply_rules([r("schema", "Nope")], "body", {}, state)
        assert outcome.error.info.type == "schema_invalid"


class TestOrdering:
    def test_stops_at_first_failure(self, state):
        outcome = apply_rules([r("type", "integer"), r("max", 5), r("required")], "orderId", "abc", state)
        assert outcome.error.rule == r("type", "integer")

    def test_coercion_feeds_later_rules(self, state):
        assert apply_rules([r("type", "integer"), r("max", 5)], "orderId", "3", state).value == 3

    def test_order_is_significant(self, state):
        # A bound before the coercion sees the raw string.
        assert not apply_rules([r("max", 5), r("type", "integer")], "orderId", "3", state).ok

    def test_empty_rule_list(self, state):
        assert apply_rules([], "anything", "raw", state).value == "raw"


class TestUnknownRules:
    def test_unknown_kind_raises(self, state):
        with pytest.raises(UnknownRuleError):
            apply_rules([r("uuid")], "id", "x", state)

    def test_unknown_kind_raises_for_absent_value(self, state):
        with pytest.raises(UnknownRuleError):
            apply_rules([r("uuid")], "id", ABSENT, state)

    def test_unknown_type_raises(self, state):
        with pytest.raises(UnknownRuleError):
            apply_rules([r("type", "uuid")], "id", "x", state)

    def test_unknown_type_raises_for_absent_value(self, state):
        with pytest.raises(UnknownRuleError):
            apply_rules([r("type", "uuid"), r("not_required")], "id", ABSENT, state)


class TestWrongParam:
    def test_str(self, state):
        error = apply_rules([r("max", 5)], "orderId", 6, state).error
        assert isinstance(error, WrongParam)
        assert str(error) == "parameter 'orderId' violates rule max(5): got 6"
