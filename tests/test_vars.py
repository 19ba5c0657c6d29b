"""Tests for the ordered Vars bag and the business objects parsed from it."""

import json

import pytest

from pgfleet.conf import PgUser, Vars
from pgfleet.exceptions import SchemaError


class TestVarsAccess:
    """Typed getters and ordered insertion."""

    def test_typed_getters_report_presence(self):
        """Getters return (value, True) for a matching type."""
        v = Vars.from_dict({"name": "pg-test", "seq": 1, "on": True, "xs": [1], "m": {"a": 1}})

        assert v.get_string("name") == ("pg-test", True)
        assert v.get_integer("seq") == (1, True)
        assert v.get_bool("on") == (True, True)
        assert v.get_array("xs") == ([1], True)
        assert v.get_map("m") == ({"a": 1}, True)

    def test_missing_key_returns_zero_value(self):
        """Absent keys give the zero value and False."""
        v = Vars()

        assert v.get_string("x") == ("", False)
        assert v.get_integer("x") == (0, False)
        assert v.get_bool("x") == (False, False)
        assert v.get_array("x") == (None, False)
        assert v.get_map("x") == (None, False)

    def test_wrong_type_is_not_converted(self):
        """A value of another type is reported as absent, never coerced."""
        v = Vars.from_dict({"seq": "1", "name": 42})

        assert v.get_integer("seq") == (0, False)
        assert v.get_string("name") == ("", False)

    def test_bool_is_not_an_integer(self):
        """YAML true must not satisfy an integer lookup."""
        v = Vars.from_dict({"pg_seq": True})

        assert v.get_integer("pg_seq") == (0, False)

    def test_put_keeps_first_position(self):
        """Overwriting a key keeps its place; new keys are appended."""
        v = Vars()
        v.put("b", 1)
        v.put("a", 2)
        v.put("b", 3)

        assert v.keys == ["b", "a"]
        assert v.to_dict() == {"b": 3, "a": 2}
        assert "a" in v
        assert len(v) == 2


class TestVarsYaml:
    """Parsing and dumping keep declaration order."""

    def test_from_yaml_keeps_order(self):
        """Keys come back in document order, not sorted."""
        v = Vars.from_yaml("zeta: 1\nalpha: 2\nmid: {y: 1, x: 2}\n")

        assert v.keys == ["zeta", "alpha", "mid"]
        assert list(v.get("mid")) == ["y", "x"]

    def test_to_yaml_keeps_order(self):
        """Dumped YAML lists keys in insertion order."""
        v = Vars.from_yaml("zeta: 1\nalpha: 2\n")

        assert v.to_yaml() == "zeta: 1\nalpha: 2\n"

    def test_to_json(self):
        v = Vars.from_yaml("b: 1\na: [x]\n")

        assert json.loads(v.to_json()) == {"b": 1, "a": ["x"]}

    def test_null_document_gives_empty_vars(self):
        """A bare null (``vars:`` with no value) is an empty bag."""
        assert len(Vars.from_yaml("~")) == 0

    def test_non_mapping_is_schema_error(self):
        """Vars must be a mapping."""
        with pytest.raises(SchemaError):
            Vars.from_yaml("- a\n- b\n")

    def test_invalid_yaml_is_schema_error(self):
        with pytest.raises(SchemaError):
            Vars.from_yaml("a: [unclosed\n")

    def test_from_dict_rejects_non_mapping(self):
        with pytest.raises(SchemaError):
            Vars.from_dict(["a"])


class TestReservedKeys:
    """pg_users, pg_databases, pg_services and pg_hba_rules parsing."""

    def test_parse_users_skips_malformed_entries(self):
        """Entries without a name or that are not mappings are ignored."""
        v = Vars.from_dict(
            {"pg_users": [{"name": "dbuser", "password": "x"}, {"password": "y"}, "junk"]}
        )

        users = v.parse_users()

        assert [u.name for u in users] == ["dbuser"]

    def test_parse_users_ignores_unknown_fields(self):
        v = Vars.from_dict({"pg_users": [{"name": "dbuser", "unknown": 1}]})

        assert v.parse_users() == [PgUser(name="dbuser")]

    def test_user_to_dict_hides_password(self):
        """Serialized users never carry the password."""
        user = PgUser.from_dict({"name": "dbuser", "password": "secret"})

        assert "password" not in user.to_dict()
        assert user.password == "secret"

    def test_parse_databases_and_services(self):
        v = Vars.from_dict(
            {
                "pg_databases": [{"name": "meta", "owner": "dbuser", "extensions": [{"name": "postgis"}]}],
                "pg_services": [{"name": "primary", "src_port": 5433}],
            }
        )

        dbs = v.parse_databases()
        services = v.parse_services()

        assert dbs[0].owner == "dbuser"
        assert dbs[0].extensions == [{"name": "postgis"}]
        assert services[0].src_port == 5433

    def test_parse_hba_rules_requires_rules(self):
        """Hba blocks without rules are skipped."""
        v = Vars.from_dict(
            {
                "pg_hba_rules": [
                    {"title": "allow intranet", "role": "common", "rules": ["host all all 10.0.0.0/8 md5"]},
                    {"title": "empty"},
                ]
            }
        )

        rules = v.parse_hba_rules()

        assert [r.title for r in rules] == ["allow intranet"]

    def test_reserved_key_with_wrong_shape_is_empty(self):
        v = Vars.from_dict({"pg_users": "not-a-list"})

        assert v.parse_users() == []
