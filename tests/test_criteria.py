"""Tests for WHERE / HAVING criteria, Raw fragments and compiled statements."""

from __future__ import annotations

from querycraft import Connection, QueryBuilder, QueryKind, QueryObject, Raw

# ============================================================================
# Criteria rendering
# ============================================================================


class TestCriteria:
    """WHERE clause shapes."""

    def test_raw_criteria(self, builder: QueryBuilder) -> None:
        """Raw criteria are inlined and their bindings keep their position."""
        query = (
            builder.from_("my_table")
            .where("simple", "=", "criteria")
            .where(Raw("RAW"))
            .where(Raw("PARAMETERIZED_ONE(?)", "foo"))
            .where(Raw("PARAMETERIZED_SEVERAL(?, ?, ?)", [1, "2", "foo"]))
        )
        compiled = query.get_query()

        assert compiled.bindings == ("criteria", "foo", 1, "2", "foo")
        assert compiled.raw_sql == (
            "SELECT * FROM `cb_my_table` WHERE `simple` = 'criteria' AND RAW "
            "AND PARAMETERIZED_ONE('foo') AND PARAMETERIZED_SEVERAL(1, '2', 'foo')"
        )

    def test_null_criteria(self, builder: QueryBuilder) -> None:
        """NULL checks render IS / IS NOT; comparing to None binds NULL."""
        query = (
            builder.from_("my_table")
            .where_null("key1")
            .or_where_null("key2")
            .where_not_null("key3")
            .or_where_not_null("key4")
            .or_where("key5", "=", None)
        )
        assert query.get_query().raw_sql == (
            "SELECT * FROM `cb_my_table` WHERE `key1` IS NULL OR `key2` IS NULL "
            "AND `key3` IS NOT NULL OR `key4` IS NOT NULL OR `key5` = NULL"
        )

    def test_leading_not_is_kept(self, builder: QueryBuilder) -> None:
        """A leading NOT survives while AND is dropped."""
        query = builder.from_("my_table").where_not("foo", 1)
        assert query.get_query().raw_sql == "SELECT * FROM `cb_my_table` WHERE NOT `foo` = 1"

    def test_leading_or_is_dropped(self, builder: QueryBuilder) -> None:
        """The first criterion never starts with OR."""
        query = builder.from_("my_table").or_where("foo", 1).or_where("bar", 2)
        assert query.get_query().sql == "SELECT * FROM `cb_my_table` WHERE `foo` = ? OR `bar` = ?"

    def test_list_compared_with_equals(self, builder: QueryBuilder) -> None:
        """A list compared with "=" renders a parenthesized value list."""
        query = builder.from_("person").where("name", [1, None, 3])
        compiled = query.get_query()
        assert compiled.sql == "SELECT * FROM `cb_person` WHERE `name` = (?, ?, ?)"
        assert compiled.raw_sql == "SELECT * FROM `cb_person` WHERE `name` = (1, NULL, 3)"

    def test_boolean_values_become_integers(self, builder: QueryBuilder) -> None:
        """Booleans are bound as 0 and 1."""
        assert builder.table("test").where("id", False).get_query().raw_sql == "SELECT * FROM `cb_test` WHERE `id` = 0"
        assert builder.table("test").where("id", "=", True).get_query().bindings == (1,)

    def test_between_with_raw_bound(self, builder: QueryBuilder) -> None:
        """A Raw bound of BETWEEN is inlined, the other is bound."""
        query = builder.from_("animals").where_between("created_date", Raw("NOW()"), "27-05-2017")
        compiled = query.get_query()
        assert compiled.sql == "SELECT * FROM `cb_animals` WHERE `created_date` BETWEEN NOW() AND ?"
        assert compiled.raw_sql == "SELECT * FROM `cb_animals` WHERE `created_date` BETWEEN NOW() AND '27-05-2017'"

    def test_or_between_and_not_in(self, builder: QueryBuilder) -> None:
        """OR variants of BETWEEN and NOT IN."""
        query = (
            builder.from_("t")
            .where_not_in("a", [1, 2])
            .or_where_between("b", 3, 4)
            .or_where_not_in("c", ["x"])
        )
        compiled = query.get_query()
        assert compiled.sql == "SELECT * FROM `cb_t` WHERE `a` NOT IN (?, ?) OR `b` BETWEEN ? AND ? OR `c` NOT IN (?)"
        assert compiled.bindings == (1, 2, 3, 4, "x")

    def test_nested_bindings_follow_text_order(self, builder: QueryBuilder) -> None:
        """Bindings of a nested group sit between the outer ones."""
        query = (
            builder.from_("t")
            .where("a", 1)
            .where(lambda q: q.where("b", 2).or_where_not("c", 3))
            .where("d", 4)
        )
        compiled = query.get_query()
        assert compiled.sql == "SELECT * FROM `cb_t` WHERE `a` = ? AND (`b` = ? OR NOT `c` = ?) AND `d` = ?"
        assert compiled.bindings == (1, 2, 3, 4)

    def test_nested_group_first(self, builder: QueryBuilder) -> None:
        """A nested group can open the WHERE clause."""
        query = builder.from_("t").or_where(lambda q: q.where("a", 1).or_where("b", 2))
        assert query.get_query().sql == "SELECT * FROM `cb_t` WHERE (`a` = ? OR `b` = ?)"

    def test_having(self, builder: QueryBuilder) -> None:
        """HAVING accepts Raw keys and OR entries."""
        query = (
            builder.from_("orders")
            .select("customer", Raw("SUM(total) AS spent"))
            .group_by("customer")
            .having(Raw("SUM(total)"), ">", 100)
            .or_having("customer", "=", "vip")
        )
        compiled = query.get_query()
        assert compiled.sql == (
            "SELECT `customer`, SUM(total) AS spent FROM `cb_orders` GROUP BY `customer` "
            "HAVING SUM(total) > ? OR `customer` = ?"
        )
        assert compiled.bindings == (100, "vip")

    def test_criteria_only(self, connection: Connection) -> None:
        """Criteria-only compilation returns the bare expression."""
        from querycraft import NestedCriteria

        nested = NestedCriteria(connection)
        nested.where("a", 1).or_where("b.c", "<", 2)

        compiled = nested.get_query(QueryKind.CRITERIA_ONLY)
        assert compiled.sql == "`a` = ? OR `cb_b`.`c` < ?"
        assert compiled.bindings == (1, 2)

    def test_criteria_only_identifier_values(self, connection: Connection) -> None:
        """Unbound criteria treat both sides as identifiers, like join conditions."""
        from querycraft import NestedCriteria

        nested = NestedCriteria(connection)
        nested.where("a.id", "=", "b.a_id")

        compiled = nested.get_query(QueryKind.CRITERIA_ONLY, False)
        assert compiled.sql == "`cb_a`.`id` = `b`.`a_id`"
        assert compiled.bindings == ()


# ============================================================================
# Identifier quoting
# ============================================================================


class TestWrapSanitizer:
    def test_identifiers(self, connection: Connection) -> None:
        """Names are quoted per dotted part; wildcards stay bare."""
        adapter = connection.adapter()
        assert adapter.wrap_sanitizer("name") == "`name`"
        assert adapter.wrap_sanitizer("users.name") == "`users`.`name`"
        assert adapter.wrap_sanitizer("users.*") == "`users`.*"
        assert adapter.wrap_sanitizer("*") == "*"

    def test_only_first_dot_splits(self, connection: Connection) -> None:
        """Only the first dot separates qualifier and name."""
        assert connection.adapter().wrap_sanitizer("db.users.name") == "`db`.`users.name`"

    def test_raw_and_callables_pass_through(self, connection: Connection) -> None:
        """Raw renders as its text and callables are returned as is."""
        adapter = connection.adapter()

        def group(q: QueryBuilder) -> None:
            q.where("a", 1)

        assert adapter.wrap_sanitizer(Raw("NOW()")) == "NOW()"
        assert adapter.wrap_sanitizer(group) is group


# ============================================================================
# Raw and QueryObject
# ============================================================================


class TestRaw:
    def test_bindings_forms(self) -> None:
        """Bindings can be varargs or a single list/tuple."""
        assert Raw("a").bindings == ()
        assert Raw("a = ?", 1).bindings == (1,)
        assert Raw("a IN (?, ?)", 1, 2).bindings == (1, 2)
        assert Raw("a IN (?, ?)", [1, 2]).bindings == (1, 2)
        assert Raw("a = ?", (3,)).get_bindings() == [3]

    def test_str(self) -> None:
        """str() returns the fragment text."""
        assert str(Raw("COUNT(*)")) == "COUNT(*)"

    def test_builder_raw_helper(self, builder: QueryBuilder) -> None:
        """builder.raw() builds a Raw fragment."""
        assert builder.raw("x = ?", 5) == Raw("x = ?", 5)


class TestQueryObject:
    """Interpolated rendering of compiled statements."""

    def test_literals(self) -> None:
        """Strings are quoted, None is NULL, Raw is verbatim."""
        query = QueryObject(
            "INSERT INTO t VALUES (?, ?, ?, ?, ?, ?)",
            ("O'Brien", None, True, 2.5, Raw("NOW()"), [1, 2]),
        )
        assert query.raw_sql == "INSERT INTO t VALUES ('O''Brien', NULL, 1, 2.5, NOW(), '1,2')"

    def test_missing_bindings_leave_placeholders(self) -> None:
        """Placeholders without a value stay as "?"."""
        assert QueryObject("SELECT ?, ?", (1,)).raw_sql == "SELECT 1, ?"

    def test_accessors(self) -> None:
        """Getter methods mirror the attributes."""
        query = QueryObject("SELECT ?", (1,))
        assert query.get_sql() == "SELECT ?"
        assert query.get_bindings() == [1]
        assert query.get_raw_sql() == "SELECT 1"
        assert str(query) == "SELECT 1"

    def test_equality_ignores_connection(self, connection: Connection) -> None:
        """Equality compares SQL and bindings only."""
        assert QueryObject("SELECT 1", (), connection) == QueryObject("SELECT 1")
