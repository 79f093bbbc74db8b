"""
Round-trip tests: QueryModel -> SQL -> QueryModel -> SQL

Models built only from the supported grammar (single FROM, equality ON joins,
AND-only WHERE, flat GROUP/ORDER/LIMIT/OFFSET) must survive decompilation and
recompile to the same text.
"""

import pytest
from query_builder import (
    QueryModel,
    JoinSpec,
    ConditionSpec,
    compile_sql,
    decompile_sql,
    check_round_trip,
)


def shop_report(catalog):
    model = QueryModel(catalog=catalog)
    model.add_table("customers")
    model.add_table("orders")
    model.set_alias("orders", "o")
    model.set_columns("customers", ["name", "email"])
    model.set_columns("o", ["total"])
    model.add_join(JoinSpec(type="LEFT", left_table="customers", left_column="id",
                            right_table="o", right_column="customer_id"))
    model.add_condition(ConditionSpec(column="customers.name", operator="=", value="O'Brien"))
    model.add_condition(ConditionSpec(column="o.total", operator=">=", value="100"))
    model.add_condition(ConditionSpec(column="o.id", operator="IN", value="1, 2, 3"))
    model.add_condition(ConditionSpec(column="o.created_at", operator="BETWEEN",
                                      value="2024-01-01, 2024-12-31"))
    model.add_condition(ConditionSpec(column="customers.email", operator="IS NULL"))
    model.add_condition(ConditionSpec(column="customers.name", operator="NOT LIKE", value="%test%"))
    model.add_group("customers.name")
    model.add_group("customers.email")
    model.add_order("customers.name")
    model.add_order("o.total", "DESC")
    model.set_limit(50)
    model.set_offset(100)
    return model


def self_join(catalog):
    model = QueryModel(catalog=catalog)
    model.add_table("employees")
    model.add_table("employees", force_self_join=True)
    model.set_columns("employees", ["name"])
    model.set_columns("employees_2", ["name"])
    model.add_join(JoinSpec(type="LEFT", left_table="employees", left_column="manager_id",
                            right_table="employees_2", right_column="id"))
    return model


def mirrored_joins(catalog):
    # order_items added before orders, so both joins use the mirror form
    model = QueryModel(catalog=catalog)
    model.add_table("customers")
    model.add_table("order_items")
    model.add_table("orders")
    model.add_join(JoinSpec(left_table="orders", left_column="customer_id",
                            right_table="customers", right_column="id"))
    model.add_join(JoinSpec(left_table="order_items", left_column="order_id",
                            right_table="orders", right_column="id"))
    model.select_none()
    return model


def comparable(model):
    """Fields a decompiled model must reproduce."""
    state = model.to_state()
    for table in state["tables"]:
        table.pop("ordinal")
    # None and [] both mean key.* once compiled
    state["columns"] = {k: (v or None) for k, v in state["columns"].items()}
    return state


class TestRoundTrip:
    """Test decompile(compile(model)) against the original model."""

    def test_shop_report(self, shop_catalog):
        """Aliased join with every condition family"""
        model = shop_report(shop_catalog)
        result = decompile_sql(compile_sql(model), shop_catalog)
        assert result.complete, result.warnings
        assert comparable(result.model) == comparable(model)

    def test_self_join(self, employees_catalog):
        """Self-join keeps its generated alias"""
        model = self_join(employees_catalog)
        result = decompile_sql(compile_sql(model), employees_catalog)
        assert comparable(result.model) == comparable(model)

    def test_mirrored_joins_keep_table_order(self, shop_catalog):
        """Tables come back in SELECT order, joins in model orientation"""
        model = mirrored_joins(shop_catalog)
        sql = compile_sql(model)
        assert sql == (
            "SELECT customers.*, order_items.*, orders.*\n"
            "FROM customers\n"
            "INNER JOIN orders ON orders.customer_id = customers.id\n"
            "INNER JOIN order_items ON order_items.order_id = orders.id;"
        )
        result = decompile_sql(sql, shop_catalog)
        assert comparable(result.model) == comparable(model)


class TestIdempotence:
    """Test compile(decompile(compile(model))) == compile(model)."""

    @pytest.mark.parametrize("builder,catalog_fixture", [
        (shop_report, "shop_catalog"),
        (self_join, "employees_catalog"),
        (mirrored_joins, "shop_catalog"),
    ])
    def test_recompile_is_identical(self, request, builder, catalog_fixture):
        """Recompiling a decompiled model reproduces the SQL text"""
        catalog = request.getfixturevalue(catalog_fixture)
        model = builder(catalog)
        sql = compile_sql(model)
        assert compile_sql(decompile_sql(sql, catalog).model) == sql

    def test_hand_written_sql_stabilizes(self, shop_catalog):
        """After one decompile, further round-trips don't change the SQL"""
        sql = (
            "select c.name, o.total from customers c "
            "join orders o on o.customer_id = c.id "
            "where c.name like 'A%' and o.total between 10 and 20 "
            "order by o.total desc limit 5"
        )
        first = compile_sql(decompile_sql(sql, shop_catalog).model)
        second = compile_sql(decompile_sql(first, shop_catalog).model)
        assert first == second

    def test_check_round_trip(self, shop_catalog):
        """check_round_trip reports equivalence for supported models"""
        result = check_round_trip(shop_report(shop_catalog))
        assert result.equivalent
        assert result.original_sql == result.regenerated_sql
        assert result.differences == []
