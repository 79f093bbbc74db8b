"""
HTTP API tests for the query builder endpoints.

Run with: python -m pytest backend/tests/
"""

from fastapi.testclient import TestClient
from main import app
from query_builder import QueryModel, JoinSpec

client = TestClient(app)


def test_health():
    """Health check responds."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_compile_state(shop_catalog, shop_schema):
    """Persisted state compiles to SQL."""
    model = QueryModel(catalog=shop_catalog)
    model.add_table("customers")
    model.add_table("orders")
    model.add_join(JoinSpec(left_table="orders", left_column="customer_id",
                            right_table="customers", right_column="id"))

    response = client.post("/api/compile", json={"state": model.to_state(), "schema": shop_schema})

    data = response.json()
    assert data["success"] is True
    assert data["sql"] == (
        "SELECT customers.*, orders.*\n"
        "FROM customers\n"
        "INNER JOIN orders ON orders.customer_id = customers.id;"
    )


def test_compile_empty_state():
    """An empty state compiles to the placeholder."""
    data = client.post("/api/compile", json={"state": {}}).json()
    assert data["success"] is True
    assert data["sql"] == "SELECT * FROM table_name;"


def test_compile_invalid_state():
    """Invalid state is reported, not raised."""
    data = client.post("/api/compile", json={"state": {"limit": -1}}).json()
    assert data["success"] is False
    assert data["error"]


def test_decompile_with_envelope(shop_schema):
    """Schema may be wrapped in a data envelope; response uses camelCase aliases."""
    response = client.post("/api/decompile", json={
        "sql": "SELECT c.name FROM customers c WHERE c.id = 7 OR c.id = 8",
        "schema": {"data": shop_schema},
    })

    data = response.json()
    assert data["success"] is True
    assert data["statementKind"] == "SELECT"
    assert data["complete"] is False
    assert "OR conditions" in data["unsupportedFeatures"]
    assert data["unresolvedTables"] == []
    assert data["state"]["tables"][0]["name"] == "customers"
    assert data["state"]["columns"] == {"c": ["name"]}


def test_decompile_non_select():
    """Non-SELECT statements come back with their kind and no tables."""
    data = client.post("/api/decompile", json={"sql": "DROP TABLE t"}).json()
    assert data["success"] is True
    assert data["statementKind"] == "DROP"
    assert data["state"]["tables"] == []


def test_suggest_joins(shop_catalog, shop_schema):
    """Suggestions are returned as join specs."""
    model = QueryModel(catalog=shop_catalog)
    model.add_table("orders")
    model.add_table("customers")

    data = client.post("/api/suggest-joins", json={"state": model.to_state(), "schema": shop_schema}).json()

    assert data["success"] is True
    assert data["joins"] == [{
        "type": "INNER",
        "left_table": "orders",
        "left_column": "customer_id",
        "right_table": "customers",
        "right_column": "id",
    }]


def test_replay(shop_schema):
    """Action timelines are applied and compiled."""
    data = client.post("/api/replay", json={
        "schema": shop_schema,
        "actions": [
            {"action": "add_table", "name": "customers"},
            {"action": "set_columns", "key": "customers", "columns": ["name"]},
            {"action": "set_limit", "value": 5},
        ],
    }).json()

    assert data["success"] is True
    assert data["applied"] == 3
    assert data["sql"] == "SELECT customers.name\nFROM customers\nLIMIT 5;"


def test_replay_rejection(shop_schema):
    """Rejected actions are listed and mark the response unsuccessful."""
    data = client.post("/api/replay", json={
        "schema": shop_schema,
        "actions": [
            {"action": "add_table", "name": "customers"},
            {"action": "set_alias", "key": "customers", "alias": "c"},
            {"action": "add_table", "name": "customers"},
        ],
    }).json()

    assert data["success"] is False
    assert data["rejected"][0]["index"] == 2
    assert data["state"]["tables"][0]["alias"] == "c"


def test_format():
    """Formatting returns pretty SQL and a one-line preview."""
    data = client.post("/api/format", json={"sql": "select a,\n  b from t"}).json()
    assert data["success"] is True
    assert data["sql"] == "SELECT\n    a,\n    b\nFROM\n    t"
    assert data["preview"] == "select a, b from t"
