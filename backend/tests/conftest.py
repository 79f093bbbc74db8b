"""Shared schema fixtures for query builder tests."""

import pytest
from query_builder import SchemaCatalog


SHOP_SCHEMA = {
    "database": "shop",
    "tables": [
        {
            "name": "customers",
            "primary_key": ["id"],
            "columns": [
                {"name": "id", "data_type": "int", "nullable": "NO", "key_type": "PRI"},
                {"name": "name", "data_type": "varchar", "nullable": "NO"},
                {"name": "email", "data_type": "varchar", "nullable": "YES", "key_type": "UNI"},
            ],
        },
        {
            "name": "orders",
            "primary_key": ["id"],
            "columns": [
                {"name": "id", "data_type": "int", "nullable": "NO", "key_type": "PRI"},
                {
                    "name": "customer_id", "data_type": "int", "nullable": "NO", "key_type": "MUL",
                    "foreign_key": {"to_table": "customers", "to_column": "id"},
                },
                {"name": "total", "data_type": "decimal", "nullable": "NO"},
                {"name": "created_at", "data_type": "datetime", "nullable": "YES"},
            ],
        },
        {
            "name": "products",
            "primary_key": ["id"],
            "columns": [
                {"name": "id", "data_type": "int", "nullable": "NO", "key_type": "PRI"},
                {"name": "name", "data_type": "varchar", "nullable": "NO"},
                {"name": "price", "data_type": "decimal", "nullable": "NO"},
            ],
        },
        {
            "name": "order_items",
            "primary_key": ["id"],
            "columns": [
                {"name": "id", "data_type": "int", "nullable": "NO", "key_type": "PRI"},
                {"name": "order_id", "data_type": "int", "nullable": "NO", "key_type": "MUL"},
                {"name": "product_id", "data_type": "int", "nullable": "NO", "key_type": "MUL"},
                {"name": "quantity", "data_type": "int", "nullable": "NO"},
            ],
        },
    ],
    # order_items foreign keys only come through the relationships list
    "relationships": [
        {"from_table": "order_items", "from_column": "order_id", "to_table": "orders", "to_column": "id"},
        {"from_table": "order_items", "from_column": "product_id", "to_table": "products", "to_column": "id"},
    ],
}

EMPLOYEES_SCHEMA = {
    "tables": [
        {
            "name": "employees",
            "primary_key": ["id"],
            "columns": [
                {"name": "id", "data_type": "int", "key_type": "PRI"},
                {"name": "name", "data_type": "varchar"},
                {
                    "name": "manager_id", "data_type": "int", "key_type": "MUL",
                    "foreign_key": {"table": "employees", "column": "id"},
                },
            ],
        },
    ],
}

LIBRARY_SCHEMA = {
    "tables": [
        {
            "name": "author",
            "columns": [
                {"name": "id", "data_type": "int", "key_type": "PRI"},
                {"name": "name", "data_type": "varchar"},
            ],
        },
        {
            "name": "book",
            "columns": [
                {"name": "id", "data_type": "int", "key_type": "PRI"},
                {"name": "title", "data_type": "varchar"},
                {"name": "Author_Id", "data_type": "int"},
            ],
        },
    ],
}

T_SCHEMA = {
    "tables": [
        {"name": "t", "columns": [{"name": "x", "data_type": "int"}]},
    ],
}


@pytest.fixture
def shop_schema():
    return SHOP_SCHEMA


@pytest.fixture
def shop_catalog():
    return SchemaCatalog.from_payload(SHOP_SCHEMA)


@pytest.fixture
def employees_catalog():
    return SchemaCatalog.from_payload(EMPLOYEES_SCHEMA)


@pytest.fixture
def library_catalog():
    return SchemaCatalog.from_payload(LIBRARY_SCHEMA)


@pytest.fixture
def t_catalog():
    return SchemaCatalog.from_payload(T_SCHEMA)
