"""Unit tests for foreign-key driven join suggestions."""

from query_builder import QueryModel, JoinSpec, suggest_joins


def endpoints(join):
    return {(join.left_table, join.left_column), (join.right_table, join.right_column)}


class TestForeignKeySuggestions:
    """Test suggestions from declared foreign keys."""

    def test_customers_orders(self, shop_catalog):
        """Exactly one suggestion, whichever table was added first"""
        for order in (["customers", "orders"], ["orders", "customers"]):
            model = QueryModel(catalog=shop_catalog)
            for name in order:
                model.add_table(name)

            suggestions = suggest_joins(model)

            assert len(suggestions) == 1
            assert endpoints(suggestions[0]) == {("customers", "id"), ("orders", "customer_id")}
            assert suggestions[0].type == "INNER"

    def test_fk_side_on_the_left(self, shop_catalog):
        """The referencing column is the left side"""
        model = QueryModel(catalog=shop_catalog)
        model.add_table("customers")
        model.add_table("orders")
        join = suggest_joins(model)[0]
        assert (join.left_table, join.left_column) == ("orders", "customer_id")

    def test_relationship_rows(self, shop_catalog):
        """Foreign keys from the relationships list are used too"""
        model = QueryModel(catalog=shop_catalog)
        model.add_table("orders")
        model.add_table("products")
        model.add_table("order_items")

        suggestions = suggest_joins(model)

        assert [endpoints(j) for j in suggestions] == [
            {("order_items", "order_id"), ("orders", "id")},
            {("order_items", "product_id"), ("products", "id")},
        ]

    def test_uses_table_keys(self, shop_catalog):
        """Suggestions reference aliases, not table names"""
        model = QueryModel(catalog=shop_catalog)
        model.add_table("customers")
        model.add_table("orders")
        model.set_alias("customers", "c")
        model.set_alias("orders", "o")
        assert endpoints(suggest_joins(model)[0]) == {("c", "id"), ("o", "customer_id")}

    def test_self_join(self, employees_catalog):
        """A self-referencing key suggests both directions"""
        model = QueryModel(catalog=employees_catalog)
        model.add_table("employees")
        model.add_table("employees", force_self_join=True)

        suggestions = suggest_joins(model)

        assert [endpoints(j) for j in suggestions] == [
            {("employees", "manager_id"), ("employees_2", "id")},
            {("employees_2", "manager_id"), ("employees", "id")},
        ]


class TestDeduplication:
    """Test suppression of existing and repeated joins."""

    def test_existing_join_suppresses(self, shop_catalog):
        """A join already in the model is not suggested, in either orientation"""
        model = QueryModel(catalog=shop_catalog)
        model.add_table("customers")
        model.add_table("orders")
        model.add_join(JoinSpec(left_table="customers", left_column="ID",
                                right_table="orders", right_column="customer_id"))
        assert suggest_joins(model) == []

    def test_suggestions_do_not_mutate(self, shop_catalog):
        """Suggesting leaves the model untouched"""
        model = QueryModel(catalog=shop_catalog)
        model.add_table("customers")
        model.add_table("orders")
        before = model.to_state()
        suggest_joins(model)
        assert model.to_state() == before


class TestNamingHeuristic:
    """Test the <table>_<pk> naming fallback."""

    def test_naming_convention(self, library_catalog):
        """book.author_id matches author's primary key without a declared FK"""
        model = QueryModel(catalog=library_catalog)
        model.add_table("book")
        model.add_table("author")

        suggestions = suggest_joins(model)

        assert len(suggestions) == 1
        join = suggestions[0]
        assert (join.left_table, join.left_column, join.right_table, join.right_column) == (
            "book", "Author_Id", "author", "id"
        )


class TestWithoutCatalog:
    """Test degraded mode."""

    def test_no_catalog(self):
        """Nothing to suggest without schema metadata"""
        model = QueryModel()
        model.add_table("a")
        model.add_table("b")
        assert suggest_joins(model) == []

    def test_explicit_catalog_argument(self, shop_catalog):
        """A catalog passed in overrides the model's missing one"""
        model = QueryModel()
        model.add_table("customers")
        model.add_table("orders")
        assert len(suggest_joins(model, shop_catalog)) == 1
