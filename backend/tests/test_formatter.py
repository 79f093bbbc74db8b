"""Unit tests for SQL formatting helpers."""

from sql_utils import format_sql, truncate_sql


class TestFormatSql:
    """Test the pretty printer."""

    def test_clauses_and_indentation(self):
        """Clauses on their own lines with indented bodies"""
        sql = "select a, b from t where x = 1 and y between 1 and 5 order by a limit 10"
        assert format_sql(sql) == (
            "SELECT\n"
            "    a,\n"
            "    b\n"
            "FROM\n"
            "    t\n"
            "WHERE\n"
            "    x = 1\n"
            "    AND y BETWEEN 1 AND 5\n"
            "ORDER BY\n"
            "    a\n"
            "LIMIT\n"
            "    10"
        )

    def test_join_on_same_line(self):
        """JOIN gets its own line and ON stays with it"""
        sql = "select * from a left outer join b on a.id = b.a_id"
        assert format_sql(sql) == (
            "SELECT\n"
            "    *\n"
            "FROM\n"
            "    a\n"
            "LEFT OUTER JOIN b ON a.id = b.a_id"
        )

    def test_string_literals_untouched(self):
        """Keywords and commas inside strings are left alone"""
        sql = "select * from t where name = 'select, from'"
        assert format_sql(sql).endswith("WHERE\n    name = 'select, from'")

    def test_function_arguments_not_split(self):
        """Commas inside parentheses stay on one line"""
        formatted = format_sql("select concat(a, b), c from t")
        assert "    CONCAT(a, b),\n    c" in formatted

    def test_qualified_keyword_names_kept(self):
        """Column names that are keywords keep their case after a qualifier"""
        assert format_sql("select t.count, t.key from t") == (
            "SELECT\n"
            "    t.count,\n"
            "    t.key\n"
            "FROM\n"
            "    t"
        )

    def test_empty(self):
        """Blank input formats to an empty string"""
        assert format_sql("   ") == ""


class TestTruncateSql:
    """Test list-display truncation."""

    def test_short_sql_collapsed(self):
        """Whitespace is collapsed even when no cut is needed"""
        assert truncate_sql("SELECT  *\n  FROM t", 80) == "SELECT * FROM t"

    def test_long_sql_cut(self):
        """Long SQL is cut and marked with an ellipsis"""
        assert truncate_sql("SELECT * FROM customers", 10) == "SELECT * F..."
