# tests/test_query_builder.py
import pytest

from app.search.query_builder import SelectQuery, sql
from .test_utils import print_test_name, print_test_result


class TestSelectQuery:
    """Rendu des requêtes et numérotation des placeholders."""

    def test_render_numbers_params_in_order(self):
        test_name = "test_render_numbers_params_in_order"
        print_test_name(test_name)
        try:
            query, args = (
                SelectQuery(table="sales sale")
                .select(sql("sale.id"), sql("sale.title"))
                .where(sql("sale.category = {category}", category="food"))
                .where(sql('sale."discountPercentage" >= {min_discount}', min_discount=20))
                .order('sale."createdAt" DESC')
                .paginate(10, 5)
                .render()
            )
            assert "FROM sales sale" in query
            assert "sale.category = $1" in query
            assert 'sale."discountPercentage" >= $2' in query
            assert 'ORDER BY sale."createdAt" DESC' in query
            assert "LIMIT $3" in query
            assert "OFFSET $4" in query
            assert args == ["food", 20, 10, 5]
            print_test_result(test_name, passed=True)
        except Exception as e:
            print_test_result(test_name, passed=False)
            raise e

    def test_shared_param_is_bound_once(self):
        test_name = "test_shared_param_is_bound_once"
        print_test_name(test_name)
        try:
            query, args = (
                SelectQuery(table="stores store")
                .select(sql("ST_Distance(store.location, ST_Point({lng}, {lat})) AS distance", lng=34.7, lat=32.0))
                .where(sql("ST_DWithin(store.location, ST_Point({lng}, {lat}), {radius})", lng=34.7, lat=32.0, radius=500.0))
                .render()
            )
            assert query.count("ST_Point($1, $2)") == 2
            assert "$3)" in query
            assert args == [34.7, 32.0, 500.0]
            print_test_result(test_name, passed=True)
        except Exception as e:
            print_test_result(test_name, passed=False)
            raise e

    def test_conflicting_values_for_same_name_rejected(self):
        select = (
            SelectQuery(table="sales sale")
            .where(sql("a = {x}", x=1), sql("b = {x}", x=2))
        )
        with pytest.raises(ValueError):
            select.render()

    def test_no_predicates_no_where(self):
        query, args = SelectQuery(table="sales sale").render()
        assert query == "SELECT *\nFROM sales sale"
        assert args == []
