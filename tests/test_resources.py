"""
Tests for src.resources module.
"""

import pytest


class TestParsePage:
    def test_tickets(self):
        from src.resources import ADMIN_TICKETS, Ticket

        items, total = ADMIN_TICKETS.parse_page(
            {"data": [{"id": 1, "status": "issued", "qr_filename": "1.png"}], "meta": {"total": 12}}
        )

        assert total == 12
        assert isinstance(items[0], Ticket)
        assert items[0].status == "issued"
        assert items[0].model_dump()["qr_filename"] == "1.png"

    def test_users_nested_items(self):
        from src.resources import USERS

        items, total = USERS.parse_page({"data": {"users": [{"id": 3, "email": "a@b.c"}]}, "meta": {"total": 1}})

        assert [u.email for u in items] == ["a@b.c"]
        assert total == 1

    def test_products_pagination_total(self):
        from src.resources import PRODUCTS

        items, total = PRODUCTS.parse_page({"data": [{"id": 9, "name": "Gala", "price": 20}], "pagination": {"total": 40}})

        assert items[0].price == 20.0
        assert total == 40

    def test_user_tickets_total_falls_back_to_count(self):
        from src.resources import USER_TICKETS

        _, total = USER_TICKETS.parse_page({"data": [{"id": 1}, {"id": 2}]})

        assert total == 2

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            {"data": []},
            {"data": {"not": "a list"}, "meta": {"total": 1}},
            {"data": [{"status": "no id"}], "meta": {"total": 1}},
            {"data": [], "meta": {"total": "many"}},
        ],
    )
    def test_bad_shapes_raise_bad_response(self, payload):
        from src.exceptions import TransportError
        from src.resources import ADMIN_TICKETS

        with pytest.raises(TransportError) as exc_info:
            ADMIN_TICKETS.parse_page(payload)

        assert exc_info.value.error_code == "bad_response"


class TestResourceSpec:
    def test_fixed_params_follow_filters(self):
        from src.filters import UserFilters
        from src.resources import EMPLOYEES, USERS

        filters = UserFilters(lastname="Doe")

        assert USERS.params_for(filters) == {"per_page": 5, "page": 1, "lastname": "Doe", "role": "user"}
        assert EMPLOYEES.params_for(filters)["role"] == "employee"
        assert EMPLOYEES.name == "employees"

    def test_localized_headers(self):
        from src.resources import ADMIN_TICKETS, SALES_REPORTS

        assert SALES_REPORTS.headers_for("fr") == {"Accept-Language": "fr"}
        assert SALES_REPORTS.headers_for(None) == {}
        assert ADMIN_TICKETS.headers_for("fr") == {}

    def test_registry(self):
        from src.resources import PAYMENTS, get_resource

        assert get_resource("payments") is PAYMENTS
        with pytest.raises(KeyError):
            get_resource("invoices")
