"""
List resources exposed by the admin API.

A ResourceSpec says where a list lives, which filters drive it, and where
the items and total sit in the response body. Items are parsed into
pydantic models that keep unknown fields (extra="allow"), so payload
changes on the server do not break list views.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.config import ConfigDict

from src.exceptions import TransportError
from src.filters import (
    Filters,
    PaymentFilters,
    ProductFilters,
    ReportFilters,
    TicketFilters,
    UserFilters,
    UserTicketFilters,
)

# =============================================================================
# Item models
# =============================================================================


class ProductSnapshot(BaseModel):
    model_config = ConfigDict(extra="allow")

    product_id: int | None = None
    product_name: str | None = None
    ticket_type: str | None = None
    ticket_places: int | None = None
    quantity: int | None = None
    unit_price: float | None = None


class Ticket(BaseModel):
    """A ticket as listed by the admin and user ticket endpoints."""

    model_config = ConfigDict(extra="allow")

    id: int
    status: str = Field(default="", description="issued, used, refunded or cancelled")
    token: str | None = None
    payment_uuid: str | None = None
    product_snapshot: ProductSnapshot | None = None
    used_at: str | None = None
    refunded_at: str | None = None
    cancelled_at: str | None = None


class Payment(BaseModel):
    model_config = ConfigDict(extra="allow")

    uuid: str
    status: str = ""
    amount: float | None = None
    payment_method: str | None = None
    refunded_amount: float | None = None
    created_at: str | None = None


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    firstname: str = ""
    lastname: str = ""
    email: str = ""
    role: str | None = None
    is_active: bool | None = None
    twofa_enabled: bool | None = None


class ProductSales(BaseModel):
    """One row of the sales report: how many tickets a product sold."""

    model_config = ConfigDict(extra="allow")

    product_id: int
    product_name: str | None = None
    sales_count: int = 0


class Product(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str = ""
    price: float | None = None
    sale: float | None = None
    stock_quantity: int | None = None
    product_details: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Resource specs
# =============================================================================

M = TypeVar("M", bound=BaseModel)


def _dig(payload: Any, path: str) -> Any:
    value = payload
    for key in path.split("."):
        if not isinstance(value, Mapping) or key not in value:
            raise KeyError(path)
        value = value[key]
    return value


@dataclass(frozen=True)
class ResourceSpec(Generic[M]):
    """
    Description of one paginated list endpoint.

    Attributes:
        name: Registry key.
        path: API path.
        item_model: Pydantic model for one item.
        filters_type: Filters dataclass driving the query.
        items_path: Dotted path to the item list in the response body.
        total_path: Dotted path to the total count.
        total_from_items: Use len(items) when the total is missing.
        fixed_params: Parameters sent with every request (after filters).
        localized: Send Accept-Language with the request.
    """

    name: str
    path: str
    item_model: type[M]
    filters_type: type[Filters]
    items_path: str = "data"
    total_path: str = "meta.total"
    total_from_items: bool = False
    fixed_params: Mapping[str, Any] = field(default_factory=dict)
    localized: bool = False

    def default_filters(self, **overrides: Any) -> Filters:
        return self.filters_type(**overrides)

    def with_params(self, **params: Any) -> ResourceSpec[M]:
        """Copy of this spec with extra fixed parameters (e.g. a forced role)."""
        return replace(self, fixed_params={**self.fixed_params, **params})

    def params_for(self, filters: Filters, *, max_per_page: Optional[int] = None) -> dict[str, Any]:
        params = filters.to_params(max_per_page=max_per_page)
        params.update(self.fixed_params)
        return params

    def headers_for(self, language: Optional[str]) -> dict[str, str]:
        if self.localized and language:
            return {"Accept-Language": language}
        return {}

    def parse_page(self, payload: Any) -> tuple[list[M], int]:
        """
        Extract (items, total) from a list response body.

        Raises:
            TransportError: With code "bad_response" when the body does not
                have the expected shape.
        """
        try:
            raw_items = _dig(payload, self.items_path)
            if not isinstance(raw_items, list):
                raise TypeError(f"{self.items_path} is not a list")
            items = [self.item_model.model_validate(item) for item in raw_items]
            try:
                total = int(_dig(payload, self.total_path))
            except KeyError:
                if not self.total_from_items:
                    raise
                total = len(items)
        except (KeyError, TypeError, ValueError, PydanticValidationError) as e:
            raise TransportError("bad_response", reason=f"{self.name}: {e}", path=self.path) from e
        return items, total


ADMIN_TICKETS: ResourceSpec[Ticket] = ResourceSpec(
    name="admin_tickets",
    path="/api/tickets",
    item_model=Ticket,
    filters_type=TicketFilters,
)

PAYMENTS: ResourceSpec[Payment] = ResourceSpec(
    name="payments",
    path="/api/payments",
    item_model=Payment,
    filters_type=PaymentFilters,
)

USERS: ResourceSpec[User] = ResourceSpec(
    name="users",
    path="/api/users",
    item_model=User,
    filters_type=UserFilters,
    items_path="data.users",
    fixed_params={"role": "user"},
)

EMPLOYEES: ResourceSpec[User] = replace(USERS.with_params(role="employee"), name="employees")

SALES_REPORTS: ResourceSpec[ProductSales] = ResourceSpec(
    name="sales_reports",
    path="/api/tickets/admin/sales",
    item_model=ProductSales,
    filters_type=ReportFilters,
    localized=True,
)

PRODUCTS: ResourceSpec[Product] = ResourceSpec(
    name="products",
    path="/api/products/all",
    item_model=Product,
    filters_type=ProductFilters,
    total_path="pagination.total",
    localized=True,
)

USER_TICKETS: ResourceSpec[Ticket] = ResourceSpec(
    name="user_tickets",
    path="/api/tickets/user",
    item_model=Ticket,
    filters_type=UserTicketFilters,
    total_from_items=True,
)

RESOURCES: dict[str, ResourceSpec[Any]] = {
    spec.name: spec
    for spec in (ADMIN_TICKETS, PAYMENTS, USERS, EMPLOYEES, SALES_REPORTS, PRODUCTS, USER_TICKETS)
}


def get_resource(name: str) -> ResourceSpec[Any]:
    try:
        return RESOURCES[name]
    except KeyError:
        raise KeyError(f"Unknown resource: {name!r} (known: {', '.join(sorted(RESOURCES))})") from None
