"""
List filters.

Each list resource has a frozen Filters dataclass whose field defaults are
the values the reconciler restores when the server rejects a field. Field
metadata controls how a value goes on the wire:

- param: query parameter name (defaults to the field name)
- always: send even when empty
- encode: value mapping applied before sending
- resets: companion fields reset together with this one

FilterState owns the current Filters value for one page and notifies
subscribers only when the value actually changes.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import MISSING, Field, dataclass, field, fields, replace
from typing import Any, Generic, Optional, TypeVar


def filter_field(
    default: Any,
    *,
    param: Optional[str] = None,
    always: bool = False,
    encode: Optional[Callable[[Any], Any]] = None,
    resets: tuple[str, ...] = (),
) -> Any:
    metadata = {"param": param, "always": always, "encode": encode, "resets": resets}
    return field(default=default, metadata=metadata)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def clamp_per_page(value: Any, max_per_page: Optional[int] = None) -> int:
    """Clamp a stored per_page value for transmission: at least 1, at most max_per_page."""
    try:
        per_page = int(value)
    except (TypeError, ValueError):
        per_page = 1
    per_page = max(1, per_page)
    if max_per_page is not None:
        per_page = min(per_page, max_per_page)
    return per_page


@dataclass(frozen=True)
class Filters:
    """Base for per-resource filters. per_page is stored as given and clamped on send."""

    per_page: int = 5
    page: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.page, int) or self.page < 1:
            raise ValueError(f"page must be a positive integer, got {self.page!r}")

    @classmethod
    def defaults(cls) -> dict[str, Any]:
        values = {}
        for f in fields(cls):
            if f.default is not MISSING:
                values[f.name] = f.default
            elif f.default_factory is not MISSING:
                values[f.name] = f.default_factory()
        return values

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def fields_for_error(cls, key: str) -> tuple[str, ...]:
        """
        Map a server error key to the filter fields it invalidates.

        The key may name a field or its query parameter. Companion fields
        declared with `resets` come along. Unknown keys map to nothing.
        """
        for f in fields(cls):
            if key in (f.name, _param_name(f)):
                return (f.name,) + tuple(f.metadata.get("resets", ()))
        return ()

    def with_defaults(self, names: Iterable[str]) -> Filters:
        """Copy with the named fields restored to their defaults; other fields keep their values."""
        defaults = self.defaults()
        changes = {name: defaults[name] for name in names if name in defaults}
        return replace(self, **changes) if changes else self

    def to_params(self, *, max_per_page: Optional[int] = None) -> dict[str, Any]:
        return build_params(self, max_per_page=max_per_page)


def _param_name(f: Field) -> str:
    return f.metadata.get("param") or f.name


def build_params(filters: Filters, *, max_per_page: Optional[int] = None) -> dict[str, Any]:
    """
    Build query parameters from a filters value.

    Empty values (None or "") are skipped unless the field is marked
    `always`. per_page is clamped; the filters value itself is untouched.
    """
    params: dict[str, Any] = {}
    for f in fields(filters):
        value = getattr(filters, f.name)
        if f.name == "per_page":
            params[_param_name(f)] = clamp_per_page(value, max_per_page)
            continue
        encode = f.metadata.get("encode")
        if encode is not None:
            value = encode(value)
        if _is_empty(value) and not f.metadata.get("always"):
            continue
        params[_param_name(f)] = value
    return params


# =============================================================================
# Per-resource filters
# =============================================================================


@dataclass(frozen=True)
class TicketFilters(Filters):
    status: str = ""
    user_id: Optional[int] = None


@dataclass(frozen=True)
class PaymentFilters(Filters):
    q: str = ""
    status: str = ""
    payment_method: str = ""


@dataclass(frozen=True)
class UserFilters(Filters):
    firstname: str = ""
    lastname: str = ""
    email: str = ""


@dataclass(frozen=True)
class ReportFilters(Filters):
    per_page: int = 10
    sort_by: str = filter_field("sales_count", always=True)
    sort_order: str = filter_field("desc", always=True)


PRODUCT_SORT_KEYS: Mapping[str, str] = {
    "name": "name",
    "price": "price",
    "date": "product_details->date",
}


def _product_sort_key(value: str) -> str:
    return PRODUCT_SORT_KEYS.get(value, value)


def _places(value: Optional[int]) -> Optional[int]:
    return value if value and value > 0 else None


@dataclass(frozen=True)
class ProductFilters(Filters):
    per_page: int = 15
    name: str = ""
    category: str = ""
    location: str = ""
    date: str = ""
    places: Optional[int] = filter_field(None, encode=_places)
    sort_by: str = filter_field("name", always=True, encode=_product_sort_key, resets=("order",))
    order: str = filter_field("asc", always=True)


@dataclass(frozen=True)
class UserTicketFilters(Filters):
    status: str = ""
    event_date_from: Optional[str] = None
    event_date_to: Optional[str] = None


# =============================================================================
# Filter state
# =============================================================================

F = TypeVar("F", bound=Filters)
FilterListener = Callable[[F, F], None]


class FilterState(Generic[F]):
    """
    Current filters for one list page.

    Changes are by value: writing an equal Filters value is a no-op and
    notifies nobody. Listeners get (previous, current) and are called
    outside the lock.
    """

    def __init__(self, initial: F) -> None:
        self._value = initial
        self._lock = threading.RLock()
        self._listeners: list[FilterListener] = []

    @property
    def value(self) -> F:
        return self._value

    def set(self, filters: F) -> bool:
        with self._lock:
            previous = self._value
            if filters == previous:
                return False
            self._value = filters
            listeners = list(self._listeners)
        for listener in listeners:
            listener(previous, filters)
        return True

    def update(self, **changes: Any) -> bool:
        return self.set(replace(self._value, **changes))

    def reset_fields(self, names: Iterable[str]) -> bool:
        return self.set(self._value.with_defaults(names))

    def subscribe(self, listener: FilterListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe
