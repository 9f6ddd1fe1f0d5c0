"""
Page-level composition of a list view: filters, controller, reconciler
and pagination.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Executor, Future
from dataclasses import fields
from typing import Any, Optional

from src.filters import Filters, FilterState
from src.query import FilterReconciler, QueryResult, ResourceQueryController, page_count
from src.resources import ResourceSpec
from src.transport import ApiClient


class ResourceListPage:
    """
    One paginated, filterable list.

    Example:
        page = ResourceListPage(client, ADMIN_TICKETS, lambda: store.token)
        page.apply_filters(status="issued")
        page.set_page(2)
        page.result.items
    """

    def __init__(
        self,
        client: ApiClient,
        resource: ResourceSpec[Any],
        token_provider: Callable[[], Optional[str]],
        *,
        initial: Optional[Filters] = None,
        language: Optional[str] = None,
        executor: Optional[Executor] = None,
        max_per_page: Optional[int] = None,
        autoload: bool = True,
    ) -> None:
        self.resource = resource
        self.max_per_page = max_per_page
        self._initial = initial or resource.default_filters()
        self.filters: FilterState[Filters] = FilterState(self._initial)
        self.controller: ResourceQueryController[Any] = ResourceQueryController(
            client,
            resource,
            self.filters,
            token_provider,
            language=language,
            executor=executor,
            max_per_page=max_per_page,
        )
        self.reconciler = FilterReconciler(self.filters, self.controller)
        if autoload:
            self.controller.refresh()

    @property
    def result(self) -> QueryResult[Any]:
        return self.controller.result

    @property
    def page_count(self) -> int:
        return page_count(self.result.total, self.filters.value.per_page, self.max_per_page)

    def apply_filters(self, **changes: Any) -> bool:
        """
        Change filter fields. Any change other than `page` alone also
        sends the user back to page 1.

        Returns True if the filters changed (and a fetch started).
        """
        unknown = set(changes) - {f.name for f in fields(self.filters.value)}
        if unknown:
            raise TypeError(f"Unknown filter fields for {self.resource.name}: {', '.join(sorted(unknown))}")
        if set(changes) - {"page"}:
            changes.setdefault("page", 1)
        return self.filters.update(**changes)

    def set_page(self, page: int) -> bool:
        return self.filters.update(page=page)

    def reset(self) -> bool:
        return self.filters.set(self._initial)

    def retry(self) -> Optional[Future]:
        """Re-issue the query for the current filters."""
        return self.controller.refresh()

    def close(self) -> None:
        self.reconciler.close()
        self.controller.close()
