"""
Resource query controller and filter reconciler.

One controller drives one list view. Every change of its FilterState
value starts a fetch cycle:

1. result goes to loading, previous error / field errors are cleared
2. parameters are built from the filters (per_page clamped on the way out)
3. GET with the session token as bearer
4. the outcome is folded into the result; loading always ends

Cycles are tagged with a generation number. Only the newest cycle may
write the result, so the result always reflects the latest filters even
when an older request finishes last.

The FilterReconciler listens for results that carry field errors and
resets only the named filter fields to their defaults, which starts the
next cycle.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Executor, Future
from dataclasses import dataclass, replace
from typing import Any, Generic, Optional, TypeVar

from src.exceptions import TransportError
from src.filters import FilterState, Filters, clamp_per_page
from src.logging_config import LogLevel, log_event
from src.resources import ResourceSpec
from src.transport import ApiClient, NotFound, Ok, Outcome, TransportFailure, ValidationFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    items: tuple[T, ...] = ()
    total: int = 0
    loading: bool = False
    error: Optional[str] = None
    field_errors: Optional[Mapping[str, list[str]]] = None


ResultListener = Callable[[QueryResult, QueryResult], None]


def page_count(total: Any, per_page: Any, max_per_page: Optional[int] = None) -> int:
    """ceil(total / per_page) using the page size actually sent, never less than 1."""
    try:
        pages = math.ceil(total / clamp_per_page(per_page, max_per_page))
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, pages)


class ResourceQueryController(Generic[T]):
    """
    Fetch-and-normalize loop for one list resource.

    Args:
        client: ApiClient used for the GET.
        resource: Which list to fetch and how to parse it.
        filters: FilterState to follow; every value change triggers refresh().
        token_provider: Returns the current bearer token.
        language: Sent as Accept-Language for localized resources.
        executor: When given, cycles run on it and refresh() returns the Future.
        max_per_page: Upper bound applied to per_page on the way out.
    """

    def __init__(
        self,
        client: ApiClient,
        resource: ResourceSpec[Any],
        filters: FilterState[Filters],
        token_provider: Callable[[], Optional[str]],
        *,
        language: Optional[str] = None,
        executor: Optional[Executor] = None,
        max_per_page: Optional[int] = None,
    ) -> None:
        self._client = client
        self._resource = resource
        self._filters = filters
        self._token_provider = token_provider
        self._language = language
        self._executor = executor
        self._max_per_page = max_per_page

        self._lock = threading.RLock()
        self._generation = 0
        self._result: QueryResult[T] = QueryResult()
        self._listeners: list[ResultListener] = []
        self._closed = False
        self._unsubscribe_filters = filters.subscribe(self._on_filters_changed)

    @property
    def resource(self) -> ResourceSpec[Any]:
        return self._resource

    @property
    def result(self) -> QueryResult[T]:
        return self._result

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: ResultListener) -> Callable[[], None]:
        """Register listener(previous, current), called after each result change."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _on_filters_changed(self, previous: Filters, current: Filters) -> None:
        self.refresh()

    # ------------------------------------------------------------------
    # Fetch cycle
    # ------------------------------------------------------------------

    def refresh(self) -> Optional[Future]:
        """
        Start a fetch cycle for the current filters.

        Returns:
            The Future of the background cycle when an executor is set,
            otherwise None (the cycle has already completed).
        """
        with self._lock:
            if self._closed:
                return None
            self._generation += 1
            generation = self._generation
            filters = self._filters.value
            previous = self._result
            self._result = replace(previous, loading=True, error=None, field_errors=None)
            current = self._result

        self._notify(generation, previous, current)

        if self._executor is not None:
            return self._executor.submit(self._run, generation, filters)
        self._run(generation, filters)
        return None

    def _run(self, generation: int, filters: Filters) -> None:
        outcome: Outcome = TransportFailure("request_failed")
        try:
            outcome = self._fetch(filters)
        finally:
            self._complete(generation, outcome)

    def _fetch(self, filters: Filters) -> Outcome:
        resource = self._resource
        try:
            outcome = self._client.fetch(
                "GET",
                resource.path,
                params=resource.params_for(filters, max_per_page=self._max_per_page),
                headers=resource.headers_for(self._language),
                token=self._token_provider(),
            )
            if isinstance(outcome, Ok):
                return Ok(resource.parse_page(outcome.data), outcome.status_code)
            return outcome
        except TransportError as e:
            logger.warning("%s: %s", resource.name, e)
            return TransportFailure(e.transport_code)
        except Exception:
            logger.exception("Unexpected failure fetching %s", resource.name)
            return TransportFailure("request_failed")

    def _complete(self, generation: int, outcome: Outcome) -> None:
        with self._lock:
            if generation != self._generation:
                current_generation = self._generation
                stale = True
            else:
                stale = False
                previous = self._result
                self._result = self._apply(previous, outcome)
                current = self._result

        if stale:
            log_event(
                "query_discarded",
                level=LogLevel.DEBUG,
                resource=self._resource.name,
                generation=generation,
                current_generation=current_generation,
            )
            return

        log_event(
            "query_completed",
            level=LogLevel.DEBUG,
            resource=self._resource.name,
            outcome=type(outcome).__name__,
            total=current.total,
        )
        self._notify(generation, previous, current)

    @staticmethod
    def _apply(previous: QueryResult[T], outcome: Outcome) -> QueryResult[T]:
        if isinstance(outcome, Ok):
            items, total = outcome.data
            return QueryResult(items=tuple(items), total=total)
        if isinstance(outcome, ValidationFailure):
            return replace(previous, loading=False, field_errors=dict(outcome.field_errors))
        if isinstance(outcome, NotFound):
            return QueryResult()
        return replace(previous, loading=False, error=outcome.code)

    def _notify(self, generation: int, previous: QueryResult[T], current: QueryResult[T]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            # stop once a listener has started a newer cycle
            if generation != self._generation:
                break
            listener(previous, current)

    def close(self) -> None:
        """Stop following the filters and ignore any cycle still in flight."""
        with self._lock:
            self._closed = True
            self._generation += 1
        self._unsubscribe_filters()


class FilterReconciler:
    """
    Feeds server-side field errors back into the filters.

    When a result's field_errors becomes non-null, each error key is mapped
    to filter fields (see Filters.fields_for_error) and only those fields
    are reset to their defaults. Keys that name no filter field are
    ignored. If resetting changes nothing, no new cycle starts.
    """

    def __init__(self, filters: FilterState[Filters], controller: ResourceQueryController[Any]) -> None:
        self._filters = filters
        self._unsubscribe = controller.subscribe(self._on_result)

    def _on_result(self, previous: QueryResult, current: QueryResult) -> None:
        if current.field_errors is None or previous.field_errors is not None:
            return
        self.reconcile(current.field_errors)

    def reconcile(self, field_errors: Mapping[str, Any]) -> bool:
        """Reset the fields named by field_errors. Returns True if the filters changed."""
        filters_type = type(self._filters.value)
        names: list[str] = []
        for key in field_errors:
            fields = filters_type.fields_for_error(key)
            if not fields:
                logger.debug("Ignoring field error for unknown filter %r", key)
            for name in fields:
                if name not in names:
                    names.append(name)
        if not names:
            return False
        return self._filters.reset_fields(names)

    def close(self) -> None:
        self._unsubscribe()
