"""
Navigation primitive consumed by the guard and the fault classifier.

The rendering layer supplies the real implementation (see
src.ui.session.StreamlitNavigator); MemoryNavigator keeps a history list
and is what scripts and tests use.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class Navigator(Protocol):
    @property
    def current_path(self) -> str: ...

    def navigate(self, path: str, *, replace: bool = False, state: Optional[dict[str, Any]] = None) -> None: ...


@dataclass
class NavigationEntry:
    path: str
    state: Optional[dict[str, Any]] = None


@dataclass
class MemoryNavigator:
    """History-stack navigator."""

    history: list[NavigationEntry] = field(default_factory=lambda: [NavigationEntry("/")])

    @property
    def current_path(self) -> str:
        return self.history[-1].path

    @property
    def current_state(self) -> Optional[dict[str, Any]]:
        return self.history[-1].state

    def navigate(self, path: str, *, replace: bool = False, state: Optional[dict[str, Any]] = None) -> None:
        entry = NavigationEntry(path, state)
        if replace:
            self.history[-1] = entry
        else:
            self.history.append(entry)

    def back(self) -> str:
        if len(self.history) > 1:
            self.history.pop()
        return self.current_path
