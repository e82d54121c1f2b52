"""
Scope guard for temporary provider / model overrides.

An object that supports scoped overrides implements ``enter_scope()``,
which returns a token capturing its current selection, and
``exit_scope(token)``, which puts that selection back. ``exit_scope`` must
not raise: restoration problems are logged by the implementation.

Usage:
    with scoped(text_service, image_service):
        text_service.switch_provider("openai")
        image_service.switch_provider("openai")
        ...
    # both services are back on their previous selection here
"""

from contextlib import contextmanager
from typing import Any, Iterator, Protocol


class SupportsScope(Protocol):
    def enter_scope(self) -> Any: ...

    def exit_scope(self, token: Any) -> None: ...


@contextmanager
def scoped(*targets: SupportsScope) -> Iterator[None]:
    """Capture every target on entry and restore them, newest first, on exit."""
    entered: list[tuple[SupportsScope, Any]] = []
    try:
        for target in targets:
            entered.append((target, target.enter_scope()))
        yield
    finally:
        for target, token in reversed(entered):
            target.exit_scope(token)
