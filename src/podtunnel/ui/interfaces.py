"""Protocol interfaces for the console surfaces the port-forward flow drives."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol


class Dialogs(Protocol):
    """Modal surface of the console."""

    def show_selection(
        self, options: Sequence[str], on_confirm: Callable[[Any], None]
    ) -> None:
        """Present options; ``on_confirm`` receives the user's selection."""
        ...

    def show_confirmation(self, message: str, on_confirm: Callable[[], None]) -> None:
        """Ask a yes/no question; ``on_confirm`` runs on yes."""
        ...

    def dismiss(self) -> None:
        """Close any open modal."""
        ...


class Flash(Protocol):
    """Status line of the console."""

    def info(self, msg: str) -> None: ...

    def error(self, err: BaseException | str) -> None: ...


class Listing(Protocol):
    """The resource table currently on screen."""

    def refresh(self) -> None: ...


class UIThread(Protocol):
    """Serialized entry point back onto the UI loop."""

    def run_on_ui_thread(self, fn: Callable[[], None]) -> None: ...


class Console(Protocol):
    """Everything the port-forward flow needs from the hosting view."""

    @property
    def dialogs(self) -> Dialogs: ...

    @property
    def flash(self) -> Flash: ...

    @property
    def listing(self) -> Listing: ...

    def run_on_ui_thread(self, fn: Callable[[], None]) -> None: ...
