"""Key bindings contributed to the hosting view's dispatch table."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

KEY_SHIFT_F = "shift-f"


class KeyAction(BaseModel):
    """A bound key: the hint label, its handler and whether the hint shows."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    label: str = Field(min_length=1, description="Menu hint")
    handler: Callable[..., Any] = Field(description="Called when the key fires")
    visible: bool = Field(default=True, description="Show in the menu hints")


class KeyActions(dict[str, KeyAction]):
    """Key to action table."""

    def add(self, actions: dict[str, KeyAction]) -> None:
        """Merge another table, later bindings win."""
        self.update(actions)

    def hints(self) -> list[tuple[str, str]]:
        """Visible ``(key, label)`` pairs, sorted by key."""
        return sorted((k, a.label) for k, a in self.items() if a.visible)

    def dispatch(self, key: str, *args: Any) -> Any:
        """Run the handler bound to ``key``.

        Raises:
            KeyError: If nothing is bound to the key
        """
        return self[key].handler(*args)
