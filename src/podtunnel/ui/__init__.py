"""Console collaborator contracts and the UI task queue."""

from .dispatch import UIQueue
from .interfaces import Console, Dialogs, Flash, Listing, UIThread
from .keys import KEY_SHIFT_F, KeyAction, KeyActions

__all__ = [
    "Console",
    "Dialogs",
    "Flash",
    "Listing",
    "UIThread",
    "UIQueue",
    "KeyAction",
    "KeyActions",
    "KEY_SHIFT_F",
]
