"""Named notifications published by a Video.

Viewers and other listeners subscribe to a video's :class:`EventChannel`;
the core never imports any viewer code.
"""

import logging
from collections import defaultdict
from enum import Enum
from typing import Callable, Sequence

__all__ = ['VideoEvent', 'EventChannel', 'DisplaySession']

logger = logging.getLogger(__name__)


class VideoEvent(str, Enum):
    GEOMETRY_RESET = "geometry-reset"
    DATA_CHANGED = "data-changed"
    TRACK_CHANGED = "track-changed"
    TRACKS_HIDDEN = "tracks-hidden"
    TRACKS_SHOWN = "tracks-shown"


class EventChannel:
    """Synchronous publish/subscribe channel.

    Listener exceptions are not caught; a failing listener aborts the
    publishing call like any other error on the caller's stack.
    """

    def __init__(self):
        self._listeners = defaultdict(list)

    def subscribe(self, event, callback: Callable) -> Callable:
        """Register ``callback(event, source)`` for ``event``; returns the callback."""
        event = VideoEvent(event)
        if callback not in self._listeners[event]:
            self._listeners[event].append(callback)
        return callback

    def unsubscribe(self, event, callback: Callable) -> None:
        event = VideoEvent(event)
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def listeners(self, event) -> list:
        return list(self._listeners[VideoEvent(event)])

    def publish(self, event, source=None) -> int:
        """Call every listener of ``event``; returns how many were called."""
        event = VideoEvent(event)
        listeners = list(self._listeners[event])
        for callback in listeners:
            callback(event, source)
        if listeners:
            logger.debug("Published %s to %d listener(s)", event.value, len(listeners))
        return len(listeners)

    def clear(self) -> None:
        self._listeners.clear()


class DisplaySession:
    """Hides and re-shows track widgets around geometry changes.

    A widget is any object with a boolean ``visible`` attribute.
    """

    def __init__(self, channel: EventChannel, source=None):
        self.channel = channel
        self.source = source
        self._hidden = []

    def hide_tracks(self, tracks: Sequence) -> bool:
        """Hide visible widgets; returns True if any widget was visible."""
        self._hidden = []
        for track in tracks:
            widget = getattr(track, "widget", None)
            if widget is not None and getattr(widget, "visible", False):
                widget.visible = False
                self._hidden.append(widget)
        if self._hidden:
            self.channel.publish(VideoEvent.TRACKS_HIDDEN, self.source)
        return bool(self._hidden)

    def show_tracks(self, tracks: Sequence) -> None:
        """Show the widgets of ``tracks`` hidden by the last :meth:`hide_tracks`.

        Widgets of tracks that are no longer in ``tracks`` stay hidden.
        """
        hidden = {id(widget) for widget in self._hidden}
        shown = 0
        for track in tracks:
            widget = getattr(track, "widget", None)
            if widget is not None and id(widget) in hidden:
                widget.visible = True
                hidden.discard(id(widget))
                shown += 1
        if shown:
            self.channel.publish(VideoEvent.TRACKS_SHOWN, self.source)
        self._hidden = []
