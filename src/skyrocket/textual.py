"""Textual integration for Skyrocket. Opt-in — requires textual.

Room reactions usually refresh widgets, so they must run on the app thread
and must not query the DOM while the screen showing that room is being
rebuilt. Pausing is per room: an update for a paused room still patches the
view model, only the widget reaction is skipped.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# id(app) -> {room: pause depth}. _EVERY_ROOM pauses the whole app.
_paused_rooms: dict[int, dict[object, int]] = {}
_EVERY_ROOM = object()


@contextmanager
def pause(app, *rooms):
    """Suspend guarded reactions for ``rooms`` (every room if none given)."""
    paused = _paused_rooms.setdefault(id(app), {})
    keys = rooms or (_EVERY_ROOM,)
    for key in keys:
        paused[key] = paused.get(key, 0) + 1
    try:
        yield
    finally:
        for key in keys:
            paused[key] -= 1
            if not paused[key]:
                del paused[key]
        if not paused:
            _paused_rooms.pop(id(app), None)


def is_safe(app, room=None) -> bool:
    """Can a reaction for ``room`` query the widget tree right now?"""
    if not app.is_running:
        return False
    paused = _paused_rooms.get(id(app), ())
    return _EVERY_ROOM not in paused and (room is None or room not in paused)


def _call_on_app_thread(app, owner, fn, *args):
    # owner is the app thread ident, or None when it is unknown.
    if owner is not None and threading.get_ident() == owner:
        return fn(*args)
    return app.call_from_thread(fn, *args)


def subscribe(app, scope, room, reaction, *, options=None):
    """scope.subscribe() whose reaction is safe to touch Textual widgets.

    The reaction is skipped while the app or its room is paused, after the
    reactor is disposed, and while the app is not running. NoMatches from
    widget queries is swallowed. Calls from other threads are marshaled via
    call_from_thread.
    """
    owner = threading.get_ident()
    holder = []

    def _react(update):
        if holder and holder[0].disposed:
            return
        try:
            reaction(update)
        except NoMatches:
            pass

    def _guarded(update):
        if is_safe(app, room):
            _call_on_app_thread(app, owner, _react, update)

    if options is None:
        reactor = scope.subscribe(room, _guarded)
    else:
        reactor = scope.subscribe(room, options, _guarded)
    holder.append(reactor)
    return reactor


def dispatch_from_thread(app, dispatcher, batch):
    """Deliver a batch received on a transport thread on the app thread.

    View models are mutated in place, so dispatch must not race the widgets
    reading them.
    """
    return _call_on_app_thread(app, None, dispatcher.dispatch, batch)
