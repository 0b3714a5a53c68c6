"""Textual integration for statehold. Opt-in — requires textual.

Store listeners bound through this module only touch the widget tree when it
can be queried:

- while the app is not running, changes are dropped;
- inside pause(app), changes are held per listener and merged, so a
  listener sees one ChangeState spanning every write made during the pause
  (previous state of the first, new state of the last) once it ends;
- calls from worker threads go through app.call_from_thread;
- NoMatches from widget queries is ignored.

    stx.bind(app, store, "footer", lambda change: footer.update(change.new_state))
    with stx.pause(app):
        rebuild_widgets()
        store.set_data(...)     # delivered after the pause
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from statehold.options import ChangeState

# id(app) -> {id(listener): (deliver, merged change)} while inside pause(app).
_held: dict[int, dict[int, tuple]] = {}


@contextmanager
def pause(app):
    """Hold guarded listeners during widget replacement.

    Nested pauses flush only when the outermost one exits.
    """
    key = id(app)
    if key in _held:
        yield
        return
    held = _held[key] = {}
    try:
        yield
    finally:
        del _held[key]
    if app.is_running:
        for deliver, change in held.values():
            deliver(change)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _held


def listener(app, fn):
    """Wrap fn(change) so it safely updates Textual widgets."""
    main = threading.get_ident()

    def _deliver(change):
        if threading.get_ident() != main:
            app.call_from_thread(_apply, change)
        else:
            _apply(change)

    def _apply(change):
        try:
            fn(change)
        except NoMatches:
            pass

    def _guarded(change):
        if not app.is_running:
            return
        held = _held.get(id(app))
        if held is None:
            _deliver(change)
            return
        earlier = held.get(id(_guarded))
        if earlier is not None:
            change = ChangeState(earlier[1].previous_state, change.new_state)
        held[id(_guarded)] = (_deliver, change)

    return _guarded


def bind(app, store, name: str, fn) -> bool:
    """Register fn as a guarded listener named ``name`` on store."""
    return store.create_listener(name, listener(app, fn))
