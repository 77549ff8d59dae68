from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Tuple

from .errors import ClipCutError

if TYPE_CHECKING:
    from .editor import EditorSession

log = logging.getLogger("clipcut.shortcuts")


# Shortcut action ids used by the controller and app.py.
ACTION_MARK_START = "mark_start"
ACTION_MARK_END = "mark_end"
ACTION_ADD_CLIP = "add_clip"
ACTION_SHOW_SHORTCUTS = "show_shortcuts"


def _normalize_key(key: str) -> str:
    raw = str(key or "")
    if raw == " ":
        return "space"
    return raw.strip().lower().replace(" ", "")


def resolve_shortcut_action(
    *,
    key: str,
    ctrl: bool = False,
    shift: bool = False,
    alt: bool = False,
    meta: bool = False,
    typing_focus: bool = False,
) -> Optional[str]:
    """
    Resolve a keyboard event into an editor action.

    `typing_focus=True` blocks the single-letter shortcuts so the user can type
    times into the start/end fields.
    """
    k = _normalize_key(key)
    if not k:
        return None

    if k == "f1" or k == "?" or (k == "/" and bool(shift)):
        return ACTION_SHOW_SHORTCUTS

    if bool(ctrl or alt or meta) or typing_focus:
        return None

    if k == "j":
        return ACTION_MARK_START
    if k == "k":
        return ACTION_MARK_END
    if k == "a":
        return ACTION_ADD_CLIP
    return None


def shortcut_legend() -> List[Tuple[str, str]]:
    """Human-readable shortcuts list for the in-app help dialog."""
    return [
        ("J", "Set clip start to the current position"),
        ("K", "Set clip end to the current position"),
        ("A", "Add the pending clip"),
        ("F1 or ?", "Show shortcuts help"),
    ]


class ShortcutController:
    """
    Routes key events to the editor session.

    State is read from the session at dispatch time. While an action is still
    awaiting, further key events are dropped.
    """

    def __init__(
        self,
        editor: "EditorSession",
        on_message: Optional[Callable[[str], None]] = None,
        on_help: Optional[Callable[[], None]] = None,
        on_done: Optional[Callable[[], None]] = None,
    ) -> None:
        self.editor = editor
        self.on_message = on_message
        self.on_help = on_help
        self.on_done = on_done
        self.typing_focus = False
        self._busy = False
        self._page: Any = None
        self._prev_handler: Any = None

    @property
    def attached(self) -> bool:
        return self._page is not None

    def attach(self, page: Any) -> None:
        """Subscribe to `page.on_keyboard_event` until detach()."""
        if self._page is not None:
            self.detach()
        self._page = page
        self._prev_handler = getattr(page, "on_keyboard_event", None)
        page.on_keyboard_event = self.on_keyboard

    def detach(self) -> None:
        if self._page is None:
            return
        if getattr(self._page, "on_keyboard_event", None) == self.on_keyboard:
            self._page.on_keyboard_event = self._prev_handler
        self._page = None
        self._prev_handler = None

    def on_keyboard(self, e: Any) -> None:
        """Flet keyboard handler. Schedules the async action on the page loop."""
        action = self.action_for_event(e)
        if not action or self._page is None:
            return

        async def _do() -> None:
            await self.dispatch(action)
            if self.on_done is not None:
                self.on_done()

        self._page.run_task(_do)

    def action_for_event(self, e: Any) -> Optional[str]:
        ev_type = str(getattr(e, "type", "") or "").strip().lower().replace("_", "")
        if ev_type and ev_type != "keydown":
            return None
        return resolve_shortcut_action(
            key=str(getattr(e, "key", "") or ""),
            ctrl=bool(getattr(e, "ctrl", False)),
            shift=bool(getattr(e, "shift", False)),
            alt=bool(getattr(e, "alt", False)),
            meta=bool(getattr(e, "meta", False)),
            typing_focus=self.typing_focus,
        )

    async def dispatch(self, action: str) -> bool:
        """Run `action`. Returns False if it was dropped or rejected."""
        if action == ACTION_SHOW_SHORTCUTS:
            if self.on_help is not None:
                self.on_help()
            return True
        if self._busy:
            log.debug("dropping %s: previous shortcut still running", action)
            return False

        handler = self._handlers().get(action)
        if handler is None:
            return False

        self._busy = True
        try:
            return await handler()
        except ClipCutError as ex:
            if self.on_message is not None:
                self.on_message(ex.user_message)
            return False
        finally:
            self._busy = False

    def _handlers(self) -> dict[str, Callable[[], Awaitable[bool]]]:
        return {
            ACTION_MARK_START: self._mark_start,
            ACTION_MARK_END: self._mark_end,
            ACTION_ADD_CLIP: self._add_clip,
        }

    async def _mark_start(self) -> bool:
        return await self.editor.mark_start() is not None

    async def _mark_end(self) -> bool:
        return await self.editor.mark_end() is not None

    async def _add_clip(self) -> bool:
        return self.editor.add_pending() is not None
