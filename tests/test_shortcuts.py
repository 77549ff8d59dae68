import asyncio
import unittest
from types import SimpleNamespace

from clipcut.errors import InvalidRange
from clipcut.shortcuts import (
    ACTION_ADD_CLIP,
    ACTION_MARK_END,
    ACTION_MARK_START,
    ACTION_SHOW_SHORTCUTS,
    ShortcutController,
    resolve_shortcut_action,
    shortcut_legend,
)


class TestResolveShortcut(unittest.TestCase):
    def test_plain_actions(self):
        self.assertEqual(resolve_shortcut_action(key="j"), ACTION_MARK_START)
        self.assertEqual(resolve_shortcut_action(key="J"), ACTION_MARK_START)
        self.assertEqual(resolve_shortcut_action(key="K"), ACTION_MARK_END)
        self.assertEqual(resolve_shortcut_action(key="a"), ACTION_ADD_CLIP)
        self.assertIsNone(resolve_shortcut_action(key="x"))
        self.assertIsNone(resolve_shortcut_action(key=""))

    def test_modifiers_block_letter_shortcuts(self):
        self.assertIsNone(resolve_shortcut_action(key="a", ctrl=True))
        self.assertIsNone(resolve_shortcut_action(key="j", meta=True))
        self.assertIsNone(resolve_shortcut_action(key="k", alt=True))

    def test_typing_focus_blocks_plain_shortcuts(self):
        self.assertIsNone(resolve_shortcut_action(key="j", typing_focus=True))
        self.assertIsNone(resolve_shortcut_action(key="a", typing_focus=True))

    def test_help_shortcuts(self):
        self.assertEqual(resolve_shortcut_action(key="F1"), ACTION_SHOW_SHORTCUTS)
        self.assertEqual(resolve_shortcut_action(key="?", typing_focus=True), ACTION_SHOW_SHORTCUTS)
        self.assertEqual(resolve_shortcut_action(key="/", shift=True), ACTION_SHOW_SHORTCUTS)

    def test_legend_mentions_every_key(self):
        keys = " ".join(k for k, _ in shortcut_legend())
        for k in ("J", "K", "A", "F1"):
            self.assertIn(k, keys)


class _StubEditor:
    def __init__(self):
        self.calls = []
        self.gate = None
        self.add_result = 0

    async def mark_start(self):
        self.calls.append("start")
        if self.gate is not None:
            await self.gate.wait()
        return 1

    async def mark_end(self):
        self.calls.append("end")
        return 2

    def add_pending(self):
        self.calls.append("add")
        return self.add_result


class _StubPage:
    def __init__(self):
        self.on_keyboard_event = None
        self.tasks = []

    def run_task(self, fn):
        self.tasks.append(asyncio.ensure_future(fn()))


class TestShortcutController(unittest.IsolatedAsyncioTestCase):
    async def test_dispatch_routes_to_editor(self):
        editor = _StubEditor()
        ctl = ShortcutController(editor)
        self.assertTrue(await ctl.dispatch(ACTION_MARK_START))
        self.assertTrue(await ctl.dispatch(ACTION_MARK_END))
        self.assertTrue(await ctl.dispatch(ACTION_ADD_CLIP))
        self.assertEqual(editor.calls, ["start", "end", "add"])

    async def test_rejected_add_reports_false(self):
        editor = _StubEditor()
        editor.add_result = None
        ctl = ShortcutController(editor)
        self.assertFalse(await ctl.dispatch(ACTION_ADD_CLIP))

    async def test_reentrant_events_are_dropped(self):
        editor = _StubEditor()
        editor.gate = asyncio.Event()
        ctl = ShortcutController(editor)

        first = asyncio.ensure_future(ctl.dispatch(ACTION_MARK_START))
        await asyncio.sleep(0)
        self.assertFalse(await ctl.dispatch(ACTION_MARK_END))

        editor.gate.set()
        self.assertTrue(await first)
        self.assertEqual(editor.calls, ["start"])
        self.assertTrue(await ctl.dispatch(ACTION_MARK_END))

    async def test_errors_become_messages(self):
        class _Failing(_StubEditor):
            def add_pending(self):
                raise InvalidRange("bad")

        messages = []
        ctl = ShortcutController(_Failing(), on_message=messages.append)
        self.assertFalse(await ctl.dispatch(ACTION_ADD_CLIP))
        self.assertEqual(messages, [InvalidRange.user_message])

    async def test_attach_detach_scopes_subscription(self):
        page = _StubPage()
        previous = object()
        page.on_keyboard_event = previous
        done = []
        editor = _StubEditor()
        ctl = ShortcutController(editor, on_done=lambda: done.append(True))

        ctl.attach(page)
        self.assertEqual(page.on_keyboard_event, ctl.on_keyboard)
        page.on_keyboard_event(SimpleNamespace(key="j", ctrl=False, shift=False, alt=False, meta=False))
        page.on_keyboard_event(SimpleNamespace(key="z"))
        await asyncio.gather(*page.tasks)
        self.assertEqual(editor.calls, ["start"])
        self.assertEqual(done, [True])

        ctl.detach()
        self.assertIs(page.on_keyboard_event, previous)
        self.assertFalse(ctl.attached)
        ctl.on_keyboard(SimpleNamespace(key="k"))
        self.assertEqual(len(page.tasks), 1)

    async def test_help_action_calls_callback(self):
        shown = []
        ctl = ShortcutController(_StubEditor(), on_help=lambda: shown.append(1))
        self.assertTrue(await ctl.dispatch(ACTION_SHOW_SHORTCUTS))
        self.assertEqual(shown, [1])

    def test_typing_focus_is_respected_for_events(self):
        ctl = ShortcutController(_StubEditor())
        ctl.typing_focus = True
        self.assertIsNone(ctl.action_for_event(SimpleNamespace(key="j")))
        self.assertEqual(ctl.action_for_event(SimpleNamespace(key="F1")), ACTION_SHOW_SHORTCUTS)


if __name__ == "__main__":
    unittest.main()
