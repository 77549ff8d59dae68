import unittest

from clipcut.clips import ClipStore
from clipcut.errors import IndexOutOfRange, InvalidRange
from clipcut.model import Clip, PendingRange


def _store(duration=10.0):
    return ClipStore(lambda: duration)


class TestClipStore(unittest.TestCase):
    def test_add_appends_valid_ranges(self):
        store = _store()
        for s, e in [(0.0, 10.0), (2.0, 5.0), (9.5, 10.0), (0, 0.1)]:
            before = len(store)
            idx = store.add(PendingRange(s, e))
            self.assertEqual(idx, before)
            self.assertEqual(len(store), before + 1)
            self.assertEqual(store[idx], Clip(float(s), float(e)))

    def test_invalid_ranges_leave_list_unchanged(self):
        store = _store()
        store.add(PendingRange(1.0, 2.0))
        before = store.snapshot()

        bad = [
            (5.0, 5.0),
            (6.0, 3.0),
            (None, 3.0),
            (1.0, None),
            (None, None),
            ("abc", 3.0),
            (float("nan"), 3.0),
            (1.0, float("inf")),
            (-1.0, 3.0),
            (2.0, 10.5),
            (True, 3.0),
        ]
        for s, e in bad:
            with self.subTest(start=s, end=e):
                with self.assertRaises(InvalidRange):
                    store.add(PendingRange(s, e))
                self.assertEqual(store.snapshot(), before)

    def test_numeric_strings_are_accepted(self):
        store = _store()
        store.add(PendingRange("2", "5.5"))
        self.assertEqual(store[0], Clip(2.0, 5.5))

    def test_unknown_duration_rejects_everything(self):
        store = ClipStore(lambda: None)
        with self.assertRaises(InvalidRange):
            store.add(PendingRange(1.0, 2.0))
        self.assertEqual(len(store), 0)

    def test_duplicates_and_overlaps_are_kept_in_insertion_order(self):
        store = _store()
        store.add(Clip(7.0, 9.0))
        store.add(Clip(1.0, 3.0))
        store.add(Clip(1.0, 3.0))
        store.add(Clip(2.0, 8.0))
        self.assertEqual(
            list(store),
            [Clip(7.0, 9.0), Clip(1.0, 3.0), Clip(1.0, 3.0), Clip(2.0, 8.0)],
        )

    def test_remove_keeps_relative_order(self):
        store = _store()
        clips = [Clip(0.0, 1.0), Clip(1.0, 2.0), Clip(2.0, 3.0), Clip(3.0, 4.0)]
        for c in clips:
            store.add(c)

        removed = store.remove(1)
        self.assertEqual(removed, clips[1])
        self.assertEqual(list(store), [clips[0], clips[2], clips[3]])

    def test_remove_out_of_range(self):
        store = _store()
        store.add(Clip(0.0, 1.0))
        for idx in (1, -1, 5, True):
            with self.subTest(idx=idx):
                with self.assertRaises(IndexOutOfRange):
                    store.remove(idx)
        self.assertEqual(len(store), 1)

    def test_snapshot_is_immutable_copy(self):
        store = _store()
        store.add(Clip(0.0, 1.0))
        snap = store.snapshot()
        store.add(Clip(2.0, 3.0))
        store.remove(0)
        self.assertEqual(snap, (Clip(0.0, 1.0),))
        self.assertIsInstance(snap, tuple)

    def test_sub_millisecond_range_keeps_distinct_bounds(self):
        store = _store()
        idx = store.add(PendingRange(1.0001, 1.0004))
        clip = store[idx]
        self.assertEqual(clip, Clip(1.0001, 1.0004))

    def test_range_below_microsecond_is_rejected(self):
        store = _store()
        with self.assertRaises(InvalidRange):
            store.add(PendingRange(1.0, 1.0000001))
        self.assertEqual(len(store), 0)

    def test_total_duration(self):
        store = _store()
        store.add(Clip(0.0, 1.5))
        store.add(Clip(4.0, 6.0))
        self.assertAlmostEqual(store.total_duration(), 3.5)


if __name__ == "__main__":
    unittest.main()
