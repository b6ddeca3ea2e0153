"""
Tests for Observation and the EventStore storage/eviction contract.
"""

import json
import os
import shutil
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from moodtrack import EventStore, FileBackend, LockTimeout, MemoryBackend, Observation, StoreWriteError
from moodtrack.backends import StorageBackend
from moodtrack.store import STORAGE_KEY

T0 = datetime(2026, 10, 19, 9, 30, tzinfo=timezone(timedelta(hours=2)))


def make_obs(i: int = 0, emotion: str = "happy", source: str = "text") -> Observation:
    return Observation(
        emotion=emotion,
        confidence=50 + (i % 50),
        source=source,
        timestamp=T0 + timedelta(minutes=i),
        id=f"obs-{i}",
    )


class BrokenReadBackend(StorageBackend):
    def get(self, key):
        raise OSError("disk unplugged")

    def set(self, key, value):
        pass

    def remove(self, key):
        pass


class BrokenRemoveBackend(MemoryBackend):
    def remove(self, key):
        raise PermissionError("read-only")


class FlakyReadBackend(MemoryBackend):
    fail_reads = False

    def get(self, key):
        if self.fail_reads:
            raise OSError("device busy")
        return super().get(key)


class TestObservation(unittest.TestCase):
    def test_fields_assigned(self):
        obs = Observation("happy", 80, "camera")
        self.assertEqual(obs.emotion, "happy")
        self.assertEqual(obs.confidence, 80)
        self.assertEqual(obs.source, "camera")
        self.assertIsNotNone(obs.timestamp.tzinfo)
        self.assertTrue(obs.id)

    def test_ids_are_unique(self):
        ids = {Observation("sad", 50, "text").id for _ in range(200)}
        self.assertEqual(len(ids), 200)

    def test_immutable(self):
        obs = make_obs()
        with self.assertRaises(AttributeError):
            obs.emotion = "sad"
        with self.assertRaises(AttributeError):
            del obs.confidence

    def test_confidence_clamped(self):
        self.assertEqual(Observation("happy", 140, "text").confidence, 100)
        self.assertEqual(Observation("happy", -3, "text").confidence, 0)
        self.assertEqual(Observation("happy", 62.5, "text").confidence, 62.5)

    def test_rejects_bad_input(self):
        with self.assertRaises(ValueError):
            Observation("bored", 50, "text")
        with self.assertRaises(ValueError):
            Observation("happy", 50, "microphone")
        with self.assertRaises(ValueError):
            Observation("happy", "high", "text")
        with self.assertRaises(ValueError):
            Observation("happy", float("nan"), "text")

    def test_emotion_normalized(self):
        self.assertEqual(Observation(" Happy ", 50, "text").emotion, "happy")

    def test_naive_timestamp_becomes_aware(self):
        obs = Observation("happy", 50, "text", timestamp=datetime(2026, 1, 1, 8, 0))
        self.assertIsNotNone(obs.timestamp.tzinfo)
        self.assertEqual(obs.timestamp.hour, 8)

    def test_dict_round_trip(self):
        obs = make_obs(7, emotion="fearful", source="camera")
        again = Observation.from_dict(obs.to_dict())
        self.assertEqual(again, obs)
        self.assertEqual(again.timestamp, obs.timestamp)
        self.assertEqual(again.timestamp.utcoffset(), timedelta(hours=2))

    def test_from_dict_rejects_missing_fields(self):
        d = make_obs().to_dict()
        del d["emotion"]
        with self.assertRaises(KeyError):
            Observation.from_dict(d)
        with self.assertRaises(TypeError):
            Observation.from_dict(["not", "a", "dict"])


class TestEventStore(unittest.TestCase):
    def setUp(self):
        self.backend = MemoryBackend()
        self.store = EventStore(self.backend)

    def test_empty_store(self):
        self.assertEqual(self.store.all(), [])
        self.assertEqual(len(self.store), 0)

    def test_append_then_all_returns_it_first(self):
        first = make_obs(1)
        second = make_obs(2, emotion="sad", source="camera")
        self.store.append(first)
        self.store.append(second)
        log = self.store.all()
        self.assertEqual(log[0], second)
        self.assertEqual(log[1], first)
        self.assertEqual(log[0].to_dict(), second.to_dict())

    def test_append_rejects_non_observation(self):
        with self.assertRaises(TypeError):
            self.store.append({"emotion": "happy"})

    def test_capacity_must_be_positive(self):
        with self.assertRaises(ValueError):
            EventStore(capacity=0)

    def test_eviction_keeps_newest(self):
        store = EventStore(MemoryBackend(), capacity=5)
        for i in range(8):
            store.append(make_obs(i))
        self.assertEqual([o.id for o in store.all()], [f"obs-{i}" for i in range(7, 2, -1)])

    def test_eviction_at_default_capacity(self):
        for i in range(1001):
            self.store.append(make_obs(i))
        log = self.store.all()
        self.assertEqual(len(log), 1000)
        self.assertEqual(log[0].id, "obs-1000")
        self.assertEqual(log[-1].id, "obs-1")
        self.assertEqual([o.id for o in log], [f"obs-{i}" for i in range(1000, 0, -1)])

    def test_capacity_one_never_drops_new_entry(self):
        store = EventStore(MemoryBackend(), capacity=1)
        store.append(make_obs(1))
        store.append(make_obs(2))
        self.assertEqual([o.id for o in store.all()], ["obs-2"])

    def test_clear(self):
        self.store.append(make_obs())
        self.store.clear()
        self.assertEqual(self.store.all(), [])
        self.assertNotIn(STORAGE_KEY, self.backend)
        # clearing an empty store is fine
        self.store.clear()

    def test_custom_key(self):
        store = EventStore(self.backend, key="other-log")
        store.append(make_obs())
        self.assertIn("other-log", self.backend)
        self.assertEqual(self.store.all(), [])


class TestFailSoftReads(unittest.TestCase):
    def test_corrupt_json_reads_empty(self):
        backend = MemoryBackend()
        backend.set(STORAGE_KEY, "{not json")
        store = EventStore(backend)
        with self.assertLogs("moodtrack", level="WARNING"):
            self.assertEqual(store.all(), [])

    def test_non_array_reads_empty(self):
        backend = MemoryBackend()
        backend.set(STORAGE_KEY, json.dumps({"emotion": "happy"}))
        with self.assertLogs("moodtrack", level="WARNING"):
            self.assertEqual(EventStore(backend).all(), [])

    def test_malformed_record_reads_empty(self):
        backend = MemoryBackend()
        record = make_obs().to_dict()
        record["emotion"] = "bored"
        backend.set(STORAGE_KEY, json.dumps([record]))
        with self.assertLogs("moodtrack", level="WARNING"):
            self.assertEqual(EventStore(backend).all(), [])

    def test_backend_read_error_reads_empty(self):
        store = EventStore(BrokenReadBackend())
        with self.assertLogs("moodtrack", level="WARNING"):
            self.assertEqual(store.all(), [])

    def test_append_over_corrupt_data_starts_fresh(self):
        backend = MemoryBackend()
        backend.set(STORAGE_KEY, "garbage")
        store = EventStore(backend)
        with self.assertLogs("moodtrack", level="WARNING"):
            store.append(make_obs(1))
        self.assertEqual([o.id for o in store.all()], ["obs-1"])

    def test_invalid_utf8_file_reads_empty(self):
        tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmpdir, True)
        backend = FileBackend(tmpdir)
        with open(backend.path_for(STORAGE_KEY), "wb") as f:
            f.write(b"[\xff\xfe garbage")
        store = EventStore(backend)
        with self.assertLogs("moodtrack", level="WARNING"):
            self.assertEqual(store.all(), [])
        with self.assertLogs("moodtrack", level="WARNING"):
            self.assertEqual(json.loads(store.export()), [])
        with self.assertLogs("moodtrack", level="WARNING"):
            store.append(make_obs(1))
        self.assertEqual([o.id for o in store.all()], ["obs-1"])


class TestFailLoudWrites(unittest.TestCase):
    def test_quota_exceeded_raises(self):
        backend = MemoryBackend(quota_bytes=400)
        store = EventStore(backend)
        store.append(make_obs(1))
        before = backend.get(STORAGE_KEY)
        with self.assertLogs("moodtrack", level="ERROR"):
            with self.assertRaises(StoreWriteError):
                for i in range(2, 50):
                    store.append(make_obs(i))
        # the failed write left the last good payload in place
        self.assertTrue(backend.get(STORAGE_KEY).startswith("["))
        self.assertLessEqual(len(backend.get(STORAGE_KEY).encode()), 400)
        self.assertIsNotNone(before)

    def test_write_error_chains_cause(self):
        store = EventStore(MemoryBackend(quota_bytes=10))
        with self.assertRaises(StoreWriteError) as ctx:
            store.append(make_obs())
        self.assertIsInstance(ctx.exception.__cause__, OSError)

    def test_clear_failure_raises(self):
        store = EventStore(BrokenRemoveBackend())
        with self.assertRaises(StoreWriteError):
            store.clear()

    def test_unreadable_log_is_not_overwritten(self):
        backend = FlakyReadBackend()
        store = EventStore(backend)
        for i in range(5):
            store.append(make_obs(i))
        backend.fail_reads = True
        with self.assertLogs("moodtrack", level="ERROR"):
            with self.assertRaises(StoreWriteError) as ctx:
                store.append(make_obs(5))
        self.assertIsInstance(ctx.exception.__cause__, OSError)
        backend.fail_reads = False
        self.assertEqual([o.id for o in store.all()], [f"obs-{i}" for i in range(4, -1, -1)])

    def test_merge_restore_with_unreadable_log_raises(self):
        backend = FlakyReadBackend()
        store = EventStore(backend)
        store.append(make_obs(1))
        payload = EventStore().export()
        backend.fail_reads = True
        with self.assertLogs("moodtrack", level="ERROR"):
            with self.assertRaises(StoreWriteError):
                store.restore(payload, replace=False)
        backend.fail_reads = False
        self.assertEqual([o.id for o in store.all()], ["obs-1"])

    def test_file_lock_timeout_on_read_keeps_log(self):
        tmpdir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmpdir, True)
        store = EventStore(FileBackend(tmpdir))
        for i in range(5):
            store.append(make_obs(i))
        with mock.patch("moodtrack.backends.locked_read_text", side_effect=LockTimeout("busy")):
            with self.assertLogs("moodtrack", level="ERROR"):
                with self.assertRaises(StoreWriteError):
                    store.append(make_obs(5))
            # plain reads stay fail-soft
            with self.assertLogs("moodtrack", level="WARNING"):
                self.assertEqual(store.all(), [])
        self.assertEqual(len(store.all()), 5)


class TestExportRestore(unittest.TestCase):
    def setUp(self):
        self.store = EventStore(MemoryBackend())
        for i, emotion in enumerate(["happy", "sad", "stressed"]):
            self.store.append(make_obs(i, emotion=emotion))

    def test_export_is_indented_json(self):
        text = self.store.export()
        self.assertIn('\n  {', text)
        data = json.loads(text)
        self.assertEqual([d["id"] for d in data], ["obs-2", "obs-1", "obs-0"])
        self.assertEqual(
            set(data[0]), {"id", "emotion", "confidence", "timestamp", "source"}
        )

    def test_export_empty(self):
        self.assertEqual(json.loads(EventStore().export()), [])

    def test_export_clear_restore_round_trip(self):
        before = self.store.all()
        text = self.store.export()
        self.store.clear()
        self.assertEqual(self.store.restore(text), 3)
        self.assertEqual(self.store.all(), before)

    def test_restore_rejects_invalid_payload(self):
        with self.assertRaises(ValueError):
            self.store.restore("not json")
        with self.assertRaises(ValueError):
            self.store.restore(json.dumps([{"id": "x"}]))
        self.assertEqual(len(self.store.all()), 3)

    def test_restore_merge_skips_known_ids(self):
        other = EventStore(MemoryBackend())
        other.append(make_obs(1, emotion="sad"))
        other.append(make_obs(10, emotion="angry"))
        count = self.store.restore(other.export(), replace=False)
        self.assertEqual(count, 4)
        self.assertEqual([o.id for o in self.store.all()], ["obs-10", "obs-2", "obs-1", "obs-0"])

    def test_restore_truncates_to_capacity(self):
        small = EventStore(MemoryBackend(), capacity=2)
        self.assertEqual(small.restore(self.store.export()), 2)
        self.assertEqual([o.id for o in small.all()], ["obs-2", "obs-1"])


class TestFileBackend(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.backend = FileBackend(self.tmpdir)

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_persists_across_instances(self):
        EventStore(self.backend).append(make_obs(1))
        again = EventStore(FileBackend(self.tmpdir))
        self.assertEqual([o.id for o in again.all()], ["obs-1"])

    def test_file_layout(self):
        EventStore(self.backend).append(make_obs(1))
        path = os.path.join(self.tmpdir, f"{STORAGE_KEY}.json")
        self.assertTrue(os.path.exists(path))
        self.assertFalse(os.path.exists(path + ".lock"))
        with open(path, encoding="utf-8") as f:
            self.assertEqual(json.load(f)[0]["id"], "obs-1")

    def test_missing_file_reads_none(self):
        self.assertIsNone(self.backend.get("nothing-here"))

    def test_clear_removes_file(self):
        store = EventStore(self.backend)
        store.append(make_obs(1))
        store.clear()
        self.assertFalse(os.path.exists(self.backend.path_for(STORAGE_KEY)))
        self.assertEqual(store.all(), [])

    def test_rejects_path_like_keys(self):
        with self.assertRaises(ValueError):
            self.backend.path_for("../escape")

    def test_no_temp_files_left_behind(self):
        store = EventStore(self.backend)
        for i in range(5):
            store.append(make_obs(i))
        leftovers = [f for f in os.listdir(self.tmpdir) if f.endswith(".tmp")]
        self.assertEqual(leftovers, [])


if __name__ == "__main__":
    unittest.main()
