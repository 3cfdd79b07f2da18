"""
AGE-MATE Tracking Backend — Record Store Unit Tests
====================================================

What we test:
    ✅ load() degrades to an empty store for missing/corrupt files
    ✅ save() writes pretty-printed JSON through a temp file + rename
    ✅ upsert() inserts/replaces and keeps key == trackingNumber
    ✅ merge() preserves untouched fields, 404s without writing
    ✅ concurrent upserts are serialized (no lost updates)
    ✅ NaN / Infinity are rejected before they reach the data file
    ✅ health() reports ok / missing / corrupt
"""

import asyncio
import json
import os
from unittest.mock import patch

import pytest

from app.exceptions import NotFoundError, PersistenceWriteError, ValidationError
from app.services.record_store import RecordStore


class TestLoad:

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        store = RecordStore(tmp_path / "absent.json")
        assert await store.load() == {}

    @pytest.mark.asyncio
    async def test_invalid_json_is_empty(self, data_file, store):
        data_file.write_text("{not json", encoding="utf-8")
        assert await store.load() == {}

    @pytest.mark.asyncio
    async def test_non_object_json_is_empty(self, data_file, store):
        data_file.write_text("[1, 2, 3]", encoding="utf-8")
        assert await store.load() == {}

    @pytest.mark.asyncio
    async def test_non_utf8_file_is_empty(self, data_file, store):
        data_file.write_bytes(b"\xff\xfe\x00garbage")
        assert await store.load() == {}

    def test_initialize_creates_empty_file(self, data_file):
        RecordStore(data_file).initialize()
        assert json.loads(data_file.read_text(encoding="utf-8")) == {}

    def test_initialize_keeps_existing_file(self, data_file):
        data_file.parent.mkdir(parents=True)
        data_file.write_text('{"A": {"trackingNumber": "A"}}', encoding="utf-8")
        RecordStore(data_file).initialize()
        assert "A" in json.loads(data_file.read_text(encoding="utf-8"))


class TestSave:

    @pytest.mark.asyncio
    async def test_save_is_pretty_printed_and_loadable(self, data_file, store, sample_shipment):
        await store.save({"TRK1": sample_shipment})

        text = data_file.read_text(encoding="utf-8")
        assert text.startswith('{\n  "TRK1"')
        assert await store.load() == {"TRK1": sample_shipment}
        assert not store.tmp_path.exists()

    @pytest.mark.asyncio
    async def test_interrupted_save_leaves_original_intact(self, data_file, store, sample_shipment):
        await store.save({"TRK1": sample_shipment})

        with patch("app.services.record_store.os.replace", side_effect=OSError("disk gone")):
            with pytest.raises(PersistenceWriteError):
                await store.save({"OTHER": {"trackingNumber": "OTHER"}})

        assert await store.load() == {"TRK1": sample_shipment}

    @pytest.mark.asyncio
    async def test_unwritable_location_raises(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        store = RecordStore(blocker / "tracking-data.json")
        with pytest.raises(PersistenceWriteError):
            await store.save({})

    @pytest.mark.asyncio
    async def test_save_fsyncs_before_rename(self, store):
        calls = []
        real_fsync = os.fsync

        def record_fsync(fd):
            calls.append("fsync")
            real_fsync(fd)

        def record_replace(src, dst):
            calls.append("replace")
            os.rename(src, dst)

        with patch("app.services.record_store.os.fsync", side_effect=record_fsync), \
                patch("app.services.record_store.os.replace", side_effect=record_replace):
            await store.save({"K": {"trackingNumber": "K"}})

        assert calls == ["fsync", "replace"]
        assert await store.get("K") == {"trackingNumber": "K"}


class TestUpsert:

    @pytest.mark.asyncio
    async def test_upsert_then_get(self, store, sample_shipment):
        await store.upsert("TRK1", sample_shipment)
        assert await store.get("TRK1") == sample_shipment

    @pytest.mark.asyncio
    async def test_upsert_replaces_whole_record(self, store):
        await store.upsert("TRK1", {"trackingNumber": "TRK1", "status": "Loaded", "phone": "1"})
        await store.upsert("TRK1", {"trackingNumber": "TRK1", "status": "Arrived"})
        assert await store.get("TRK1") == {"trackingNumber": "TRK1", "status": "Arrived"}

    @pytest.mark.asyncio
    async def test_upsert_forces_key_into_record(self, store):
        stored = await store.upsert("TRK1", {"trackingNumber": "OTHER", "status": "x"})
        assert stored["trackingNumber"] == "TRK1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", [None, "", "   "])
    async def test_upsert_requires_key(self, store, key):
        with pytest.raises(ValidationError):
            await store.upsert(key, {"status": "x"})

    @pytest.mark.asyncio
    async def test_list_preserves_insertion_order(self, store):
        for key in ("B", "A", "C"):
            await store.upsert(key, {"trackingNumber": key})
        assert [r["trackingNumber"] for r in await store.list()] == ["B", "A", "C"]


class TestMerge:

    @pytest.mark.asyncio
    async def test_merge_preserves_untouched_fields(self, store):
        await store.upsert("K", {"trackingNumber": "K", "a": 1, "b": 2})
        merged = await store.merge("K", {"b": 3})
        assert merged == {"trackingNumber": "K", "a": 1, "b": 3}
        assert await store.get("K") == merged

    @pytest.mark.asyncio
    async def test_merge_missing_key_does_not_write(self, data_file, store):
        before = os.stat(data_file).st_mtime_ns
        with patch.object(store, "save") as mock_save:
            with pytest.raises(NotFoundError):
                await store.merge("NOPE", {"status": "x"})
            mock_save.assert_not_called()
        assert os.stat(data_file).st_mtime_ns == before

    @pytest.mark.asyncio
    async def test_merge_rejects_key_change(self, store):
        await store.upsert("K", {"trackingNumber": "K"})
        with pytest.raises(ValidationError):
            await store.merge("K", {"trackingNumber": "OTHER"})
        assert (await store.get("K"))["trackingNumber"] == "K"

    @pytest.mark.asyncio
    async def test_merge_accepts_same_key(self, store):
        await store.upsert("K", {"trackingNumber": "K"})
        merged = await store.merge("K", {"trackingNumber": "K", "status": "Arrived"})
        assert merged["status"] == "Arrived"


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_concurrent_upserts_are_not_lost(self, store):
        keys = [f"TRK{i}" for i in range(25)]
        await asyncio.gather(*(store.upsert(k, {"trackingNumber": k}) for k in keys))
        assert set((await store.load()).keys()) == set(keys)


class TestNonFiniteValues:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    async def test_upsert_rejects_non_finite_numbers(self, data_file, store, value):
        before = data_file.read_text(encoding="utf-8")
        with pytest.raises(ValidationError):
            await store.upsert("N1", {"trackingNumber": "N1", "quantity": value})
        assert data_file.read_text(encoding="utf-8") == before

    @pytest.mark.asyncio
    async def test_merge_rejects_nested_nan(self, store):
        await store.upsert("K", {"trackingNumber": "K", "cbm": 2})
        with pytest.raises(ValidationError):
            await store.merge("K", {"dimensions": {"cbm": float("nan")}})
        assert await store.get("K") == {"trackingNumber": "K", "cbm": 2}


class TestHealth:

    @pytest.mark.asyncio
    async def test_ok(self, store):
        assert await store.health() == "ok"

    @pytest.mark.asyncio
    async def test_missing(self, tmp_path):
        assert await RecordStore(tmp_path / "absent.json").health() == "missing"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
    async def test_corrupt(self, data_file, store, content):
        data_file.write_text(content, encoding="utf-8")
        assert await store.health() == "corrupt"
