"""
AGE-MATE Tracking Backend — Lookup Resolver Tests
"""

import pytest

from app.services.lookup_service import LookupService, resolve_shipment


class TestResolveShipment:

    def test_exact_key_match(self):
        records = {"TRK1": {"trackingNumber": "TRK1", "status": "Loaded"}}
        assert resolve_shipment(records, "TRK1")["status"] == "Loaded"

    def test_secondary_match_on_embedded_field(self):
        records = {
            "legacy-key": {"trackingNumber": "TRK9", "status": "Arrived"},
        }
        assert resolve_shipment(records, "TRK9")["status"] == "Arrived"

    def test_exact_key_wins_over_embedded_field(self):
        records = {
            "other": {"trackingNumber": "TRK1", "status": "embedded"},
            "TRK1": {"trackingNumber": "TRK1", "status": "keyed"},
        }
        assert resolve_shipment(records, "TRK1")["status"] == "keyed"

    def test_first_embedded_match_in_iteration_order(self):
        records = {
            "a": {"trackingNumber": "DUP", "status": "first"},
            "b": {"trackingNumber": "DUP", "status": "second"},
        }
        assert resolve_shipment(records, "DUP")["status"] == "first"

    def test_unknown_identifier(self):
        assert resolve_shipment({"TRK1": {"trackingNumber": "TRK1"}}, "NOPE") is None

    @pytest.mark.parametrize("identifier", ["", None])
    def test_empty_identifier(self, identifier):
        assert resolve_shipment({"": {"trackingNumber": ""}}, identifier) is None


class TestLookupService:

    @pytest.mark.asyncio
    async def test_resolve_after_upsert(self, store, sample_shipment):
        await store.upsert("TRK1", sample_shipment)
        lookup = LookupService(store)
        assert await lookup.resolve("TRK1") == sample_shipment

    @pytest.mark.asyncio
    async def test_resolve_reads_hand_edited_file(self, data_file, store):
        data_file.write_text('{"x": {"trackingNumber": "TRK7"}}', encoding="utf-8")
        assert await LookupService(store).resolve("TRK7") == {"trackingNumber": "TRK7"}

    @pytest.mark.asyncio
    async def test_resolve_on_corrupt_file_returns_none(self, data_file, store):
        data_file.write_text("garbage", encoding="utf-8")
        assert await LookupService(store).resolve("TRK1") is None
