"""
AGE-MATE Tracking Backend — Bulk Import Tests
==============================================

What we test:
    ✅ key resolution order trackingNumber → tracking → id
    ✅ rows without a key are reported with their 1-based row number
    ✅ quantity / cbm numeric coercion, free text kept
    ✅ merge over existing records, single write per batch
    ✅ CSV parsing: trimming, blank lines, BOM, ragged rows
"""

from unittest.mock import patch

import pytest

from app.exceptions import ValidationError
from app.services.import_service import ImportService, coerce_number, parse_csv


class TestCoerceNumber:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("12", 12),
            ("-3", -3),
            ("2.5", 2.5),
            (".5", 0.5),
            ("1e3", 1000.0),
        ],
    )
    def test_numeric_strings_become_numbers(self, raw, expected):
        value = coerce_number(raw)
        assert value == expected
        assert not isinstance(value, str)

    @pytest.mark.parametrize("raw", ["12 boxes", "approx. 3", "N/A", "nan", "inf", "0x10", ""])
    def test_free_text_is_kept(self, raw):
        assert coerce_number(raw) == raw

    def test_integer_string_yields_int(self):
        assert isinstance(coerce_number("12"), int)


class TestParseCsv:

    def test_header_row_names_columns(self):
        rows = parse_csv(b"trackingNumber,status\nTRK1,Loaded\nTRK2,Arrived\n")
        assert rows == [
            {"trackingNumber": "TRK1", "status": "Loaded"},
            {"trackingNumber": "TRK2", "status": "Arrived"},
        ]

    def test_values_and_headers_are_trimmed(self):
        rows = parse_csv(b" trackingNumber , status \n TRK1 ,  In Transit \n")
        assert rows == [{"trackingNumber": "TRK1", "status": "In Transit"}]

    def test_blank_lines_are_skipped(self):
        rows = parse_csv(b"id,status\n\nA,x\n\n\nB,y\n")
        assert [r["id"] for r in rows] == ["A", "B"]

    def test_bom_is_tolerated(self):
        rows = parse_csv("\ufefftrackingNumber\nTRK1\n".encode("utf-8"))
        assert rows == [{"trackingNumber": "TRK1"}]

    def test_quoted_commas(self):
        rows = parse_csv(b'id,goodsDescription\nA,"shoes, bags"\n')
        assert rows[0]["goodsDescription"] == "shoes, bags"

    def test_ragged_row_is_rejected(self):
        with pytest.raises(ValidationError, match="failed to parse csv"):
            parse_csv(b"id,status\nA,x,extra\n")

    def test_non_utf8_is_rejected(self):
        with pytest.raises(ValidationError, match="UTF-8"):
            parse_csv(b"id\n\xff\xfe\n")

    def test_empty_payload_has_no_rows(self):
        assert parse_csv(b"") == []


class TestImportRows:

    def setup_method(self):
        self.rows = [
            {"trackingNumber": "TRK1", "status": "Loaded", "quantity": "12"},
            {"status": "orphan"},
            {"tracking": "TRK2", "quantity": "12 boxes", "cbm": "3.5"},
            {"id": "TRK3", "cbm": ""},
        ]

    @pytest.mark.asyncio
    async def test_missing_key_rows_are_reported(self, store):
        result = await ImportService(store).import_rows(self.rows)

        assert result.ok is True
        assert result.imported == 3
        assert [(e.row, e.error) for e in result.errors] == [(2, "missing trackingNumber")]

    @pytest.mark.asyncio
    async def test_key_candidates_and_coercion(self, store):
        await ImportService(store).import_rows(self.rows)
        records = await store.load()

        assert set(records) == {"TRK1", "TRK2", "TRK3"}
        assert records["TRK1"]["quantity"] == 12
        assert records["TRK2"]["trackingNumber"] == "TRK2"
        assert records["TRK2"]["tracking"] == "TRK2"
        assert records["TRK2"]["quantity"] == "12 boxes"
        assert records["TRK2"]["cbm"] == 3.5
        assert records["TRK3"]["trackingNumber"] == "TRK3"
        assert records["TRK3"]["cbm"] == ""

    @pytest.mark.asyncio
    async def test_trackingnumber_takes_priority(self, store):
        await ImportService(store).import_rows([{"id": "ID1", "tracking": "T1", "trackingNumber": "TN1"}])
        assert list((await store.load()).keys()) == ["TN1"]

    @pytest.mark.asyncio
    async def test_empty_candidate_falls_through(self, store):
        await ImportService(store).import_rows([{"trackingNumber": "", "tracking": "", "id": "ID1"}])
        assert list((await store.load()).keys()) == ["ID1"]

    @pytest.mark.asyncio
    async def test_rows_merge_over_existing_record(self, store):
        await store.upsert("TRK1", {"trackingNumber": "TRK1", "phone": "555", "status": "Loaded"})

        await ImportService(store).import_rows([{"trackingNumber": "TRK1", "status": "Arrived"}])

        assert await store.get("TRK1") == {"trackingNumber": "TRK1", "phone": "555", "status": "Arrived"}

    @pytest.mark.asyncio
    async def test_single_write_per_batch(self, store):
        original_save = store.save
        with patch.object(store, "save", side_effect=original_save) as mock_save:
            await ImportService(store).import_rows(self.rows)
        assert mock_save.call_count == 1

    @pytest.mark.asyncio
    async def test_input_rows_are_not_mutated(self, store):
        row = {"trackingNumber": "TRK1", "quantity": "12"}
        await ImportService(store).import_rows([row])
        assert row == {"trackingNumber": "TRK1", "quantity": "12"}

    @pytest.mark.asyncio
    async def test_import_csv_end_to_end(self, store):
        payload = b"trackingNumber,status,quantity\nTRK1,Loaded,4\n,missing,1\n"
        result = await ImportService(store).import_csv(payload)

        assert result.imported == 1
        assert result.errors[0].row == 2
        assert (await store.get("TRK1"))["quantity"] == 4
