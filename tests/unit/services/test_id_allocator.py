"""
Unit Tests for record identifier allocation
"""
import asyncio

import pytest

from ipregistry.db.unit_of_work import UnitOfWork
from ipregistry.services.id_allocator import (
    RecordIdAllocator,
    compute_next_number,
    format_record_id,
)


class TestFormatRecordId:

    def test_unpadded(self):
        assert format_record_id(21, "KTTM-", 0) == "KTTM-21"

    def test_padded(self):
        assert format_record_id(21, "KTTM-", 3) == "KTTM-021"

    def test_padding_never_truncates(self):
        assert format_record_id(12345, "KTTM-", 3) == "KTTM-12345"


class TestComputeNextNumber:

    def test_empty_store_starts_at_one(self):
        assert compute_next_number([], "KTTM-") == 1

    def test_dirty_identifiers(self):
        ids = ["KTTM-3", " kttm-7 ", "KTTM-X", "ABC-100", None]

        assert compute_next_number(ids, "KTTM-") == 8

    def test_leading_zeros_parse_as_numbers(self):
        assert compute_next_number(["KTTM-009", "KTTM-010"], "KTTM-") == 11

    def test_prefix_is_literal_not_pattern(self):
        assert compute_next_number(["KTTMX5", "K.T-2"], "K.T-") == 3

    def test_nothing_matches(self):
        assert compute_next_number(["OTHER-1", "KTTM-", "KTTM-1a"], "KTTM-") == 1


class TestRecordIdAllocator:

    @pytest.mark.asyncio
    async def test_allocate_from_dirty_store(self, engine, fake_db, column_map):
        for record_id in ("KTTM-3", " kttm-7 ", "KTTM-X", "ABC-100"):
            fake_db.add_record(record_id)
        allocator = RecordIdAllocator(column_map, prefix="KTTM-", pad=0)

        async with engine.connect() as conn:
            async with UnitOfWork(conn) as uow:
                assert await allocator.allocate_next_id(uow) == "KTTM-8"

    @pytest.mark.asyncio
    async def test_padded_allocation(self, engine, fake_db, column_map):
        fake_db.add_record("KTTM-020")
        allocator = RecordIdAllocator(column_map, prefix="KTTM-", pad=3)

        async with engine.connect() as conn:
            async with UnitOfWork(conn) as uow:
                assert await allocator.allocate_next_id(uow) == "KTTM-021"

    @pytest.mark.asyncio
    async def test_preview_matches_allocation_and_persists_nothing(self, engine, fake_db, column_map):
        fake_db.add_record("KTTM-4")
        allocator = RecordIdAllocator(column_map, prefix="KTTM-", pad=0)

        preview = await allocator.preview_next_id(engine)

        async with engine.connect() as conn:
            async with UnitOfWork(conn) as uow:
                allocated = await allocator.allocate_next_id(uow)

        assert preview == allocated == "KTTM-5"
        assert list(fake_db.records) == ["KTTM-4"]
        assert fake_db.commits == 1

    @pytest.mark.asyncio
    async def test_repeated_allocation_in_one_transaction(self, engine, column_map):
        allocator = RecordIdAllocator(column_map, prefix="KTTM-", pad=0)

        async with engine.connect() as conn:
            async with UnitOfWork(conn) as uow:
                first = await asyncio.wait_for(allocator.allocate_next_id(uow), timeout=1)
                second = await asyncio.wait_for(allocator.allocate_next_id(uow), timeout=1)

        assert first == second == "KTTM-1"
