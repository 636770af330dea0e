"""Tests for InMemoryPatternStorage."""

import pytest
from workflow_patterns.core.errors import PatternNotFoundError
from workflow_patterns.core.types import (
    AIPatternMetadata,
    PatternCategory,
    StorageQuery,
    WorkflowPattern,
)
from workflow_patterns.learning import InMemoryPatternStorage


def make_pattern(pattern_id, category=PatternCategory.GENERIC):
    return WorkflowPattern(id=pattern_id, name=pattern_id, category=category)


async def connected_storage(*patterns):
    storage = InMemoryPatternStorage()
    await storage.connect()
    for pattern in patterns:
        await storage.create(pattern)
    return storage


# ============================================================================
# Tests: Connection
# ============================================================================

@pytest.mark.asyncio
async def test_operations_require_connection():
    storage = InMemoryPatternStorage()
    with pytest.raises(RuntimeError):
        await storage.read()
    with pytest.raises(RuntimeError):
        await storage.create(make_pattern("p1"))


@pytest.mark.asyncio
async def test_disconnect_twice_is_safe():
    storage = await connected_storage()
    await storage.disconnect()
    await storage.disconnect()
    assert storage.connected is False


# ============================================================================
# Tests: CRUD
# ============================================================================

class TestInMemoryPatternStorage:
    """Tests for create/read/update/delete."""

    @pytest.mark.asyncio
    async def test_create_then_read(self):
        storage = await connected_storage(make_pattern("p1"), make_pattern("p2"))
        result = await storage.read()
        assert [p.id for p in result.data] == ["p1", "p2"]
        assert result.total == 2

    @pytest.mark.asyncio
    async def test_create_assigns_missing_id(self):
        storage = await connected_storage()
        stored = await storage.create(make_pattern(""))
        assert stored.id.startswith("pattern_")
        assert (await storage.read()).total == 1

    @pytest.mark.asyncio
    async def test_create_duplicate_rejected(self):
        storage = await connected_storage(make_pattern("p1"))
        with pytest.raises(ValueError):
            await storage.create(make_pattern("p1"))

    @pytest.mark.asyncio
    async def test_read_filters_and_pages(self):
        storage = await connected_storage(
            make_pattern("a", PatternCategory.AUTOMATION),
            make_pattern("b", PatternCategory.GENERIC),
            make_pattern("c", PatternCategory.AUTOMATION),
            make_pattern("d", PatternCategory.AUTOMATION),
        )
        result = await storage.read(
            StorageQuery(category=PatternCategory.AUTOMATION, offset=1, limit=1)
        )
        assert [p.id for p in result.data] == ["c"]
        assert result.total == 3

    @pytest.mark.asyncio
    async def test_stored_copies_are_isolated(self):
        pattern = make_pattern("p1")
        storage = await connected_storage(pattern)

        pattern.name = "changed outside"
        first = (await storage.read()).data[0]
        first.name = "changed by reader"

        assert (await storage.read()).data[0].name == "p1"

    @pytest.mark.asyncio
    async def test_update(self):
        storage = await connected_storage(make_pattern("p1"))
        updated = await storage.update("p1", {
            "confidence": 0.9,
            "metadata": AIPatternMetadata(ai_node_count=2).model_dump(),
        })
        assert updated.confidence == 0.9
        assert updated.metadata.ai_node_count == 2
        assert (await storage.read()).data[0].confidence == 0.9

    @pytest.mark.asyncio
    async def test_update_unknown_id(self):
        storage = await connected_storage()
        with pytest.raises(PatternNotFoundError):
            await storage.update("missing", {"confidence": 0.9})

    @pytest.mark.asyncio
    async def test_update_rejects_immutable_fields(self):
        storage = await connected_storage(make_pattern("p1"))
        with pytest.raises(ValueError):
            await storage.update("p1", {"category": PatternCategory.AUTOMATION})
        with pytest.raises(ValueError):
            await storage.update("p1", {"id": "p2"})

    @pytest.mark.asyncio
    async def test_delete(self):
        storage = await connected_storage(make_pattern("p1"))
        assert await storage.delete("p1") is True
        assert await storage.delete("p1") is False
        assert (await storage.read()).total == 0
