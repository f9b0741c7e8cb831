"""Tests for ChunkWriter, DiscardWriter and ChunkReader."""

import pytest

from common.checksum import compute_checksum
from filestore.exceptions import (
    ConfigurationError,
    MissingChunkError,
    StoreError,
    StreamClosedError,
)
from filestore.streaming import ChunkReader, ChunkWriter, DiscardWriter


class FakeChunkStore:
    """In-memory chunk store recording every call."""

    def __init__(self, fail_on_chunk=None):
        self.chunks = {}
        self.checksums = {}
        self.reads = []
        self.fail_on_chunk = fail_on_chunk

    async def write_chunk(self, file_id, chunk_number, checksum, data):
        if chunk_number == self.fail_on_chunk:
            raise StoreError("disk full")
        self.chunks[(file_id, chunk_number)] = bytes(data)
        self.checksums[(file_id, chunk_number)] = checksum

    async def read_chunk(self, file_id, chunk_number):
        self.reads.append(chunk_number)
        return self.chunks.get((file_id, chunk_number))

    def ordered(self, file_id):
        numbers = sorted(n for (fid, n) in self.chunks if fid == file_id)
        return [self.chunks[(file_id, n)] for n in numbers]


class FakeMetadataStore:
    def __init__(self, fail=False):
        self.finished = []
        self.fail = fail

    async def update_status(self, file_id):
        if self.fail:
            raise StoreError("locked")
        self.finished.append(file_id)


def make_writer(chunk_size=4, chunk_store=None, metadata_store=None):
    chunk_store = chunk_store or FakeChunkStore()
    metadata_store = metadata_store or FakeMetadataStore()
    writer = ChunkWriter("f1", chunk_size, chunk_store, metadata_store)
    return writer, chunk_store, metadata_store


class TestChunkWriter:
    """Test splitting of unaligned buffers into fixed-size chunks."""

    @pytest.mark.asyncio
    async def test_nine_bytes_in_chunks_of_four(self):
        writer, chunks, metadata = make_writer()

        await writer.consume([b"ABCDEFGHI"])

        assert chunks.ordered("f1") == [b"ABCD", b"EFGH", b"I"]
        assert metadata.finished == ["f1"]
        assert writer.chunks_written == 3

    @pytest.mark.asyncio
    async def test_exact_multiple_writes_no_trailing_chunk(self):
        writer, chunks, metadata = make_writer()

        await writer.submit(b"ABCDEFGH")
        assert writer.remainder == b""
        assert writer.chunks_written == 2

        await writer.finish()

        assert chunks.ordered("f1") == [b"ABCD", b"EFGH"]
        assert ("f1", 2) not in chunks.chunks
        assert metadata.finished == ["f1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("partition", [
        [b"ABCDEFGHI"],
        [b"A", b"B", b"C", b"D", b"E", b"F", b"G", b"H", b"I"],
        [b"ABC", b"DEFGH", b"I"],
        [b"", b"ABCDE", b"", b"FGHI"],
        [b"ABCDEFG", b"HI"],
    ])
    async def test_chunks_do_not_depend_on_buffer_boundaries(self, partition):
        writer, chunks, _ = make_writer()

        await writer.consume(partition)

        assert chunks.ordered("f1") == [b"ABCD", b"EFGH", b"I"]
        assert b"".join(chunks.ordered("f1")) == b"ABCDEFGHI"
        assert writer.bytes_received == 9

    @pytest.mark.asyncio
    async def test_small_buffers_accumulate_in_remainder(self):
        writer, chunks, _ = make_writer()

        await writer.submit(b"AB")
        await writer.submit(b"C")

        assert writer.remainder == b"ABC"
        assert chunks.chunks == {}

        await writer.submit(b"DE")

        assert chunks.ordered("f1") == [b"ABCD"]
        assert writer.remainder == b"E"

    @pytest.mark.asyncio
    async def test_empty_input_only_updates_status(self):
        writer, chunks, metadata = make_writer()

        await writer.consume([])

        assert chunks.chunks == {}
        assert metadata.finished == ["f1"]
        assert writer.closed

    @pytest.mark.asyncio
    async def test_chunk_numbers_are_dense_from_zero(self):
        writer, chunks, _ = make_writer(chunk_size=3)

        await writer.consume([b"x" * 10])

        assert sorted(n for (_, n) in chunks.chunks) == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_each_chunk_carries_its_checksum(self):
        writer, chunks, _ = make_writer()

        await writer.consume([b"ABCDEFGHI"])

        for key, data in chunks.chunks.items():
            assert chunks.checksums[key] == compute_checksum(data)

    @pytest.mark.asyncio
    async def test_async_iterable_source(self):
        async def produce():
            for piece in (b"ABCDE", b"FGHI"):
                yield piece

        writer, chunks, _ = make_writer()
        await writer.consume(produce())

        assert chunks.ordered("f1") == [b"ABCD", b"EFGH", b"I"]

    @pytest.mark.asyncio
    async def test_submit_after_finish_raises(self):
        writer, _, _ = make_writer()
        await writer.finish()

        with pytest.raises(StreamClosedError):
            await writer.submit(b"more")
        with pytest.raises(StreamClosedError):
            await writer.finish()

    @pytest.mark.asyncio
    async def test_chunk_write_failure_closes_writer(self):
        chunk_store = FakeChunkStore(fail_on_chunk=1)
        writer, chunks, metadata = make_writer(chunk_store=chunk_store)

        with pytest.raises(StoreError):
            await writer.submit(b"ABCDEFGHI")

        assert writer.closed
        assert list(chunks.chunks) == [("f1", 0)]
        assert metadata.finished == []

        with pytest.raises(StreamClosedError):
            await writer.submit(b"J")
        with pytest.raises(StreamClosedError):
            await writer.finish()

    @pytest.mark.asyncio
    async def test_status_failure_closes_writer(self):
        writer, chunks, _ = make_writer(metadata_store=FakeMetadataStore(fail=True))

        with pytest.raises(StoreError):
            await writer.consume([b"ABCDE"])

        assert chunks.ordered("f1") == [b"ABCD", b"E"]
        with pytest.raises(StreamClosedError):
            await writer.finish()

    def test_rejects_non_positive_chunk_size(self):
        with pytest.raises(ConfigurationError):
            ChunkWriter("f1", 0, FakeChunkStore(), FakeMetadataStore())


class TestDiscardWriter:

    @pytest.mark.asyncio
    async def test_accepts_and_drops_input(self):
        writer = DiscardWriter("f1")

        await writer.consume([b"ABCD", b"EFGHI"])

        assert writer.bytes_received == 9
        assert writer.chunks_written == 0
        assert writer.closed


class TestChunkReader:
    """Test on-demand reads of stored chunks."""

    def _store_with(self, *pieces):
        store = FakeChunkStore()
        for number, piece in enumerate(pieces):
            store.chunks[("f1", number)] = piece
        return store

    @pytest.mark.asyncio
    async def test_reads_chunks_in_order(self):
        store = self._store_with(b"ABCD", b"EFGH", b"I")
        reader = ChunkReader("f1", 3, store)

        pieces = [piece async for piece in reader]

        assert b"".join(pieces) == b"ABCDEFGHI"
        assert reader.chunks_read == 3

    @pytest.mark.asyncio
    async def test_zero_chunks_yields_nothing(self):
        store = FakeChunkStore()
        reader = ChunkReader("f1", 0, store)

        assert await reader.read_chunk() is None
        assert store.reads == []

    @pytest.mark.asyncio
    async def test_fetches_only_on_demand(self):
        store = self._store_with(b"ABCD", b"EFGH", b"I")
        reader = ChunkReader("f1", 3, store)

        assert await reader.read_chunk() == b"ABCD"
        assert store.reads == [0]

        assert await reader.read_chunk() == b"EFGH"
        assert store.reads == [0, 1]

    @pytest.mark.asyncio
    async def test_ignores_chunks_beyond_count(self):
        store = self._store_with(b"ABCD", b"EFGH", b"EXTRA")
        reader = ChunkReader("f1", 2, store)

        pieces = [piece async for piece in reader]

        assert pieces == [b"ABCD", b"EFGH"]
        assert store.reads == [0, 1]

    @pytest.mark.asyncio
    async def test_missing_chunk_raises_and_ends_sequence(self):
        store = self._store_with(b"ABCD")
        store.chunks[("f1", 2)] = b"I"
        reader = ChunkReader("f1", 3, store)

        assert await reader.read_chunk() == b"ABCD"
        with pytest.raises(MissingChunkError) as exc_info:
            await reader.read_chunk()

        assert exc_info.value.chunk_number == 1
        assert exc_info.value.file_id == "f1"
        assert await reader.read_chunk() is None
        assert store.reads == [0, 1]

    @pytest.mark.asyncio
    async def test_end_of_sequence_is_sticky(self):
        store = self._store_with(b"AB")
        reader = ChunkReader("f1", 1, store)

        assert await reader.read_chunk() == b"AB"
        assert await reader.read_chunk() is None
        assert await reader.read_chunk() is None
        assert store.reads == [0]
