"""
Fixed-size batching in front of the bulk writer
"""

from typing import Awaitable, Callable, List
from schemas.normalized import AddressDocument

BatchHandler = Callable[[List[AddressDocument]], Awaitable[None]]


class BatchLoader:
    """
    Buffer documents and hand them to `on_batch` in chunks of `chunk_size`.

    `finish` flushes the final partial batch; call it once per stream.
    """

    def __init__(self, on_batch: BatchHandler, chunk_size: int):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.on_batch = on_batch
        self.chunk_size = chunk_size
        self._buffer: List[AddressDocument] = []
        self.batches_flushed = 0
        self.documents_flushed = 0

    def __len__(self) -> int:
        return len(self._buffer)

    async def add(self, document: AddressDocument) -> None:
        self._buffer.append(document)
        if len(self._buffer) >= self.chunk_size:
            await self.flush()

    async def flush(self) -> None:
        if not self._buffer:
            return
        batch, self._buffer = self._buffer, []
        await self.on_batch(batch)
        self.batches_flushed += 1
        self.documents_flushed += len(batch)

    async def finish(self) -> None:
        await self.flush()
