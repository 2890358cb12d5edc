"""
Batch operations against HubSpot that transparently handle the per-call size limits.

Oversized inputs are split into chunks which are sent concurrently. A failing chunk does not fail the
whole operation: the results of all successful chunks are returned together with a record of every failed
chunk, so callers can decide how to deal with the items that did not land. Only if every chunk fails the
operation raises `UpstreamUnavailableError`.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Iterator, TypeVar

from api.exceptions.upstream import UpstreamUnavailableError
from api.logger import get_logger
from api.models.association import Association
from api.services.hubspot import HubSpotClient
from api.settings import settings
from api.utils.ids import canonical_id


T = TypeVar("T")
R = TypeVar("R")

logger = get_logger(__name__)


@dataclass
class ChunkFailure:
    index: int
    size: int
    reason: str
    items: list[Any]


@dataclass
class BatchResult(Generic[T]):
    items: list[T] = field(default_factory=list)
    failures: list[ChunkFailure] = field(default_factory=list)
    chunks: int = 0

    @property
    def partial(self) -> bool:
        return bool(self.failures)

    @property
    def failed_items(self) -> list[Any]:
        return [item for failure in self.failures for item in failure.items]


def chunked(items: list[T], size: int) -> Iterator[list[T]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


class ChunkedBatchClient:
    def __init__(
        self,
        client: HubSpotClient,
        object_limit: int | None = None,
        association_limit: int | None = None,
        association_create_limit: int | None = None,
    ) -> None:
        self.client = client
        self.object_limit = object_limit or settings.batch_object_limit
        self.association_limit = association_limit or settings.batch_association_limit
        self.association_create_limit = association_create_limit or settings.batch_association_create_limit

    async def batch_read(self, object_type: str, ids: list[Any], properties: list[str]) -> BatchResult[dict[str, Any]]:
        ids = [canonical_id(i) for i in ids]
        return await self._run(
            f"read {object_type}",
            ids,
            self.object_limit,
            lambda chunk: self.client.batch_read_objects(object_type, chunk, properties),
        )

    async def batch_read_associations(
        self, from_type: str, from_ids: list[Any], to_type: str
    ) -> BatchResult[Association]:
        from_ids = [canonical_id(i) for i in from_ids]

        async def read(chunk: list[str]) -> list[Association]:
            results = await self.client.batch_read_associations(from_type, chunk, to_type)
            return [edge for result in results for edge in Association.from_batch_result(result)]

        return await self._run(f"read associations {from_type} -> {to_type}", from_ids, self.association_limit, read)

    async def batch_write(self, object_type: str, updates: list[dict[str, Any]]) -> BatchResult[dict[str, Any]]:
        updates = [{**update, "id": canonical_id(update["id"])} for update in updates]
        return await self._run(
            f"update {object_type}",
            updates,
            self.object_limit,
            lambda chunk: self.client.batch_update_objects(object_type, chunk),
        )

    async def batch_create_associations(
        self, from_type: str, to_type: str, inputs: list[dict[str, Any]]
    ) -> BatchResult[dict[str, Any]]:
        return await self._run(
            f"create associations {from_type} -> {to_type}",
            inputs,
            self.association_create_limit,
            lambda chunk: self.client.batch_create_associations(from_type, to_type, chunk),
        )

    async def _run(
        self, operation: str, items: list[T], size: int, call: Callable[[list[T]], Awaitable[list[R]]]
    ) -> BatchResult[R]:
        if not items:
            return BatchResult()

        chunks = list(chunked(items, size))
        logger.debug(f"Batch {operation}: {len(items)} item(s) in {len(chunks)} chunk(s)")

        results = await asyncio.gather(*(call(chunk) for chunk in chunks), return_exceptions=True)

        out: BatchResult[R] = BatchResult(chunks=len(chunks))
        for index, (chunk, result) in enumerate(zip(chunks, results)):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(f"Batch {operation}: chunk {index} ({len(chunk)} item(s)) failed: {result!r}")
                out.failures.append(ChunkFailure(index=index, size=len(chunk), reason=str(result), items=chunk))
            else:
                out.items.extend(result)

        if len(out.failures) == len(chunks):
            logger.error(f"Batch {operation}: all {len(chunks)} chunk(s) failed")
            raise UpstreamUnavailableError

        return out
