import enum
import functools
import inspect
from typing import Any, Awaitable, Callable, ParamSpec, TypeVar, get_type_hints

from pydantic import TypeAdapter
from redis.exceptions import RedisError

from api.logger import get_logger
from api.redis import redis
from api.settings import settings


P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger(__name__)


def _key_part(value: Any) -> str:
    if isinstance(value, enum.Enum):
        return str(value.value)
    return str(value)


def redis_cached(key: str, *args: str) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """
    Cache the result of an async function in redis for `settings.cache_ttl` seconds.

    The cache key is built from `key` and the values of the arguments named in `args`.
    Results are (de)serialized using the return annotation of the decorated function.
    If redis is unreachable the function is called without caching.
    """

    def deco(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        sig = inspect.signature(func)
        adapter: TypeAdapter[Any] | None = None

        @functools.wraps(func)
        async def inner(*_args: P.args, **_kwargs: P.kwargs) -> T:
            nonlocal adapter
            if adapter is None:
                adapter = TypeAdapter(get_type_hints(func)["return"])

            bound = sig.bind(*_args, **_kwargs)
            bound.apply_defaults()
            cache_key = ":".join(["cache", key, *(_key_part(bound.arguments[arg]) for arg in args)])

            try:
                cached = await redis.get(cache_key)
            except RedisError as e:
                logger.warning(f"Cache unavailable, skipping {cache_key}: {e}")
                return await func(*_args, **_kwargs)

            if cached is not None:
                return adapter.validate_json(cached)  # type: ignore[no-any-return]

            result = await func(*_args, **_kwargs)
            try:
                await redis.setex(cache_key, settings.cache_ttl, adapter.dump_json(result))
            except RedisError as e:
                logger.warning(f"Could not cache {cache_key}: {e}")
            return result

        return inner

    return deco


async def clear_cache(key: str) -> None:
    try:
        async for k in redis.scan_iter(match=f"cache:{key}:*"):
            await redis.delete(k)
    except RedisError as e:
        logger.warning(f"Could not clear cache {key}: {e}")
