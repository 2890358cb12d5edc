from redis.asyncio import Redis

from api.settings import settings


redis: Redis = Redis.from_url(settings.redis_url, decode_responses=True)
