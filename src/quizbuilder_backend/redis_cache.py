from aiocache import Cache

from quizbuilder_backend.settings import settings

_redis_cache = None


async def get_redis_client() -> Cache:
    global _redis_cache
    if _redis_cache is None:
        _redis_cache = Cache(
            Cache.REDIS,
            endpoint=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            password=settings.REDIS_PASSWORD if settings.REDIS_PASSWORD else None,
            pool_max_size=10,
            db=0
        )
    return _redis_cache
