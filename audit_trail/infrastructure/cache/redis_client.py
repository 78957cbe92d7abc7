# audit_trail/infrastructure/cache/redis_client.py

from typing import Any, List, Optional

import redis.asyncio as redis

from audit_trail.config.settings import get_settings


class RedisClient:
    def __init__(self, url: Optional[str] = None, *, client: Optional[redis.Redis] = None):
        if client is None:
            client = redis.from_url(url or get_settings().redis_url, decode_responses=True)
        self.client = client

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def eval_script(self, script: str, keys: List[str], args: List[str]) -> Any:
        """Run a Lua script atomically against keys."""
        return await self.client.eval(script, len(keys), *keys, *args)

    async def range_by_lex(
        self,
        key: str,
        minimum: str,
        maximum: str,
        limit: int,
        *,
        descending: bool,
    ) -> List[str]:
        """Members of a score-0 sorted set between lex bounds ('[x', '(x', '-', '+')."""
        if descending:
            return await self.client.zrevrangebylex(key, maximum, minimum, start=0, num=limit)
        return await self.client.zrangebylex(key, minimum, maximum, start=0, num=limit)

    async def hash_get_many(self, key: str, fields: List[str]) -> List[Optional[str]]:
        if not fields:
            return []
        return await self.client.hmget(key, fields)

    async def close(self) -> None:
        await self.client.aclose()
