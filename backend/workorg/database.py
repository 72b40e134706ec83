from redis import asyncio as aioredis

from workorg import config

redis_client = aioredis.from_url(config.REDIS_URL, decode_responses=True)
