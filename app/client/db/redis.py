from redis import Redis

import app.config.config as configs

redis_client = Redis(
    host=configs.REDIS_HOST,
    port=configs.REDIS_PORT,
    decode_responses=True,
    socket_timeout=2.0,
)
