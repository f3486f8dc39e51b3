import functools

from fastapi import HTTPException, Request

from vidrelay.config.settings import config
from vidrelay.core.logging import log_warning
from vidrelay.i18n import i18n
from vidrelay.infra.redis import get_redis
from vidrelay.utils.locale import get_locale

class RedisRateLimiter:
    """Redis-based fixed-window rate limiter with Lua script"""

    lua_script = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window = tonumber(ARGV[2])

    local current = redis.call('INCR', key)
    if current == 1 then
        redis.call('EXPIRE', key, window)
    end

    if current > limit then
        local ttl = redis.call('TTL', key)
        return {0, ttl}
    end

    return {1, 0}
    """

    async def __call__(self, request: Request):
        if not config.rate_limit.enabled:
            return True

        redis = get_redis()
        if not redis:
            return True

        client_ip = request.client.host if request.client else "unknown"
        # Bucket per route family, not per concrete path
        family = request.url.path.strip("/").split("/", 1)[0]
        key = f"rate:{client_ip}:{family}"

        try:
            allowed, ttl = await redis.eval(
                self.lua_script,
                1,
                key,
                config.rate_limit.max_requests,
                config.rate_limit.window_seconds
            )
        except Exception as e:
            log_warning(request, f"Rate limiter unavailable: {str(e)}")
            return True

        if not allowed:
            locale = get_locale(request.headers.get("accept-language"))
            _ = functools.partial(i18n.get, locale=locale)
            raise HTTPException(
                status_code=429,
                detail=_("error.rate_limit", seconds=ttl),
                headers={"Retry-After": str(ttl)}
            )

        return True

rate_limiter = RedisRateLimiter()
