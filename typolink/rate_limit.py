from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, Response
from fastapi.responses import JSONResponse

def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    limit_detail = str(exc.detail) if exc.detail else 'Unknown limit'
    retry_after = '3600' if 'hour' in limit_detail.lower() else '60'
    return JSONResponse(status_code=429, content={'error': 'Rate limit exceeded', 'message': 'Too many requests. Please slow down and try again later.', 'detail': limit_detail, 'retry_after_seconds': int(retry_after)}, headers={'Retry-After': retry_after, 'X-RateLimit-Reset': retry_after})
limiter = Limiter(key_func=get_remote_address, default_limits=['300 per minute', '3000 per hour'], storage_uri='memory://', strategy='fixed-window', headers_enabled=True, swallow_errors=False)
RATE_LIMITS = {'check': '120 per minute', 'batch_check': '20 per minute', 'health': '100 per minute'}
RATE_LIMIT_DESCRIPTIONS = {'check': 'Checking a single message is limited to 120 requests per minute (one request per send click)', 'batch_check': 'Batch checks are limited to 20 requests per minute (each can hold up to 50 messages)', 'health': 'Health and info endpoints are limited to 100 requests per minute'}

def get_rate_limit_info() -> dict:
    return {'strategy': 'fixed-window', 'storage': 'memory', 'key': 'client_ip', 'default_limits': {'per_minute': 300, 'per_hour': 3000}, 'endpoint_limits': RATE_LIMITS, 'descriptions': RATE_LIMIT_DESCRIPTIONS}
