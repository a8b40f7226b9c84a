import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from .api import router as api_router
from .config import settings
from .rate_limit import limiter, _rate_limit_exceeded_handler
logging.basicConfig(level=settings.API_LOG_LEVEL.upper(), format='%(asctime)s %(levelname)s %(name)s: %(message)s')
app = FastAPI(title='Typo-URL Detector API', description='Flags link-like tokens that are probably typos of ordinary prose before a message is posted', version='1.0.0')
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

@app.middleware('http')
async def enforce_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    if request.url.scheme == 'https':
        response.headers['Strict-Transport-Security'] = 'max-age=86400; includeSubDomains'
    return response
app.add_middleware(CORSMiddleware, allow_origins=settings.cors_origins, allow_credentials=True, allow_methods=['GET', 'POST', 'OPTIONS'], allow_headers=['*'])
app.include_router(api_router, prefix='/api', tags=['typo-check'])

@app.get('/')
def root():
    return {'message': 'Typo-URL Detector API', 'docs': '/docs', 'health': '/api/health'}
