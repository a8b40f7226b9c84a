import uvicorn
from dotenv import load_dotenv
if __name__ == '__main__':
    load_dotenv()
    from typolink.config import settings
    uvicorn.run('typolink.main:app', host=settings.API_HOST, port=settings.API_PORT, log_level=settings.API_LOG_LEVEL, reload=True)
