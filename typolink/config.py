import os
from dataclasses import dataclass
from pathlib import Path
DATA_DIR = Path(__file__).parent / 'data'

@dataclass
class Settings:
    API_PORT: int = int(os.getenv('API_PORT', '8000'))
    API_HOST: str = os.getenv('API_HOST', '0.0.0.0')
    API_LOG_LEVEL: str = os.getenv('API_LOG_LEVEL', 'info')
    CORS_ORIGINS: str = os.getenv('CORS_ORIGINS', 'http://localhost:5173,chrome-extension://*')
    MODEL_PATH: str = os.getenv('MODEL_PATH', 'models/created_model.json')
    WORDS_PATH: str = os.getenv('WORDS_PATH', str(DATA_DIR / 'words.txt'))
    TLDS_PATH: str = os.getenv('TLDS_PATH', str(DATA_DIR / 'tlds.txt'))
    NS_BACKEND: str = os.getenv('NS_BACKEND', 'dns')
    NS_TIMEOUT: float = float(os.getenv('NS_TIMEOUT', '3'))
    DOH_URL: str = os.getenv('DOH_URL', 'https://dns.google/resolve')
    MAX_CANDIDATES: int = int(os.getenv('MAX_CANDIDATES', '50'))

    @property
    def cors_origins(self) -> list:
        return [o.strip() for o in self.CORS_ORIGINS.split(',') if o.strip()]
settings = Settings()
