"""
OANDA Stream - Settings Module
==============================

Usage:
    from config.settings import settings

    account = settings.OANDA_ACCOUNT_ID
    if settings.is_live:
        ...
"""

import os
from pathlib import Path
from dotenv import load_dotenv


class Settings:
    def __init__(self):
        self.ENV = os.getenv('APP_ENV', 'development')

        # Try config folder first, then root
        config_dir = Path(__file__).parent
        env_file = config_dir / f'.env.{self.ENV}'
        if not env_file.exists():
            env_file = config_dir.parent / '.env'
        if env_file.exists():
            load_dotenv(env_file)

        # OANDA
        self.OANDA_ACCOUNT_ID = os.getenv('OANDA_ACCOUNT_ID', '')
        self.OANDA_API_TOKEN = os.getenv('OANDA_API_TOKEN', '')
        self.OANDA_ENVIRONMENT = os.getenv('OANDA_ENVIRONMENT', 'practice').strip().lower()
        self.OANDA_INSTRUMENTS = os.getenv('OANDA_INSTRUMENTS', 'EUR_USD,USD_JPY')
        self.OANDA_STREAM_URL = os.getenv('OANDA_STREAM_URL', '')

        # Logging
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
        self.LOG_FILE = os.getenv('LOG_FILE', '')

    @property
    def is_live(self): return self.OANDA_ENVIRONMENT == 'live'

    @property
    def is_production(self): return self.ENV == 'production'

    @property
    def is_development(self): return self.ENV == 'development'

    @property
    def is_test(self): return self.ENV == 'test'

    def as_dict(self) -> dict:
        """Settings as a plain dict (unmasked)."""
        return {
            'env': self.ENV,
            'account_id': self.OANDA_ACCOUNT_ID,
            'api_token': self.OANDA_API_TOKEN,
            'environment': self.OANDA_ENVIRONMENT,
            'instruments': self.OANDA_INSTRUMENTS,
            'stream_url': self.OANDA_STREAM_URL,
            'log_level': self.LOG_LEVEL,
            'log_file': self.LOG_FILE,
        }


settings = Settings()
