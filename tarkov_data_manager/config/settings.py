import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    DB_USER = os.getenv('DB_USER', 'postgres')
    DB_PASSWORD = os.getenv('DB_PASSWORD', 'postgres')
    DB_HOST = os.getenv('DB_HOST', 'localhost')
    DB_PORT = os.getenv('DB_PORT', '5432')
    DB_NAME = os.getenv('DB_NAME', 'tarkov_data')

    # Root for cache/, dumps/, settings/ and logs/
    DATA_DIR = Path(os.getenv('DATA_DIR', Path.cwd()))

    TARKOV_DATA_URL = os.getenv('TARKOV_DATA_URL', 'https://data.tarkov.dev/json')
    KV_API_URL = os.getenv('KV_API_URL', '')
    KV_API_TOKEN = os.getenv('KV_API_TOKEN', '')
    ALERT_WEBHOOK_URL = os.getenv('ALERT_WEBHOOK_URL', '')

    SCHED_TZ = os.getenv('SCHED_TZ', 'UTC')

    @classmethod
    def get_db_url(cls):
        return f"postgresql://{cls.DB_USER}:{cls.DB_PASSWORD}@{cls.DB_HOST}:{cls.DB_PORT}/{cls.DB_NAME}"

    @staticmethod
    def is_dev() -> bool:
        return os.getenv('ENVIRONMENT', 'production') == 'dev'

    @staticmethod
    def skip_jobs() -> bool:
        """Maintenance switch: scheduled and startup runs are skipped."""
        return os.getenv('SKIP_JOBS', 'false').lower() == 'true'

    @staticmethod
    def verbose_logs() -> bool:
        return os.getenv('VERBOSE_LOGS', 'false').lower() == 'true'

    @classmethod
    def path(cls, *parts: str) -> Path:
        return Path(cls.DATA_DIR).joinpath(*parts)
