"""
Environment configuration for Work Diary
"""
import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')
load_dotenv()

# MongoDB connection
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'work_diary')

# JWT Configuration
JWT_SECRET = os.environ.get('JWT_SECRET', 'work_diary_secret_key')
JWT_ALGORITHM = 'HS256'
TOKEN_TTL_DAYS = int(os.environ.get('TOKEN_TTL_DAYS', '30'))

# Server
PORT = int(os.environ.get('PORT', '5001'))
CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',') if o.strip()]
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

# Client
API_BASE_URL = os.environ.get('WORK_DIARY_API_URL', 'http://localhost:5001/api')
REQUEST_TIMEOUT_SECONDS = 10.0
SAVE_DEBOUNCE_SECONDS = 1.0
STATUS_MESSAGE_SECONDS = 3.0
SAVED_MESSAGE_SECONDS = 2.0
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
