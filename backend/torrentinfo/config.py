"""
Configuration settings for torrentinfo.
Loads configuration from .env file with fallback to defaults.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Base directory
BASE_DIR = Path(__file__).parent.absolute()

# ===== Network Settings =====
HOST = os.getenv('HOST', '0.0.0.0')
PORT = int(os.getenv('PORT', '5000'))
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-key-123')

# ===== File Storage =====
TORRENT_FOLDER = os.getenv('TORRENT_FOLDER', os.path.join(BASE_DIR, 'torrents'))
TORRENT_EXTENSION = '.torrent'

# ===== Parser Limits =====
MAX_NESTING_DEPTH = int(os.getenv('MAX_NESTING_DEPTH', '512'))
MAX_TORRENT_SIZE = int(os.getenv('MAX_TORRENT_SIZE', str(16 * 1024 * 1024)))  # bytes

# ===== Directory Scanning =====
SCAN_WORKERS = int(os.getenv('SCAN_WORKERS', '4'))
MAX_WALK_DEPTH = int(os.getenv('MAX_WALK_DEPTH', '999'))

# ===== Application Settings =====
DEBUG = os.getenv('DEBUG', 'False').lower() in ('true', '1', 't')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO' if not DEBUG else 'DEBUG')
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
