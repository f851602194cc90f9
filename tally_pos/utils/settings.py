# tally_pos/utils/settings.py
import os
from dotenv import load_dotenv

load_dotenv()

API_URL = os.getenv("API_URL", "http://localhost:3000")
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 5))
SESSION_FILE = os.getenv("SESSION_FILE", os.path.expanduser("~/.tally_pos/session.json"))
SEARCH_DEBOUNCE_SECONDS = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", 0.3))
RECEIPT_WIDTH = int(os.getenv("RECEIPT_WIDTH", 40))
STORE_NAME = os.getenv("STORE_NAME", "TALLY POS")
STORE_TAGLINE = os.getenv("STORE_TAGLINE", "Point of Sale System")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
