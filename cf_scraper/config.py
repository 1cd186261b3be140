"""Configuration constants for the Codeforces scraper"""

from pathlib import Path

# Site configuration
BASE_URL = "https://codeforces.com"
LOGIN_URL = f"{BASE_URL}/enter"
API_BASE_URL = f"{BASE_URL}/api"
PROBLEM_URL_TEMPLATE = BASE_URL + "/contest/{contest_id}/problem/{index}"
STATUS_URL_TEMPLATE = (
    BASE_URL + "/contest/{contest_id}/status?submittedProblemIndex={index}"
)
DEFAULT_COOKIE_FILE = Path("./cookies/cf_session.json")
DEFAULT_OUTPUT_DIR = Path("./output")

# Credentials are read from the environment, never from disk
USERNAME_ENV_VAR = "CF_USERNAME"
PASSWORD_ENV_VAR = "CF_PASSWORD"

# Navigation retry configuration (fixed backoff, never exponential)
NAV_MAX_ATTEMPTS = 3
NAV_RETRY_DELAY = 2.0

# Timeouts (in seconds)
NAVIGATION_TIMEOUT = 30.0
CHALLENGE_TIMEOUT = 30.0  # script interstitial must clear within this
SETTLE_TIMEOUT = 30.0  # post-challenge settle wait
LOGIN_SETTLE_TIMEOUT = 15.0
CONTENT_TIMEOUT = 15.0  # problem statement container wait
DEFAULT_ITEM_TIMEOUT = 120.0  # overall per-item deadline
SOURCE_TIMEOUT = 15.0  # submission source wait
DEFAULT_REQUEST_TIMEOUT = 15.0  # public API requests

# Circuit breaker configuration
CIRCUIT_BREAKER_THRESHOLD = 5  # Failures before opening circuit
CIRCUIT_BREAKER_TIMEOUT = 300  # 5 minutes before trying again

# Accepted solutions taken from the status page
DEFAULT_SOLUTION_LIMIT = 1

# Batch configuration
BATCH_CHUNK_SIZE = 3
BATCH_DELAY_RANGE = (2.0, 5.0)

# Human-like delays (in seconds)
TYPING_DELAY_RANGE = (0.05, 0.15)
FIELD_PAUSE_RANGE = (0.5, 1.0)
INTERACTIVE_DELAY_RANGE = (2.0, 4.0)
MANAGED_DELAY_RANGE = (3.0, 6.0)
MAX_INTERACTIVE_ROUNDS = 3

# Diagnostics
BODY_EXCERPT_LENGTH = 500
