"""Configuration and setup for the Prisma Render studio"""

import os
import json
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _clean_key(raw: str) -> str:
    return raw.replace('"', "").replace("'", "").strip()


# Credential Configuration
GEMINI_API_KEY = _clean_key(os.getenv('GEMINI_API_KEY') or os.getenv('API_KEY') or '')
USE_VERTEXAI = os.getenv('GOOGLE_GENAI_USE_VERTEXAI', '').lower() in ('1', 'true', 'yes')

# GCP Configuration (Vertex AI mode only)
PROJECT_ID = os.getenv('GCP_PROJECT_ID')
LOCATION = os.getenv('GOOGLE_CLOUD_REGION', 'us-central1')

# Storage Configuration
OUTPUT_DIR = os.getenv('OUTPUT_DIR', './outputs')
SESSION_BUCKET_NAME = os.getenv('SESSION_BUCKET_NAME', '')
DEPLOYMENT_ENV = os.getenv('DEPLOYMENT_ENV', 'DEV')

# Model Configuration
IMAGE_MODEL = "gemini-3-pro-image-preview"
IMAGE_SIZE = "2K"
VIDEO_MODEL = "veo-3.1-fast-generate-preview"

# Retry Configuration
DEFAULT_MAX_RETRIES = 3
RETRY_BASE_DELAY = 2.0  # seconds, doubled on every attempt

# Google Veo Configuration
GOOGLE_VEO_CONFIG = {
    "default_model": VIDEO_MODEL,
    "max_wait_time": 600,
    "check_interval": 10,  # 10s polling keeps us clear of rate limits
    "resolution": "720p",
    "number_of_videos": 1,
    "aspect_ratios": ["16:9", "9:16"],
}

# Image aspect ratios accepted by the image model.
# "Original" is resolved locally to the nearest of these.
SUPPORTED_ASPECT_RATIOS = {
    "1:1": 1.0,
    "3:4": 0.75,
    "4:3": 1.33,
    "9:16": 0.5625,
    "16:9": 1.777,
}

# Editor Configuration
MIN_ZOOM = 1.0
MAX_ZOOM = 4.0
WHEEL_ZOOM_SENSITIVITY = 0.001
FREEHAND_MIN_DISTANCE_SQ = 0.05  # squared distance in percentage units
PIN_HIT_RADIUS = 16.0  # device pixels
CLICK_TOLERANCE = 4.0  # device pixels
DUPLICATE_OFFSET = 2.0  # percentage units

# Element defaults
DEFAULT_COLOR_TEMPERATURE = 3000
DEFAULT_POSE = "auto"
DEFAULT_INSTALL_SIDE = "front"
DEFAULT_PLACEMENT = (50.0, 50.0)

# Prompt defaults
DEFAULT_BASE_PROMPT = "Architectural scene"
DEFAULT_VIDEO_DURATION = "5"


def load_credentials():
    """Load service account credentials for Vertex AI mode.

    Returns None when no service account is configured so that API-key mode
    and tests never touch Google auth.
    """
    credentials_json = os.getenv('credentials_dict')
    if not credentials_json:
        return None

    from google.oauth2 import service_account

    credentials_info = json.loads(credentials_json)
    return service_account.Credentials.from_service_account_info(
        credentials_info,
        scopes=['https://www.googleapis.com/auth/cloud-platform']
    )
