"""
Constants and configuration values for xcodecache.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

import os
import tempfile

# Developer portal URLs
DEVELOPER_SITE_URL = "https://developer.apple.com/"
CATALOG_DOWNLOAD_URL_PREFIX = (
    "https://developer.apple.com/devcenter/download.action?path="
)
CATALOG_LIST_URL = (
    "https://developer.apple.com/services-account/QH65B2/downloadws/"
    "listDownloads.action"
)
PRERELEASE_PAGE_URL = "https://developer.apple.com/download/"
SIGN_IN_URL = "https://idmsa.apple.com/appleauth/auth/signin"

# Catalog parsing
PRODUCT_NAME = "Xcode"
CATALOG_NAME_PATTERN = r"^Xcode [0-9]"
CATALOG_RESULT_OK = 0
ARTIFACT_EXTENSIONS = (".dmg", ".xip")

# Network timeouts and retries (in seconds)
CATALOG_REQUEST_TIMEOUT = 30
DEFAULT_CONNECT_RETRIES = 3
DEFAULT_BACKOFF_FACTOR = 0.3

# Selection defaults
DEFAULT_MINIMUM_VERSION = "7.0"
DEFAULT_FAMILY_SEGMENTS = 2
DEFAULT_KEEP_PER_FAMILY = 2
DEFAULT_SIMULATOR_FLOORS = {
    "iOS": "12.0",
    "tvOS": "12.0",
    "watchOS": "5.0",
}

# Transfer defaults
DEFAULT_MAX_RETRIES = 5
DEFAULT_MAX_RESUME_ATTEMPTS = 3
DEFAULT_DESTINATION = os.devnull
COOKIES_FILE_NAME = "xcode-links-cookies.txt"
COOKIES_PATH = os.path.join(tempfile.gettempdir(), COOKIES_FILE_NAME)
COOKIE_FILE_PERMISSIONS = 0o600
CURL_BINARY = "curl"
ARIA2_BINARY = "aria2c"

# Simulator downloadable index placeholders
DOWNLOADABLE_VERSION_PLACEHOLDER = "$(DOWNLOADABLE_VERSION)"
DOWNLOADABLE_IDENTIFIER_PLACEHOLDER = "$(DOWNLOADABLE_IDENTIFIER)"

# Environment variable names
USER_ENV_VAR = "XCODE_LINKS_USER"
PASSWORD_ENV_VAR = "XCODE_LINKS_PASSWORD"
TEAM_ID_ENV_VAR = "XCODE_LINKS_TEAM_ID"
LOG_LEVEL_ENV_VAR = "XCODECACHE_LOG_LEVEL"

# Operator-facing messages
MSG_MISSING_CREDENTIALS = (
    "Please provide your Apple developer account credentials via the\n"
    f"{USER_ENV_VAR} and {PASSWORD_ENV_VAR} environment variables."
)
MSG_INVALID_CREDENTIALS = (
    "The specified Apple developer account credentials are incorrect."
)

# Configuration file
APP_NAME = "xcodecache"
CONFIG_FILE_NAME = "xcodecache.yaml"

DEFAULT_CONFIG = {
    "MINIMUM_VERSION": DEFAULT_MINIMUM_VERSION,
    "FAMILY_SEGMENTS": DEFAULT_FAMILY_SEGMENTS,
    "KEEP_PER_FAMILY": DEFAULT_KEEP_PER_FAMILY,
    "SIMULATOR_FLOORS": dict(DEFAULT_SIMULATOR_FLOORS),
    "SIMULATOR_INDEXES": [],
    "MAX_RETRIES": DEFAULT_MAX_RETRIES,
    "MAX_RESUME_ATTEMPTS": DEFAULT_MAX_RESUME_ATTEMPTS,
    "DOWNLOAD_DIR": None,
    "LEGACY_ORDER": False,
    "LOG_LEVEL": None,
    "LOG_DIR": None,
}

# Logging configuration
LOGGER_NAME = "xcodecache"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_NAME = "xcodecache.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5
