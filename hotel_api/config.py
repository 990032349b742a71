"""Configuration for the hotel search API."""

import os

# Server
PORT = int(os.environ.get("PORT", "5000"))
HOST = "0.0.0.0"

# Remote hotel inventory service
IPRO_BASE_URL = os.environ.get("IPRO_BASE_URL", "https://admin.ipro-booking.com/api/hotel")
IPRO_LOGIN = os.environ.get("IPRO_LOGIN", "")
IPRO_PASSWORD = os.environ.get("IPRO_PASSWORD", "")

# Request timeouts (seconds)
TIMEOUT_DEFAULT = 60.0
TIMEOUT_SEARCH = 120.0

# Batch enrichment
BATCH_SIZE = 5
BATCH_DELAY = 0.1  # seconds between batches

# Search
MAX_HOTELS_PER_SEARCH = 20

# Retry (applied by the service layer, never inside the client)
MAX_RETRIES = 3
RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 5.0

# Cache TTLs (seconds)
CACHE_TTL_REFERENCE = 30 * 60      # countries, cities, categories...
CACHE_TTL_HOTELS_LIST = 10 * 60
CACHE_TTL_HOTEL_DETAIL = 5 * 60
CACHE_TTL_HOTELS_ENHANCED = 15 * 60
CACHE_TTL_SEARCH = 2 * 60

# Cache max sizes
CACHE_MAX_REFERENCE = 50
CACHE_MAX_HOTELS_LIST = 200
CACHE_MAX_HOTEL_DETAIL = 2000
CACHE_MAX_HOTELS_ENHANCED = 100
CACHE_MAX_SEARCH = 200

# Session storage
SESSION_TTL = 24 * 60 * 60
SESSION_MAX_ENTRIES = 500
OFFLOAD_THRESHOLD_RAW = 1024 * 1024       # move raw results above 1 MiB
OFFLOAD_THRESHOLD_MERGED = 512 * 1024     # move merged results above 512 KiB

# Pagination
PAGE_SIZE_DEFAULT = 10
PAGE_SIZE_COMPACT = 6
COMPACT_SCREEN_MAX_WIDTH = 768
