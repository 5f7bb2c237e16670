DEFAULT_WINDOW_DAYS: int = 90
DEFAULT_DAY_BUCKETS: int = 30
MAX_DAY_BUCKETS: int = 366     # upper bound for ?days= on the HTTP API

# service -> target availability ratio
DEFAULT_SERVICE_SLAS: dict[str, float] = {
    "delivery": 0.9999,
    "publishing": 0.999,
}

ARCHIVE_PATH: str = "incidents/index.json"

# spreadsheet-backed feed of the currently open incident
FEED_URL: str = (
    "https://script.google.com/macros/s/"
    "AKfycbxoBSj7v-y5WyoeSn1T0KcFsoQXEYQiiK_nmOPf-pKAJqf7w46ubpt0XmwFM7qdbzgCzw/exec"
)

CACHE_TTL_SECONDS: int = 120
REFRESH_INTERVAL_SECONDS: int = 60
REQUEST_TIMEOUT_SECONDS: int = 10
MAX_RETRIES: int = 5
RETRY_BASE_DELAY_SECONDS: int = 2   # delay = base * 2^n, capped at MAX_RETRY_DELAY_SECONDS
MAX_RETRY_DELAY_SECONDS: int = 300  # 5 minutes

HTTP_HOST: str = "127.0.0.1"
HTTP_PORT: int = 8080
