"""Constants for the Quick Train Times integration."""

# Integration domain
DOMAIN = "quick_train_times"

# LDBWS departure board endpoint; the origin CRS code is appended to this
DEPARTURE_BOARD_URL = (
    "https://api1.raildata.org.uk/1010-live-departure-board-dep1_2"
    "/LDBWS/api/20220120/GetDepartureBoard/"
)

# Station used to check a new API key
KEY_CHECK_STATION = "RDG"

# Placeholder key, never sent upstream
SENTINEL_API_KEY = "x" * 48
API_KEY_LENGTH = 48

# Defaults written on first run
DEFAULT_FREQ = 60.0  # seconds
DEFAULT_DESIRED_LEN = 5
MAX_DESIRED_LEN = 150  # LDBWS numRows limit

# Files kept under <config>/quick_train_times/
STORAGE_DIR = DOMAIN
SETTINGS_FILE = "settings.json"
QUICK_TIMES_FILE = "qtt.json"

# Settings document keys
CONF_FREQ = "freq"
CONF_KEY = "key"
CONF_DESIRED_LEN = "desired_len"

# Quick time form keys
CONF_START = "start"
CONF_END = "end"
CONF_ORG = "org"
CONF_DEST = "dest"
CONF_DAYS = "days"

# Destination wildcard: no filterCrs on the request
ANY_DESTINATION = "*"
ANY_STATION_LABEL = "Any Station"

# Shown when the upstream service has no platform yet
PLATFORM_PLACEHOLDER = "?"

# Number of slots on the board, and the cap on active quick times
MAX_ACTIVE_QUICK_TIMES = 2

# 0=Sunday .. 6=Saturday
DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
