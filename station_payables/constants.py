APP_NAME = "Station Payables"

# Ledger / payment service
API_BASE_URL = "http://localhost:3001/api"
API_TIMEOUT_SECONDS = 30.0
READ_RETRY_ATTEMPTS = 3

# Money
CURRENCY_CODE = "KES"
CURRENCY_STEP = "0.01"

# Logging
LOG_LEVEL = "INFO"
LOGGER_NAME = "station_payables"

# Session
REFETCH_BEFORE_SUBMIT = True
