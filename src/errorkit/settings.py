import logging

DEFAULT_LEVEL = logging.ERROR
DEDUPE_MAX_ENTRIES = 1024
THROTTLE_MAX_KEYS = 4096

LOGGER_NAME = "errorkit"

WEBHOOK_BATCH_SIZE = 20
WEBHOOK_FLUSH_INTERVAL = 5.0  # seconds
WEBHOOK_TIMEOUT = 10.0  # seconds
WEBHOOK_MAX_BUFFER = 1000
