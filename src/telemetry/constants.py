"""Constants for the telemetry module."""

# Log component name
COMPONENT_TELEMETRY = "telemetry"

# Delivery defaults
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_MAX_QUEUE_SIZE = 1000
DEFAULT_DELIVERY_TIMEOUT_SECONDS = 10.0
BEACON_TIMEOUT_SECONDS = 2.0

# Session identifier format: session_<epoch-ms>_<9 chars>
SESSION_ID_PREFIX = "session"
SESSION_ID_RANDOM_LENGTH = 9
SESSION_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

# Report context labels
CONTEXT_UNKNOWN = "Unknown"
CONTEXT_NETWORK_ERROR = "Network Error"
CONTEXT_VALIDATION_ERROR = "Validation Error"
CONTEXT_API_ERROR = "API Error"
CONTEXT_UNHANDLED_ASYNC_ERROR = "Unhandled Async Error"

# Form fields whose values never leave the client
SENSITIVE_FIELD_MARKERS = ("password", "token", "apikey", "secret")
REDACTED_VALUE = "[REDACTED]"

DEFAULT_USER_AGENT = "shoptrack-client/1.0"
