"""HTTP constants for the transport layer.

Centralizes header names, status codes, and default policy values used by
the interceptor pipeline.
"""

# HTTP Status Codes
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_FORBIDDEN = 403
HTTP_STATUS_CSRF_TOKEN_MISMATCH = 419
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Statuses that mean the anti-forgery token was rejected
CSRF_REJECTION_STATUSES = frozenset(
    {HTTP_STATUS_FORBIDDEN, HTTP_STATUS_CSRF_TOKEN_MISMATCH}
)

# Verbs that change server state and therefore carry a CSRF token
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Header names
HEADER_REQUESTED_WITH = "X-Requested-With"
HEADER_REQUESTED_WITH_VALUE = "XMLHttpRequest"
HEADER_CSRF_TOKEN = "X-CSRF-TOKEN"
HEADER_AUTHORIZATION = "Authorization"
HEADER_SKIP_AUTH_LOGOUT = "X-Skip-Auth-Logout"

# Multipart form field some server frameworks read the CSRF token from
CSRF_FORM_FIELD = "_token"

# Endpoints expected to answer 401 during normal operation
DEFAULT_AUTH_PROBE_PATHS = (
    "/auth/login",
    "/auth/register",
    "/auth/refresh-token",
    "/auth/me",
    "/auth/verify",
    "/auth/passkey",
    "/passkey",
    "/auth/oauth",
    "/auth/forgot-password",
    "/auth/reset-password",
    "/categories",
)

# Deadlines in milliseconds per operation class
TIMEOUT_FAST_MS = 5000
TIMEOUT_DEFAULT_MS = 8000
TIMEOUT_UPLOAD_AI_MS = 8000
TIMEOUT_UPLOAD_STANDARD_MS = 8000

# Base URL resolution
DEVELOPMENT_MODE = "development"
DEVELOPMENT_BASE_URL = "/api"
PLATFORM_HOSTNAME = "platform.shoptrack.app"
PLATFORM_API_URL = "https://api.shoptrack.app/api"
DEFAULT_API_PROTOCOL = "https"
DEFAULT_API_HOST = "api.shoptrack.app"
STANDARD_PORTS = frozenset({"80", "443"})

# Log component name
COMPONENT_TRANSPORT = "transport"
COMPONENT_SESSION = "session"
