"""Constants for the navigator layer.

Centralizes scheme names, HTTP status ranges and log component names.
"""

# URL schemes with special handling
SCHEME_FILE = "file"
SCHEME_HTTP = "http"
SCHEME_HTTPS = "https"
SCHEME_JAVASCRIPT = "javascript"

# Proxy schemes accepted by the HTTP client
VALID_PROXY_SCHEMES = ("http", "https")

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300

# Status reported for filesystem reads
FILE_RESPONSE_STATUS = 0

# Log component names
COMPONENT_NAVIGATOR = "navigator"
COMPONENT_SCHEDULER = "scheduler"
COMPONENT_EXECUTOR = "executor"
COMPONENT_CLI = "cli"

# Dialog text
OPEN_WEBSITE_TITLE = "Open website?"
OPEN_WEBSITE_MESSAGE = "The content wants to open the website {url}"
GRANT_ACCESS_TITLE = "Grant read access?"
GRANT_ACCESS_MESSAGE = (
    "The current movie is attempting to read files stored in {directory}.\n\n"
    "To allow it to do so, click Yes, and then Open to grant read access "
    "to that directory.\n\nOtherwise, click No to deny access."
)
