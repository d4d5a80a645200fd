"""Configuration constants.

Values here are protocol constraints and implementation details that are
not user-configurable. For configurable values, see models.py.
"""

# =============================================================================
# Server supervision
# =============================================================================

SERVER_POLL_INTERVAL_SEC = 0.1
"""Delay between readiness connect attempts."""

SERVER_STOP_GRACE_SEC = 5.0
"""Grace period between terminate and kill when stopping the server."""

SERVER_HOST = "localhost"

JASMINE_GEM_PORT = 8888
"""Port the jasmine gem server listens on by default."""

RACK_BACKENDS = ("webrick", "mongrel", "thin", "puma")
"""Servers started through rackup -s <backend>."""

DETECTABLE_BACKENDS = ("unicorn", "thin", "mongrel", "puma")
"""Probe order used by server detection when a config.ru exists."""

FALLBACK_BACKEND = "webrick"

BACKEND_EXECUTABLES = {
    "unicorn": "unicorn_rails",
    "thin": "thin",
    "mongrel": "mongrel_rails",
    "puma": "puma",
}
"""Executable that proves a detectable backend is installed."""

RACKUP_BINARY = "rackup"
UNICORN_BINARY = "unicorn_rails"
TASK_RUNNER_BINARY = "rake"
JASMINE_GEM_TASK = "jasmine"

JASMINE_GEM_CONFIG = ("support", "jasmine.yml")
"""Path under the spec dir that marks a jasmine gem project."""

RACKUP_FILE = "config.ru"

# =============================================================================
# Runner
# =============================================================================

RUNNER_BINARY = "phantomjs"

DEFAULT_SPEC_DIRS = ("spec/javascripts", "spec")

SPEC_FILE_PATTERN = r"(?:_s|S)pec\.(js|coffee|js\.coffee)$"
"""Paths that count as spec files when cleaning modified paths."""

UNSAFE_JS_WARNING = r"Unsafe JavaScript.*"
"""Warning lines the headless browser interleaves with the JSON payload."""

# =============================================================================
# Reports
# =============================================================================

REPORT_MODES = ("always", "never", "failure")
DEFAULT_REPORT_MODE = "failure"

# =============================================================================
# Coverage
# =============================================================================

COVERAGE_TOOL = "istanbul"

COVERAGE_DIR = ("tmp", "coverage")
"""Coverage root relative to the working directory."""

COVERAGE_FILE = "coverage.json"

THRESHOLD_METRICS = ("statements", "functions", "branches", "lines")

# =============================================================================
# Protocol/Validation Constants
# =============================================================================

PORT_MIN = 1
PORT_MAX = 65535
"""Valid port range. Leave the port unset to get a free one."""
