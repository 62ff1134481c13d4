"""
Constants
Centralised storage for record path conventions, commit message prefixes,
and CI status sets.
"""
REQUESTS_DIR = "requests"
RUNS_DIR = "runs"
REQUEST_PATH_PREFIX = "requests/request-"
RUN_PATH_PREFIX = "runs/run-"
RECORD_SUFFIX = ".toml"

SKIP_CI_PREFIX = "[skip ci]"
UPDATE_DEPLOYMENT_PREFIX = "[update-deployment]"
CLEANUP_PREFIX = "[cleanup]"

COMMIT_AUTHOR_NAME = "Burn-in Automator"
COMMIT_AUTHOR_EMAIL = "bot@example.com"
SILENCE_CREATED_BY = "Burn-in Automator"

# Mutable fields tracked by the diff classifier
COMMIT_SHA_FIELD = "commit_sha"
CUSTOM_BINARY_FIELD = "custom_binary"
CUSTOM_OPTIONS_FIELD = "custom_options"
TRACKED_FIELDS = (COMMIT_SHA_FIELD, CUSTOM_BINARY_FIELD, CUSTOM_OPTIONS_FIELD)

MAX_NODES_PER_TYPE = 5

# Polling
POLL_INTERVAL_SECONDS = 5.0
PIPELINE_LOOKUP_TIMEOUT_SECONDS = 5 * 60
BUILD_JOB_TIMEOUT_SECONDS = 45 * 60
DEFAULT_WAIT_STATUSES = frozenset({"created", "waiting_for_resource", "preparing", "pending"})
PIPELINE_MISSING_STATUS = "nonexistent"

# A failed pipeline can still carry a usable build job.
CONTINUABLE_PIPELINE_STATUSES = frozenset({"created", "pending", "running", "success", "failed"})
PENDING_JOB_STATUSES = frozenset({"created", "waiting_for_resource", "preparing", "pending", "running"})
STARTABLE_JOB_STATUSES = frozenset({"manual", "canceled", "skipped"})
ARTIFACT_SUBPATH = "artifacts/raw/artifacts"

REFRESH_SILENCE_COMMENT = "Deploying nightly Polkadot build to idle burn-in nodes"
