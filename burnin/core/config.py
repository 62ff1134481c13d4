"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    CI_SERVER_URL             — GitLab server hosting the burn-in repository
    CI_PROJECT_ID             — GitLab project ID of the burn-in repository
    GITLAB_TOKEN              — API token (needs api scope and runner admin rights)
    CI_COMMIT_BRANCH          — Branch the "request" and "run" files live on
    CI_COMMIT_SHA             — Commit to inspect (falls back to the branch head)
    CI_JOB_ID                 — Current CI job, linked in chat notifications
    BUILD_GITLAB_PROJECT_ID   — GitLab project that builds the node binary
    ALERTMANAGER_API_URL      — Alertmanager v2 API used for silences
    MATRIX_HOMESERVER_URL     — Matrix homeserver for notifications
    MATRIX_ROOM_ID            — Room that receives notifications
    MATRIX_TOKEN              — Matrix access token
    DEBUG_ANSIBLE             — 1 adds --diff, 2 additionally adds -vvvv

Per-environment overrides:
    NIGHTLY_BUILD_URL, UPSTREAM_REPOSITORY_PREFIX, BUILD_JOB_NAME,
    BUILD_BINARY_NAME, SILENCE_DURATION_MINUTES and
    REFRESH_SILENCE_DURATION_MINUTES replace values that would otherwise be
    hard-coded in the jobs.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# GitLab
CI_SERVER_URL = os.getenv("CI_SERVER_URL", "https://gitlab.example.com")
CI_PROJECT_ID = int(os.getenv("CI_PROJECT_ID", 0))
GITLAB_TOKEN = os.getenv("GITLAB_TOKEN", "")
CI_COMMIT_BRANCH = os.getenv("CI_COMMIT_BRANCH", "master")
CI_COMMIT_SHA = os.getenv("CI_COMMIT_SHA", "")
CI_JOB_ID = int(os.getenv("CI_JOB_ID", 0))
BUILD_GITLAB_PROJECT_ID = int(os.getenv("BUILD_GITLAB_PROJECT_ID", 42))

# Alertmanager
ALERTMANAGER_API_URL = os.getenv("ALERTMANAGER_API_URL", "http://alertmanager.example.com/api/v2")
SILENCE_DURATION_MINUTES = int(os.getenv("SILENCE_DURATION_MINUTES", 5))
REFRESH_SILENCE_DURATION_MINUTES = int(os.getenv("REFRESH_SILENCE_DURATION_MINUTES", 20))

# Matrix (default room is "Burn-in Monitoring")
MATRIX_HOMESERVER_URL = os.getenv("MATRIX_HOMESERVER_URL", "https://matrix.example.com/")
MATRIX_ROOM_ID = os.getenv("MATRIX_ROOM_ID", "!someroom:matrix.example.com")
MATRIX_TOKEN = os.getenv("MATRIX_TOKEN", "")

# Builds
NIGHTLY_BUILD_URL = os.getenv(
    "NIGHTLY_BUILD_URL",
    "https://releases.example.com/builds/polkadot/x86_64-debian:stretch/master/polkadot",
)
UPSTREAM_REPOSITORY_PREFIX = os.getenv("UPSTREAM_REPOSITORY_PREFIX", "https://github.com/paritytech/polkadot/")
BUILD_JOB_NAME = os.getenv("BUILD_JOB_NAME", "build-linux-stable")
BUILD_BINARY_NAME = os.getenv("BUILD_BINARY_NAME", "polkadot")

# Observability links
NODE_DOMAIN = os.getenv("NODE_DOMAIN", "example.com")
GRAFANA_URL = os.getenv("GRAFANA_URL", "http://grafana.example.com")
BURNIN_OVERVIEW_URL = os.getenv("BURNIN_OVERVIEW_URL", "https://burnins.example.com/")

# Ansible
DEBUG_ANSIBLE = int(os.getenv("DEBUG_ANSIBLE", 0))

# HTTP clients
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 10))

LOG_DIR = os.getenv("LOG_DIR", "logs")
