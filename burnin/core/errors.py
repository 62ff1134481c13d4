"""
Errors
======
Exception hierarchy shared by the jobs, the build resolver and the clients.

Every fatal condition of a CI invocation derives from BurninError so that
main.py can log it and forward it to the chat room before exiting.
"""
from typing import Optional


class BurninError(Exception):
    """Base class for all burn-in automation failures."""


class InvalidCommitError(BurninError):
    """The last commit does not have the shape the current job expects."""


class InvalidRecordError(BurninError):
    """A request or run file failed to parse or validate."""


class PreconditionError(BurninError):
    """The records are in a state that does not allow the requested step."""


class BuildError(BurninError):
    """The upstream build could not produce a usable binary."""


class PollTimeoutError(BurninError):
    """A polled status did not leave its wait states within the timeout."""


class PipelineNotFoundError(BurninError):
    """No pipeline exists (yet) for the requested commit."""


class PlaybookError(BurninError):
    """ansible-playbook failed or produced a suspicious output."""


class APIError(BurninError):
    """An HTTP call to GitLab, Alertmanager or Matrix returned an unexpected status."""

    def __init__(
        self,
        service: str,
        method: str,
        url: str,
        status_code: int,
        response_body: str = "",
        payload: Optional[str] = None,
    ) -> None:
        self.service = service
        self.method = method
        self.url = url
        self.status_code = status_code
        self.response_body = response_body
        self.payload = payload
        super().__init__(
            f"HTTP request to {service} API failed.\n"
            f"Request: {method} {url}\n"
            f"Body: {payload or ''}\n\n"
            f"Response: {status_code}\n"
            f"Body: {response_body}"
        )
