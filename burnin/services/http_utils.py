"""
HTTP Utils
==========
Shared request helper for the GitLab, Alertmanager and Matrix clients.

Every unexpected status code or transport failure becomes an APIError that
carries the request and response details. Nothing is retried here.
"""
import json
import logging
from typing import Any, Optional

import httpx

from burnin.core.errors import APIError

logger = logging.getLogger(__name__)


def send(
    client: httpx.Client,
    service: str,
    method: str,
    url: str,
    expected_status: int = 200,
    json_body: Optional[Any] = None,
    **kwargs: Any,
) -> httpx.Response:
    payload = json.dumps(json_body) if json_body is not None else None
    logger.debug("%s %s", method, url)

    try:
        response = client.request(method, url, json=json_body, **kwargs)
    except httpx.HTTPError as e:
        raise APIError(service, method, url, 0, str(e), payload) from e

    if response.status_code != expected_status:
        raise APIError(
            service,
            method,
            str(response.request.url),
            response.status_code,
            response.text,
            payload,
        )
    return response
