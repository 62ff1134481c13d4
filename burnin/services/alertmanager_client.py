"""
Alertmanager Client
===================
Creates and deletes silences through the Alertmanager v2 API.
"""
import logging
from datetime import datetime
from typing import Optional, Sequence

import httpx

from burnin.core import config
from burnin.models.silence import AlertMatcher
from burnin.services.http_utils import send

logger = logging.getLogger(__name__)

SERVICE = "Alertmanager"


class AlertmanagerClient:
    def __init__(
        self,
        api_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.http = httpx.Client(
            timeout=timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    def create_silence(
        self,
        matchers: Sequence[AlertMatcher],
        starts_at: datetime,
        ends_at: datetime,
        created_by: str,
        comment: str,
    ) -> str:
        payload = {
            "matchers": [m.model_dump(by_alias=True) for m in matchers],
            "startsAt": starts_at.isoformat(),
            "endsAt": ends_at.isoformat(),
            "createdBy": created_by,
            "comment": comment,
        }
        response = send(self.http, SERVICE, "POST", f"{self.api_url}/silences", json_body=payload)
        return response.json()["silenceID"]

    def delete_silence(self, silence_id: str) -> None:
        send(self.http, SERVICE, "DELETE", f"{self.api_url}/silence/{silence_id}")
