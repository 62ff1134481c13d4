"""
Matrix Client
=============
Sends burn-in notifications as HTML messages to a Matrix room.
"""
import logging
from typing import Optional

import httpx

from burnin.core import config
from burnin.models.deployment import Deployment
from burnin.models.request import Request
from burnin.services import message_templates
from burnin.services.http_utils import send
from burnin.utils.url_utils import add_paths_to_url

logger = logging.getLogger(__name__)

SERVICE = "Matrix"


class MatrixClient:
    def __init__(
        self,
        homeserver_url: str,
        room_id: str,
        access_token: str,
        ci_job_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.homeserver_url = homeserver_url
        self.room_id = room_id
        self.ci_job_url = ci_job_url
        self.http = httpx.Client(
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    def close(self) -> None:
        self.http.close()

    def authenticate(self) -> None:
        send(self.http, SERVICE, "HEAD", add_paths_to_url(self.homeserver_url, "_matrix/client/r0/sync"))

    def send_request_notification(self, request: Request) -> None:
        self.send_html_message(message_templates.render_request(request, self.ci_job_url))

    def send_deployment_notification(self, deployment: Deployment) -> None:
        self.send_html_message(message_templates.render_deployment(deployment, self.ci_job_url))

    def send_update_notification(self, deployment: Deployment) -> None:
        self.send_html_message(message_templates.render_update(deployment, self.ci_job_url))

    def send_cleanup_notification(self, deployment: Deployment) -> None:
        self.send_html_message(message_templates.render_cleanup(deployment, self.ci_job_url))

    def send_error_notification(self, error: BaseException) -> None:
        self.send_html_message(message_templates.render_error(error, self.ci_job_url))

    def send_html_message(self, formatted_body: str) -> None:
        url = add_paths_to_url(
            self.homeserver_url, "_matrix/client/r0/rooms", self.room_id, "send/m.room.message",
        )
        payload = {
            "msgtype": "m.text",
            "format": "org.matrix.custom.html",
            "body": "",
            "formatted_body": formatted_body,
        }
        logger.info("Sending notification to Matrix room %s", self.room_id)
        send(self.http, SERVICE, "POST", url, json_body=payload)
