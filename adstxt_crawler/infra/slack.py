"""Deliver the CSV report to a Slack channel."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from ..config import SlackConfig
from ..errors import DeliveryError

SLACK_API = "https://slack.com/api"


class SlackUploader:
    """Upload a text file using Slack's external upload flow.

    ``files.getUploadURLExternal`` reserves the file, the content is posted to the
    returned URL, and ``files.completeUploadExternal`` shares it to the channel.
    """

    def __init__(
        self,
        config: SlackConfig,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=30)
        self.logger = logger or structlog.get_logger("adstxt_crawler.slack")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def upload(self, content: str, filename: str | None = None, title: str | None = None) -> str:
        """Upload ``content`` and return the Slack file id."""

        filename = filename or self.config.filename
        data = content.encode("utf-8")
        reserved = self._call(
            "files.getUploadURLExternal",
            data={"filename": filename, "length": str(len(data))},
        )
        upload_url = reserved.get("upload_url")
        file_id = reserved.get("file_id")
        if not upload_url or not file_id:
            raise DeliveryError("Slack did not return an upload URL")

        try:
            response = self._client.post(
                upload_url, content=data, headers={"Content-Type": "text/csv"}
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DeliveryError(f"could not upload file to slack: {exc}") from exc

        self._call(
            "files.completeUploadExternal",
            json={
                "files": [{"id": file_id, "title": title or self.config.title}],
                "channel_id": self.config.channel_id,
            },
        )
        self.logger.info("report_delivered", channel=self.config.channel_id, file_id=file_id, bytes=len(data))
        return file_id

    def _call(self, method: str, **kwargs: Any) -> dict:
        try:
            response = self._client.post(
                f"{SLACK_API}/{method}",
                headers={"Authorization": f"Bearer {self.config.token}"},
                **kwargs,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise DeliveryError(f"slack {method} failed: {exc}") from exc
        if not payload.get("ok"):
            raise DeliveryError(f"slack {method} failed: {payload.get('error', 'unknown_error')}")
        return payload


__all__ = ["SLACK_API", "SlackUploader"]
