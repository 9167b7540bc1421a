from __future__ import annotations


class SproutConnectorError(Exception):
    """Base class for every failure raised by the connector."""


class SproutVideoApiError(SproutConnectorError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None,
        auth_failed: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.auth_failed = auth_failed


class VideoDataError(SproutConnectorError):
    """A video record carries a value the connector cannot interpret."""


class TagLookupError(VideoDataError):
    def __init__(self, tag_id: str) -> None:
        super().__init__(f"Video references unknown tag id: {tag_id}")
        self.tag_id = tag_id


class VideoNotFoundError(SproutConnectorError):
    def __init__(self, video_id: str) -> None:
        super().__init__("Video not found")
        self.video_id = video_id


class InvalidInputError(SproutConnectorError):
    pass
