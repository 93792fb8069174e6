"""
Errors raised while resolving a Bilibili video into DASH streams.
"""


class BilibiliError(Exception):
    """Base class for every failure of the resolution pipeline."""


class InvalidIdentifier(BilibiliError):
    """The bvid (or an explicit cid) is empty or malformed. Raised before any network call."""


class UpstreamError(BilibiliError):
    """
    A remote Bilibili call failed
    :param step: name of the pipeline step that failed (nav, view, playurl)
    :param message: human readable reason
    :param status: HTTP status or Bilibili response code, when one is known
    """

    def __init__(self, step: str, message: str, status: int = None):
        self.step = step
        self.message = message
        self.status = status
        super().__init__(f"[{step}] {message}")


class UpstreamTimeout(UpstreamError):
    """A remote call did not answer within the configured timeout."""


class KeyFetchError(UpstreamError):
    """The nav endpoint did not return usable WBI keys."""

    def __init__(self, message: str, status: int = None):
        super().__init__('nav', message, status)


class NoStreamsAvailable(BilibiliError):
    """The play API answered without audio or without video streams."""
