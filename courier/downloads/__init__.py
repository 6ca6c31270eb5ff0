"""Secure download redirect: opaque tokens in front of presigned URLs."""

from __future__ import annotations

from .config import DownloadConfig
from .errors import GENERIC_LINK_MESSAGE, LinkInvalidOrExpiredError
from .service import DownloadGrant, DownloadLink, DownloadTokenService
from .storage import DownloadToken, init_download_storage

__all__ = [
    "GENERIC_LINK_MESSAGE",
    "DownloadConfig",
    "DownloadGrant",
    "DownloadLink",
    "DownloadToken",
    "DownloadTokenService",
    "LinkInvalidOrExpiredError",
    "init_download_storage",
]
