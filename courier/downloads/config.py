"""Configuration for download redirect links."""

from __future__ import annotations

import dataclasses as dc

from courier.config import parse_positive_int, read_str

DEFAULT_PUBLIC_BASE_URL = "http://localhost:8080"
DEFAULT_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60


@dc.dataclass(frozen=True, slots=True)
class DownloadConfig:
    """Settings for issuing download tokens.

    Attributes
    ----------
    public_base_url
        Externally reachable origin that serves ``/r/{token}``.
    token_ttl_seconds
        Longest lifetime of a token; the target URL expiry may shorten it.

    """

    public_base_url: str = DEFAULT_PUBLIC_BASE_URL
    token_ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS

    @classmethod
    def from_env(cls) -> DownloadConfig:
        """Create configuration from environment variables.

        Reads ``COURIER_PUBLIC_BASE_URL`` and
        ``COURIER_DOWNLOAD_TOKEN_TTL_SECONDS``.

        Raises
        ------
        ValueError
            If the TTL is not a positive integer.

        """
        base_url = read_str("COURIER_PUBLIC_BASE_URL", DEFAULT_PUBLIC_BASE_URL)
        return cls(
            public_base_url=(base_url or DEFAULT_PUBLIC_BASE_URL).rstrip("/"),
            token_ttl_seconds=parse_positive_int(
                "COURIER_DOWNLOAD_TOKEN_TTL_SECONDS", DEFAULT_TOKEN_TTL_SECONDS
            ),
        )
