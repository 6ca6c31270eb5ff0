"""Public download redirect resource.

``GET /r/{token}`` resolves an opaque token to the presigned object store URL
and answers with ``302 Found``. Every failure produces the same 404 body so a
caller cannot tell an unknown token from an expired one.
"""

from __future__ import annotations

import typing as typ

import falcon

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from courier.downloads.service import DownloadTokenService

__all__ = ["DownloadRedirectResource"]


class DownloadRedirectResource:
    """Redirect a download token to its presigned URL."""

    def __init__(self, downloads: DownloadTokenService) -> None:
        """Configure the resource with the token service."""
        self._downloads = downloads

    async def on_get(self, _req: Request, resp: Response, *, token: str) -> None:
        """Handle GET /r/{token}.

        Raises
        ------
        LinkInvalidOrExpiredError
            If the token is malformed, unknown, or expired.

        """
        target_url = await self._downloads.redeem(token)
        resp.status = falcon.HTTP_302
        resp.location = target_url
        resp.cache_control = ["no-store"]
