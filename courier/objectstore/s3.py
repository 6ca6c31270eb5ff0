"""S3 adapter for the ObjectStore protocol using aioboto3.

Usage
-----
>>> store = S3ObjectStore(bucket="reports", region="us-east-1")
>>> key = await store.put(location, payload, content_type=XLSX_CONTENT_TYPE)
>>> signed = await store.presign(key, dt.timedelta(days=7))

"""

from __future__ import annotations

import datetime as dt
import typing as typ

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from courier.common.time import utcnow
from courier.logging import get_logger, log_info
from courier.objectstore.errors import ObjectStoreError
from courier.objectstore.protocol import PresignedUrl

if typ.TYPE_CHECKING:
    from courier.objectstore.protocol import ArtifactLocation

logger = get_logger(__name__)

# SigV4 presigned URLs are capped at seven days.
MAX_PRESIGN_TTL = dt.timedelta(days=7)
_MISSING_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


class S3ObjectStore:
    """Store artifacts in an S3 bucket with server-side encryption."""

    def __init__(
        self,
        *,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
        session: aioboto3.Session | None = None,
    ) -> None:
        """Configure the bucket and client settings.

        Parameters
        ----------
        bucket
            Bucket receiving artifacts.
        region
            AWS region; defaults to the session's configured region.
        endpoint_url
            Custom endpoint for S3-compatible services.
        session
            Preconfigured aioboto3 session, mainly for tests.

        """
        self._bucket = bucket
        self._region = region
        self._endpoint_url = endpoint_url
        self._session = session or aioboto3.Session()

    def _client(self) -> typ.Any:  # noqa: ANN401 - aioboto3 client is untyped
        return self._session.client(
            "s3", region_name=self._region, endpoint_url=self._endpoint_url
        )

    async def put(
        self,
        location: ArtifactLocation,
        payload: bytes,
        *,
        content_type: str,
    ) -> str:
        """Upload ``payload`` and return its key.

        Raises
        ------
        ObjectStoreError
            If the upload is rejected.

        """
        key = location.key
        try:
            async with self._client() as client:
                await client.put_object(
                    Bucket=self._bucket,
                    Key=key,
                    Body=payload,
                    ContentType=content_type,
                    ContentDisposition=f'attachment; filename="{location.filename}"',
                    ServerSideEncryption="AES256",
                )
        except (ClientError, BotoCoreError) as exc:
            raise ObjectStoreError.wrapping("put", key, exc) from exc
        log_info(
            logger,
            "Uploaded %d bytes to s3://%s/%s",
            len(payload),
            self._bucket,
            key,
        )
        return key

    async def presign(self, location: str, ttl: dt.timedelta) -> PresignedUrl:
        """Return a GET URL for ``location`` valid for at most seven days.

        Raises
        ------
        ObjectStoreError
            If the URL cannot be signed.

        """
        effective = min(ttl, MAX_PRESIGN_TTL)
        issued_at = utcnow()
        try:
            async with self._client() as client:
                url = await client.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self._bucket, "Key": location},
                    ExpiresIn=int(effective.total_seconds()),
                )
        except (ClientError, BotoCoreError) as exc:
            raise ObjectStoreError.wrapping("presign", location, exc) from exc
        return PresignedUrl(url=str(url), expires_at=issued_at + effective)

    async def get(self, location: str) -> bytes:
        """Download the object stored at ``location``.

        Raises
        ------
        ObjectStoreError
            If the object is missing or cannot be read.

        """
        try:
            async with self._client() as client:
                response = await client.get_object(Bucket=self._bucket, Key=location)
                async with response["Body"] as stream:
                    return bytes(await stream.read())
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in _MISSING_CODES:
                raise ObjectStoreError.not_found(location) from exc
            raise ObjectStoreError.wrapping("get", location, exc) from exc
        except BotoCoreError as exc:
            raise ObjectStoreError.wrapping("get", location, exc) from exc
