import boto3
from botocore.exceptions import BotoCoreError, ClientError

from statement_worker.storage.base import BaseObjectStore
from statement_worker.storage.exceptions import ObjectNotFoundError, ObjectStoreError

_MISSING_KEY_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


class S3ObjectStore(BaseObjectStore):
    """Object store backed by a single S3 bucket."""

    def __init__(
        self,
        *,
        bucket: str,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self._bucket = bucket
        session = boto3.session.Session(region_name=region or None)
        self._client = session.client("s3", endpoint_url=endpoint_url or None)

    @property
    def bucket_name(self) -> str:
        return self._bucket

    def read(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code in _MISSING_KEY_CODES:
                raise ObjectNotFoundError(f"s3://{self._bucket}/{key} not found") from exc
            raise ObjectStoreError(f"S3 read of {key} failed: {exc}") from exc
        except BotoCoreError as exc:
            raise ObjectStoreError(f"S3 read of {key} failed: {exc}") from exc

    def write(self, key: str, data: bytes) -> None:
        try:
            self._client.put_object(Bucket=self._bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as exc:
            raise ObjectStoreError(f"S3 write of {key} failed: {exc}") from exc
