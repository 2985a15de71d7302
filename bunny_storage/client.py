"""
BunnyCDN edge storage client.

Wraps the storage HTTP API (download, upload, delete, existence check) and the
CDN cache purge endpoint.
API reference: https://docs.bunny.net/reference/storage-api
"""
import os
import logging
import tempfile
from dataclasses import dataclass
from typing import Optional, Any
from urllib.parse import quote, urlsplit

import requests
from requests.exceptions import RequestException


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base storage error."""
    pass


class StorageConnectionError(StorageError):
    """Storage endpoint is unreachable or the connection failed."""
    pass


class StorageAuthError(StorageError):
    """Storage credentials are missing."""
    pass


class StorageUriError(StorageError, ValueError):
    """Zone, filename or endpoint do not form a valid URI."""
    pass


class StorageRemoteError(StorageError):
    """Remote endpoint answered with a non-success status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{status_code} {body}".strip())


@dataclass(frozen=True)
class ClientConfig:
    """Credentials and endpoint selection for a client."""
    access_key: str
    api_key: str
    default_zone: Optional[str] = None
    region: Optional[str] = None

    @property
    def base_url(self) -> str:
        if self.region:
            return f"https://{self.region}.storage.bunnycdn.com/"
        return StorageClient.BASE_URL


@dataclass(frozen=True)
class TargetRef:
    """Effective (zone, filename) of a single operation."""
    zone: Optional[str]
    filename: Optional[str]


class StorageClient:
    """BunnyCDN storage client."""

    BASE_URL = "https://storage.bunnycdn.com/"
    CDN_URL = "https://{zone}.b-cdn.net/{filename}"
    PURGE_URL = "https://api.bunny.net/purge?url={url}&async=true"

    # Seconds
    CONNECT_TIMEOUT = 3
    READ_TIMEOUT = 5

    OUTPUTS = ("string", "bytes", "file")

    # Tempfile name prefix taken from the remote name
    TEMPFILE_PREFIX_MAX = 64

    # Module logger unless one is passed in
    logger = logger

    def __init__(
        self,
        access_key: str,
        api_key: str,
        default_zone: Optional[str] = None,
        region: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the client.

        Args:
            access_key: Storage zone password, used for read/write/delete
            api_key: Account API key, used only for cache purging
            default_zone: Storage zone used when a call names none
            region: Region code selecting a region-scoped storage host
            logger: Logger receiving error and info messages
        """
        if not access_key or not api_key:
            missing = []
            if not access_key:
                missing.append("access_key")
            if not api_key:
                missing.append("api_key")
            raise StorageAuthError(
                f"Missing required storage credentials: {', '.join(missing)}."
            )

        self.config = ClientConfig(
            access_key=access_key,
            api_key=api_key,
            default_zone=default_zone,
            region=region,
        )
        self.base_url = self.config.base_url
        if logger is not None:
            self.logger = logger

        self.zone = default_zone
        self.filename = None

    @classmethod
    def from_env(cls, logger: Optional[logging.Logger] = None) -> "StorageClient":
        """
        Create a client from environment variables.

        Reads BUNNY_STORAGE_ACCESS_KEY, BUNNY_API_KEY, BUNNY_STORAGE_ZONE and
        BUNNY_STORAGE_REGION.

        Raises:
            StorageAuthError: A required variable is not set
        """
        access_key = os.getenv("BUNNY_STORAGE_ACCESS_KEY")
        api_key = os.getenv("BUNNY_API_KEY")

        if not all([access_key, api_key]):
            missing = []
            if not access_key:
                missing.append("BUNNY_STORAGE_ACCESS_KEY")
            if not api_key:
                missing.append("BUNNY_API_KEY")
            raise StorageAuthError(
                f"Missing required storage credentials: {', '.join(missing)}. "
                "Check environment variables."
            )

        return cls(
            access_key,
            api_key,
            default_zone=os.getenv("BUNNY_STORAGE_ZONE") or None,
            region=os.getenv("BUNNY_STORAGE_REGION") or None,
            logger=logger,
        )

    def select(self, filename: str, zone: Optional[str] = None) -> "StorageClient":
        """
        Remember the object that later calls operate on.

        Args:
            filename: Object path inside the zone
            zone: Storage zone, keeps the current one when omitted

        Returns:
            The client itself, for chaining
        """
        self.filename = filename
        self.zone = zone or self.zone
        return self

    def resolve_target(self, zone: Optional[str] = None, filename: Optional[str] = None) -> TargetRef:
        """Overlay explicit zone/filename over the selected object."""
        return TargetRef(zone=zone or self.zone, filename=filename or self.filename)

    def get_file(
        self,
        zone: Optional[str] = None,
        filename: Optional[str] = None,
        output: str = "string",
    ):
        """
        Download a file.

        Args:
            zone: Storage zone override
            filename: Object path override
            output: "string" for the body decoded as UTF-8 (invalid bytes are
                replaced), "bytes" for raw content, "file" for an open
                temporary file positioned at the start

        Returns:
            The file content in the requested form, or None if the download
            or the temporary file failed (the failure is logged)

        Raises:
            ValueError: output is not one of OUTPUTS
        """
        if output not in self.OUTPUTS:
            raise ValueError(f"Unknown output: {output!r}. Expected one of {self.OUTPUTS}")

        target = self.resolve_target(zone, filename)
        try:
            uri = self._build_uri(target)
            response = self._make_request("GET", uri, {
                "AccessKey": self.config.access_key,
                "Accept": "*/*",
            })

            if not self._is_success(response.status_code):
                raise StorageRemoteError(response.status_code, response.text)

            if output == "file":
                result = self._write_tempfile(target.filename, response.content)
            elif output == "bytes":
                result = response.content
            else:
                result = response.content.decode("utf-8", errors="replace")

        except (StorageError, OSError) as e:
            self.logger.error(f"Failed to get file from {target.zone}/{target.filename}: {e}")
            return None

        self.logger.debug(f"Downloaded {target.zone}/{target.filename} ({len(response.content)} bytes)")
        return result

    def exists(self, zone: Optional[str] = None, filename: Optional[str] = None) -> bool:
        """
        Check whether a file exists.

        Uses GET, the storage API has no reliable HEAD support. Any status
        other than 200 counts as missing, including auth and server errors.

        Raises:
            StorageUriError: Target cannot form a URI
            StorageConnectionError: Request failed before a response arrived
        """
        uri = self._build_uri(self.resolve_target(zone, filename))
        response = self._make_request("GET", uri, {
            "AccessKey": self.config.access_key,
            "Accept": "*/*",
        })
        return response.status_code == 200

    def upload_file(
        self,
        body: Any,
        zone: Optional[str] = None,
        filename: Optional[str] = None,
    ) -> None:
        """
        Upload content to storage.

        Args:
            body: bytes, str, a readable stream (rewound first when seekable)
                or any value convertible with str()
            zone: Storage zone override
            filename: Object path override

        Raises:
            StorageRemoteError: Storage answered with a non-2xx status
            StorageUriError: Target cannot form a URI
            StorageConnectionError: Upload request failed
        """
        target = self.resolve_target(zone, filename)
        try:
            uri = self._build_uri(target)
            data = self._read_body(body)
            response = self._make_request("PUT", uri, {
                "AccessKey": self.config.access_key,
                "Content-Type": "application/octet-stream",
            }, data=data)

            if not self._is_success(response.status_code):
                raise StorageRemoteError(response.status_code, response.text)

        except StorageError as e:
            self.logger.error(f"Failed to upload file to {target.zone}/{target.filename}: {e}")
            raise

        self.logger.info(f"Uploaded {target.zone}/{target.filename} ({len(data)} bytes)")

    def delete_file(self, zone: Optional[str] = None, filename: Optional[str] = None) -> bool:
        """
        Delete a file from storage.

        404 and 500 are treated as success: the API answers 500 for some
        missing objects.

        Returns:
            True once the file is gone

        Raises:
            StorageRemoteError: Any other non-2xx status
        """
        target = self.resolve_target(zone, filename)
        try:
            uri = self._build_uri(target)
            response = self._make_request("DELETE", uri, {
                "AccessKey": self.config.access_key,
            })

            status_code = response.status_code
            if not self._is_success(status_code) and status_code not in (404, 500):
                raise StorageRemoteError(status_code, response.text)

        except StorageError as e:
            self.logger.error(f"Failed to delete file {target.zone}/{target.filename}: {e}")
            raise

        self.logger.info(f"Deleted {target.zone}/{target.filename} (status {status_code})")
        return True

    def purge_cache(self, zone: Optional[str] = None, filename: Optional[str] = None) -> Optional[str]:
        """
        Purge the CDN cache for a file.

        Authenticates with the API key, not the storage access key.

        Returns:
            The response status code as a string, or None if the purge failed
            (the failure is logged)
        """
        target = self.resolve_target(zone, filename)
        url = self.CDN_URL.format(zone=target.zone, filename=target.filename)
        try:
            if not target.zone or not target.filename:
                raise StorageUriError(f"Zone and filename are required, got {target.zone!r}/{target.filename!r}")
            response = self._make_request("POST", self.PURGE_URL.format(url=url), {
                "AccessKey": self.config.api_key,
            })

            if not self._is_success(response.status_code):
                raise StorageRemoteError(response.status_code, response.text)

        except StorageError as e:
            self.logger.error(f"Failed to purge cache for {target.zone}/{target.filename}: {e}")
            return None

        self.logger.info(f"Purged cache for {url}")
        return str(response.status_code)

    def _build_uri(self, target: TargetRef) -> str:
        """Join base URL, zone and filename into a request URI."""
        if not target.zone or not target.filename:
            raise StorageUriError(
                f"Zone and filename are required, got {target.zone!r}/{target.filename!r}. "
                "Pass them explicitly or call select() first."
            )
        if "/" in target.zone.strip("/"):
            raise StorageUriError(f"Invalid storage zone: {target.zone!r}")
        if any(ord(ch) < 32 or ord(ch) == 127 for ch in target.zone + target.filename):
            raise StorageUriError(f"Control characters in {target.zone!r}/{target.filename!r}")

        path = "/".join([target.zone.strip("/"), target.filename.lstrip("/")])
        url = self.base_url.rstrip("/") + "/" + quote(path, safe="/")
        url = url.rstrip("/")

        parts = urlsplit(url)
        try:
            parts.port  # rejects malformed ports
        except ValueError as e:
            raise StorageUriError(f"Invalid storage URI {url!r}: {e}")
        if parts.scheme != "https" or not parts.hostname or " " in parts.netloc:
            raise StorageUriError(f"Invalid storage URI {url!r}")
        return url

    def _make_request(self, method: str, url: str, headers: dict, data: Optional[bytes] = None):
        """Send one request on a fresh connection."""
        try:
            return requests.request(
                method,
                url,
                headers=headers,
                data=data,
                timeout=(self.CONNECT_TIMEOUT, self.READ_TIMEOUT),
            )
        except RequestException as e:
            raise StorageConnectionError(f"{method} {url} failed: {e}")

    def _read_body(self, body: Any) -> bytes:
        """Materialize an upload body to bytes."""
        if isinstance(body, (bytes, bytearray, memoryview)):
            return bytes(body)
        if isinstance(body, str):
            return body.encode("utf-8")
        if hasattr(body, "read"):
            # Reset to the beginning if possible
            if getattr(body, "seekable", lambda: False)():
                body.seek(0)
            content = body.read()
            if isinstance(content, str):
                return content.encode("utf-8")
            return bytes(content)
        return str(body).encode("utf-8")

    def _write_tempfile(self, filename: str, content: bytes):
        """Write content to a caller-owned temporary file, rewound to 0."""
        prefix = os.path.basename(filename.rstrip("/"))[:self.TEMPFILE_PREFIX_MAX] or "bunny"
        file = tempfile.NamedTemporaryFile(mode="w+b", prefix=prefix, delete=False)
        try:
            file.write(content)
            file.seek(0)
        except OSError:
            file.close()
            os.unlink(file.name)
            raise
        return file

    @staticmethod
    def _is_success(status_code: int) -> bool:
        return 200 <= int(status_code) <= 299
