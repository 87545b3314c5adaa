"""Elliptics client - file storage operations against an Elliptics Network HTTP proxy."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Callable, Dict, Hashable, Mapping, Optional, Union
from urllib.parse import quote

import requests
from tqdm import tqdm

from elliptics_client.config import EllipticsConfig, EndpointKind
from elliptics_client.exceptions import (
    ClientClosedError,
    ConnectivityError,
    InvalidFileError,
    TransportError,
)
from elliptics_client.files import PathLike, UploadTarget
from elliptics_client.responses import is_upload_written, parse_download_info
from elliptics_client.transport import (
    OutcomeStatus,
    RequestOptions,
    RequestOutcome,
    create_session,
    send_request,
)
from elliptics_client.utils.logger import LoggerFactory

FileArg = Union[UploadTarget, PathLike]


def _storage_path(storage_file_id: str, prefix: str = '') -> str:
    # Identifiers travel as a query parameter on upload; path segments must match them after decoding
    return prefix + quote(storage_file_id, safe='/')


class StorageClient:
    """Client for storing files in the Elliptics Network through its HTTP proxy.

    Sequential calls share one transport session owned by the client;
    `multi_upload` gives every file its own session.

    Example:
        ```python
        with StorageClient(EllipticsConfig(private_server_address="10.0.0.5")) as client:
            client.upload("/tmp/photo.jpg")                 # stored as "photo.jpg"
            data = client.get("photo.jpg")
            results = client.multi_upload({
                "avatar": UploadTarget(path="/tmp/a.png", storage_file_id="users/1.png"),
                "cover": "/tmp/cover.png",
            })
            client.delete("photo.jpg")
        ```
    """

    def __init__(
        self,
        config: Optional[EllipticsConfig] = None,
        logger: Optional[logging.Logger] = None,
        session_factory: Callable[[], requests.Session] = create_session,
    ) -> None:
        """Initialize the client.

        Args:
            config: Proxy connection settings (default: EllipticsConfig())
            logger: Logger to use (default: built from the config's logging fields)
            session_factory: Creates one transport session per execution context
        """
        self.config = config or EllipticsConfig()
        self.logger = logger or LoggerFactory(
            log_dir=self.config.log_dir,
            level=self.config.logging_level,
            console_output=self.config.console_output,
        ).get_logger(name='elliptics.client')

        self._session_factory = session_factory
        self._session: Optional[requests.Session] = session_factory()
        self._session_lock = threading.Lock()

    # ===========================
    # Lifecycle
    # ===========================

    @property
    def closed(self) -> bool:
        return self._session is None

    def close(self) -> None:
        """Release the shared transport session. Safe to call more than once."""
        with self._session_lock:
            if self._session is not None:
                self._session.close()
                self._session = None

    def __enter__(self) -> StorageClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    # ===========================
    # Request execution
    # ===========================

    def execute_request(
        self,
        kind: EndpointKind,
        path: str = '',
        options: Optional[RequestOptions] = None,
        session: Optional[requests.Session] = None,
    ) -> RequestOutcome:
        """Run one request on the given session, or on the shared one.

        Raises:
            TransportError: If no HTTP response was received
            ClientClosedError: If the client has been closed
        """
        if self.closed:
            raise ClientClosedError()

        endpoint = self.config.endpoint(kind)
        options = options or RequestOptions()
        timeout = self.config.connect_timeout_seconds

        if session is not None:
            return send_request(session, endpoint, path, options, timeout, self.logger)

        with self._session_lock:
            if self._session is None:
                raise ClientClosedError()
            return send_request(self._session, endpoint, path, options, timeout, self.logger)

    def _execute_isolated(
        self,
        kind: EndpointKind,
        path: str,
        options: RequestOptions,
    ) -> RequestOutcome:
        """Run one request on a fresh session; transport failures become an outcome."""
        session = self._session_factory()
        try:
            return self.execute_request(kind, path, options, session=session)
        except TransportError as e:
            return RequestOutcome.transport_error(e)
        finally:
            session.close()

    # ===========================
    # Connectivity
    # ===========================

    def ping(self) -> bool:
        """Ping the proxy on its monitoring port.

        Returns:
            True if the proxy answered successfully, False otherwise (never raises
            on transport failures)
        """
        try:
            outcome = self.execute_request(EndpointKind.MONITOR, 'ping')
        except TransportError as e:
            self.logger.warning(str(e))
            return False
        return outcome.is_success

    def check_connectivity(self) -> None:
        """Raise ConnectivityError unless the proxy answers a ping."""
        if not self.ping():
            raise ConnectivityError(
                self.config.private_server_address, self.config.monitoring_port
            )

    # ===========================
    # Uploads
    # ===========================

    @staticmethod
    def _upload_options(content: bytes, storage_file_id: str, timestamp: int) -> RequestOptions:
        # embed_timestamp keeps the upload time in file metadata (used for Last-Modified)
        return RequestOptions.post(content, {
            'name': storage_file_id,
            'timestamp': timestamp,
            'embed_timestamp': 1,
        })

    def _extract_upload_result(self, storage_file_id: str, outcome: RequestOutcome) -> bool:
        if outcome.status is OutcomeStatus.TRANSPORT_ERROR:
            self.logger.warning(f"Upload of {storage_file_id} failed: {outcome.error}")
            return False
        if not outcome.has_payload:
            self.logger.warning(f"Upload of {storage_file_id} returned no payload ({outcome.status.value})")
            return False
        return is_upload_written(outcome.body, self.logger)

    def upload(self, file: FileArg, storage_file_id: Optional[str] = None) -> bool:
        """Upload a single file.

        The current timestamp is embedded in the stored file's metadata.

        Args:
            file: Path to the file, or an UploadTarget
            storage_file_id: Identifier to store the file under (default: the file's basename)

        Returns:
            True if the proxy reports the file as written, otherwise False

        Raises:
            ConnectivityError: If the proxy does not answer a ping
            InvalidFileError: If the file does not exist or cannot be read
            TransportError: If the upload request could not be delivered
        """
        self.check_connectivity()

        target = UploadTarget.coerce(file)
        if storage_file_id:
            target = replace(target, storage_file_id=storage_file_id)
        resolved_id = target.resolve_storage_file_id()

        timestamp = int(time.time())
        options = self._upload_options(target.read_contents(), resolved_id, timestamp)
        outcome = self.execute_request(EndpointKind.WRITE, '', options)
        return self._extract_upload_result(resolved_id, outcome)

    def _upload_item(self, target: UploadTarget, storage_file_id: str, timestamp: int) -> bool:
        try:
            content = target.read_contents()
        except InvalidFileError as e:
            self.logger.warning(f"Upload of {storage_file_id} skipped: {e}")
            return False

        try:
            options = self._upload_options(content, storage_file_id, timestamp)
            outcome = self._execute_isolated(EndpointKind.WRITE, '', options)
            return self._extract_upload_result(storage_file_id, outcome)
        except Exception:
            # Unexpected error; the rest of the batch keeps going
            self.logger.exception(f"Upload of {storage_file_id} failed unexpectedly")
            return False

    def multi_upload(
        self,
        files: Mapping[Hashable, FileArg],
        show_progress: bool = False,
    ) -> Dict[Hashable, bool]:
        """Upload several files concurrently.

        All files of one call share the same timestamp. Each file is sent on its
        own session and read from disk only when its request is dispatched. A
        failure of one file never affects the others.

        Args:
            files: Mapping of caller key -> path or UploadTarget
            show_progress: Display a progress bar while uploading

        Returns:
            Mapping with exactly the input keys; True for every stored file

        Raises:
            ConnectivityError: If the proxy does not answer a ping
            InvalidFileError: If any path does not exist (nothing is uploaded)
        """
        self.check_connectivity()
        if not files:
            return {}

        timestamp = int(time.time())
        resolved: Dict[Hashable, tuple] = {}
        for key, file in files.items():
            target = UploadTarget.coerce(file)
            resolved[key] = (target, target.resolve_storage_file_id())

        max_workers = len(resolved)
        if self.config.max_upload_workers is not None:
            max_workers = min(max_workers, self.config.max_upload_workers)

        results: Dict[Hashable, bool] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(self._upload_item, target, storage_file_id, timestamp): key
                for key, (target, storage_file_id) in resolved.items()
            }

            pbar = tqdm(
                as_completed(futures), total=len(futures),
                desc="Upload", unit="file", disable=not show_progress
            )
            for future in pbar:
                results[futures[future]] = future.result()
                stored = sum(results.values())
                pbar.set_postfix(ok=stored, fail=len(results) - stored)

        stored = sum(results.values())
        self.logger.info(f"Multi-upload finished: {stored}/{len(results)} stored")
        return {key: results[key] for key in files}

    # ===========================
    # Retrieval and metadata
    # ===========================

    def get(self, storage_file_id: str) -> Union[bytes, bool]:
        """Get file content by storage identifier.

        Returns:
            File content, or False if the file is missing or empty
        """
        self.check_connectivity()
        outcome = self.execute_request(EndpointKind.READ, _storage_path(storage_file_id))
        return outcome.body if outcome.has_payload else False

    def get_download_info(self, storage_file_id: str) -> Union[Dict[str, str], bool]:
        """Get download info of a stored file.

        Returns:
            Mapping of download-info fields, or False if the file is unknown
        """
        self.check_connectivity()
        outcome = self.execute_request(EndpointKind.WRITE, _storage_path(storage_file_id, 'download-info/'))
        if not outcome.has_payload:
            return False

        info = parse_download_info(outcome.body, self.logger)
        return False if info is None else info

    def exists(self, storage_file_id: str) -> bool:
        """Check that a file with the given identifier is stored."""
        self.check_connectivity()
        return self.get_download_info(storage_file_id) is not False

    def delete(self, storage_file_id: str) -> bool:
        """Delete a stored file.

        Returns:
            True if the proxy accepted the deletion, False if the file was not found
        """
        self.check_connectivity()
        outcome = self.execute_request(EndpointKind.WRITE, _storage_path(storage_file_id, 'delete/'))
        return outcome.is_success

    def public_url(self, storage_file_id: str) -> str:
        """Externally visible URL of a stored file."""
        return self.config.public_url(storage_file_id)
