"""
Elliptics Network proxy client.

Stores, fetches and deletes files through the HTTP proxy of an Elliptics
Network key/value storage. The proxy serves writes, reads and monitoring on
separate ports of one host.

Submodules:
- client: StorageClient with single and concurrent multi-file uploads
- config: Immutable connection settings (arguments, environment or YAML)
- transport: Request execution and outcome classification
- responses: Parsers for the proxy's XML responses
- files: Local file resolution for uploads
- exceptions: Error hierarchy
"""

from elliptics_client.client import StorageClient
from elliptics_client.config import EllipticsConfig, Endpoint, EndpointKind
from elliptics_client.exceptions import (
    ClientClosedError,
    ConfigurationError,
    ConnectivityError,
    EllipticsError,
    InvalidFileError,
    TransportError,
)
from elliptics_client.files import UploadTarget
from elliptics_client.transport import OutcomeStatus, RequestOptions, RequestOutcome

__all__ = [
    # Client
    'StorageClient',
    # Configuration
    'EllipticsConfig',
    'Endpoint',
    'EndpointKind',
    # Types
    'UploadTarget',
    'RequestOptions',
    'RequestOutcome',
    'OutcomeStatus',
    # Errors
    'EllipticsError',
    'ConnectivityError',
    'InvalidFileError',
    'TransportError',
    'ConfigurationError',
    'ClientClosedError',
]
