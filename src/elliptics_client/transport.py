"""
HTTP transport for the Elliptics proxy.

Executes one request on a requests.Session and reduces the raw HTTP outcome to
a RequestOutcome:
- 404 -> NOT_FOUND
- any other status -> SUCCESS carrying the body (non-200 is only logged)
- connection failures -> TransportError
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Union

import requests

from elliptics_client.config import Endpoint
from elliptics_client.exceptions import TransportError


class HttpMethod(str, Enum):
    GET = 'GET'
    POST = 'POST'


@dataclass(frozen=True)
class RequestOptions:
    """
    Explicit per-request settings passed to the request builder.

    :param method: HTTP method
    :param body: Raw request body (POST only)
    :param params: Query string parameters
    """
    method: HttpMethod = HttpMethod.GET
    body: Optional[bytes] = None
    params: Mapping[str, Union[str, int]] = field(default_factory=dict)

    @classmethod
    def post(cls, body: bytes, params: Optional[Mapping[str, Union[str, int]]] = None) -> 'RequestOptions':
        return cls(method=HttpMethod.POST, body=body, params=dict(params or {}))


class OutcomeStatus(str, Enum):
    SUCCESS = 'success'
    NOT_FOUND = 'not_found'
    TRANSPORT_ERROR = 'transport_error'


@dataclass(frozen=True)
class RequestOutcome:
    """Tagged result of a single HTTP attempt."""
    status: OutcomeStatus
    body: bytes = b''
    status_code: Optional[int] = None
    error: Optional[TransportError] = None

    @property
    def is_success(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def has_payload(self) -> bool:
        """True when the request succeeded and returned a non-empty body"""
        return self.is_success and len(self.body) > 0

    @classmethod
    def success(cls, body: bytes, status_code: int = 200) -> 'RequestOutcome':
        return cls(OutcomeStatus.SUCCESS, body=body or b'', status_code=status_code)

    @classmethod
    def not_found(cls) -> 'RequestOutcome':
        return cls(OutcomeStatus.NOT_FOUND, status_code=404)

    @classmethod
    def transport_error(cls, error: TransportError) -> 'RequestOutcome':
        return cls(OutcomeStatus.TRANSPORT_ERROR, error=error)


def _error_code(exc: BaseException) -> Optional[int]:
    """Find the OS-level error number behind a requests exception, if any."""
    seen = set()
    pending = [exc]
    while pending:
        current = pending.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        errno = getattr(current, 'errno', None)
        if isinstance(errno, int):
            return errno
        pending.extend(arg for arg in getattr(current, 'args', ()) if isinstance(arg, BaseException))
        for attr in ('reason', '__cause__', '__context__'):
            nested = getattr(current, attr, None)
            if isinstance(nested, BaseException):
                pending.append(nested)
    return None


def create_session() -> requests.Session:
    """Create a transport handle for exactly one caller at a time."""
    session = requests.Session()
    # Proxy is on a private address; never route through environment proxies
    session.trust_env = False
    return session


def send_request(
    session: requests.Session,
    endpoint: Endpoint,
    path: str,
    options: RequestOptions,
    connect_timeout: float,
    logger: logging.Logger
) -> RequestOutcome:
    """
    Execute one request against a proxy endpoint.

    Only connection establishment is bounded by `connect_timeout`; once
    connected, a slow proxy can hold the call indefinitely.

    :param session: Transport handle to execute the request on
    :param endpoint: Target endpoint (host and port)
    :param path: Path relative to the proxy root
    :param options: Method, body and query parameters
    :param connect_timeout: Connection timeout in seconds
    :param logger: Logger for status warnings
    :return: SUCCESS or NOT_FOUND outcome
    :raises TransportError: If no HTTP response was received
    """
    url = endpoint.url(path)
    params: Dict[str, str] = {k: str(v) for k, v in options.params.items()}

    try:
        response = session.request(
            options.method.value,
            url,
            params=params or None,
            data=options.body,
            timeout=(connect_timeout, None),
        )
    except requests.RequestException as e:
        raise TransportError(str(e), code=_error_code(e), url=url) from e

    logger.debug(f"{options.method.value} {response.url} -> {response.status_code}")

    if response.status_code != 200:
        logger.warning(
            f'Elliptics warning: get "{response.status_code}" code while fetching "{response.url}".'
        )

    if response.status_code == 404:
        return RequestOutcome.not_found()

    return RequestOutcome.success(response.content, status_code=response.status_code)
