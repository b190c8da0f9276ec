'''
HTTP transport and wire codec

The rest of the SDK talks to the server only through the ``Transport``
protocol, so any HTTP stack can be plugged in. ``RequestsTransport`` is the
default implementation on top of a shared ``requests.Session``.
'''

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol

import requests

from .error import SerializationError, TransportError, from_json_error

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json; charset=UTF-8",
}


@dataclass
class HttpResponse:
    status: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        '''Case-insensitive header lookup'''
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class Transport(Protocol):
    def request(self, method: str, url: str, body: Optional[bytes] = None,
                headers: Optional[Mapping[str, str]] = None) -> HttpResponse:
        ...

    def close(self) -> None:
        ...


class RequestsTransport:
    '''
    Transport backed by ``requests``

    One instance can be shared by every session and transaction of a client;
    ``requests.Session`` pools connections per host. Failures are reported as
    TransportError and never retried here. A caller-supplied ``session`` keeps
    its own ``verify`` setting.
    '''

    def __init__(self, timeout: float = 30.0, verify: bool = True,
                 headers: Optional[Mapping[str, str]] = None,
                 session: Optional[requests.Session] = None):
        self._timeout = timeout
        if session is None:
            session = requests.Session()
            session.verify = verify
        self._session = session
        if headers:
            self._session.headers.update(headers)

    def request(self, method: str, url: str, body: Optional[bytes] = None,
                headers: Optional[Mapping[str, str]] = None) -> HttpResponse:
        try:
            res = self._session.request(method, url, data=body, headers=dict(headers or {}),
                                        timeout=self._timeout)
        except requests.RequestException as e:
            logger.error("Unable to reach %s: %s", url, e)
            raise TransportError(f"{method} {url} failed: {e}") from e
        return HttpResponse(status=res.status_code, body=res.content, headers=dict(res.headers))

    def close(self) -> None:
        self._session.close()


def encode_batch(statements: Iterable[Any]) -> bytes:
    '''
    Serialize statements into a batch envelope

    Each statement contributes one ``{"statement", "parameters"}`` entry, in
    order.
    '''
    envelope = {"statements": [s.to_wire() for s in statements]}
    try:
        return json.dumps(envelope, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        logger.error("Unable to serialize request: %s", e)
        raise SerializationError(f"Unable to serialize request: {e}") from e


def decode_body(body: bytes) -> Dict[str, Any]:
    '''
    Parse a response body into a JSON object

    Raises:
        SerializationError: If the body is not a JSON object
    '''
    if not body:
        return {}
    try:
        document = json.loads(body.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise SerializationError(f"response is not UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise from_json_error(e) from e
    if not isinstance(document, dict):
        raise SerializationError(f"expected a JSON object, got {type(document).__name__}")
    return document


__all__ = ['HttpResponse', 'Transport', 'RequestsTransport', 'JSON_HEADERS',
           'encode_batch', 'decode_body']
