'''
Batch request execution

The executor is the only place that builds request bodies and interprets
response bodies. It sends exactly one request per call and never retries;
a batch either yields one ResultSet per statement or fails as a whole.
'''

import logging
from dataclasses import dataclass, field
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .error import (
    SerializationError,
    ServerError,
    TransactionExpired,
    TransportError,
    from_wire_errors,
)
from .result import ResultSet, parse_results
from .statement import Statement
from .transport import JSON_HEADERS, HttpResponse, Transport, decode_body, encode_batch

logger = logging.getLogger(__name__)

# Error codes meaning the transaction addressed by the request is gone
EXPIRED_CODES = frozenset({
    "Neo.ClientError.Transaction.TransactionNotFound",
    "Neo.ClientError.Transaction.UnknownId",
})


@dataclass
class BatchResponse:
    results: List[ResultSet] = field(default_factory=list)
    commit_url: Optional[str] = None
    # Location header; the transaction endpoint when a transaction is begun
    location: Optional[str] = None
    expires: Optional[datetime] = None
    transaction_open: bool = False


def parse_expires(expires: str) -> datetime:
    '''
    Parse the RFC 1123 ``expires`` timestamp of a transaction

    Raises:
        SerializationError: If the timestamp cannot be parsed
    '''
    try:
        parsed = parsedate_to_datetime(expires)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"invalid transaction expiry {expires!r}") from e
    if parsed is None:
        raise SerializationError(f"invalid transaction expiry {expires!r}")
    return parsed


class RequestExecutor:
    '''
    Sends statement batches through a Transport and decodes the replies
    '''

    def __init__(self, transport: Transport, headers: Optional[Mapping[str, str]] = None):
        self._transport = transport
        self._headers: Dict[str, str] = dict(JSON_HEADERS)
        if headers:
            self._headers.update(headers)

    @property
    def transport(self) -> Transport:
        return self._transport

    def execute(self, statements: Sequence[Statement], url: str,
                in_transaction: bool = False) -> BatchResponse:
        '''
        POST a batch of statements to url

        Statements are frozen once serialized. Results come back in
        submission order. ``in_transaction`` marks url as an open
        transaction endpoint, for which a 404 means the transaction expired.

        Raises:
            TransportError: On network failure or an unparseable response
            ServerError: If the server reported any error for the batch
            TransactionExpired: If url names a transaction the server no
                longer knows
        '''
        statements = list(statements)
        body = encode_batch(statements)
        for statement in statements:
            statement.freeze()

        logger.debug("Sending %d statement(s) to %s", len(statements), url)
        res = self._transport.request("POST", url, body, self._headers)
        return self._handle(res, url, len(statements), in_transaction)

    def delete(self, url: str) -> BatchResponse:
        '''
        DELETE a transaction endpoint, rolling the transaction back
        '''
        logger.debug("Sending DELETE to %s", url)
        res = self._transport.request("DELETE", url, None, self._headers)
        return self._handle(res, url, 0, True)

    def get(self, url: str) -> Dict[str, Any]:
        '''
        GET a JSON document, used for service root discovery
        '''
        res = self._transport.request("GET", url, None, self._headers)
        try:
            return decode_body(res.body)
        except SerializationError as e:
            logger.error("Unable to parse response from %s: %s", url, e.message)
            raise TransportError(f"malformed response from {url}: {e.message}") from e

    def _handle(self, res: HttpResponse, url: str, expected: int,
                in_transaction: bool) -> BatchResponse:
        gone = in_transaction and res.status == 404
        try:
            payload = decode_body(res.body)
        except SerializationError as e:
            logger.error("Unable to parse response from %s: %s", url, e.message)
            if gone:
                raise TransactionExpired(url) from e
            raise TransportError(f"malformed response from {url}: {e.message}") from e

        errors = from_wire_errors(payload.get("errors") or [])
        transaction = payload.get("transaction")
        if errors:
            if gone or any(e.code in EXPIRED_CODES for e in errors):
                raise TransactionExpired(url, errors)
            raise ServerError(errors, transaction_open=isinstance(transaction, dict))
        if gone:
            raise TransactionExpired(url)
        if res.status >= 400:
            raise TransportError(f"unexpected HTTP status {res.status} from {url}")

        try:
            results = parse_results(payload.get("results", []))
            expires = None
            if isinstance(transaction, dict) and transaction.get("expires"):
                expires = parse_expires(transaction["expires"])
        except SerializationError as e:
            raise TransportError(f"malformed response from {url}: {e.message}") from e

        if len(results) != expected:
            raise TransportError(
                f"expected {expected} result(s) from {url}, server returned {len(results)}")

        return BatchResponse(
            results=results,
            commit_url=payload.get("commit"),
            location=res.header("Location"),
            expires=expires,
            transaction_open=isinstance(transaction, dict),
        )


__all__ = ['RequestExecutor', 'BatchResponse', 'EXPIRED_CODES', 'parse_expires']
