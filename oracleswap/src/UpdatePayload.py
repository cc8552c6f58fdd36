"""UpdatePayload: Signed price-update wire format and verification.

An update blob is a CBOR map carrying a signed body::

    blob = {"body": <bytes>, "sig": <65-byte signature>}
    body = {"v": 1, "updates": [
        {"id": <32 bytes>, "price": int, "conf": int, "expo": int, "publish_time": int},
        ...
    ]}

The body is signed as an EIP-191 personal message by an oracle publisher key.
A blob may carry updates for several feeds.

.. code-block:: python

    >>> blob = encode_updates([feed], private_key)
    >>> verifier = SignedUpdateVerifier([publisher_address])
    >>> verifier.verify(blob) == [feed]
    True
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable

import cbor2
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from .errors import InvalidUpdateData
from .PriceFeed import PriceFeed, normalize_feed_id

logger = logging.getLogger(__name__)

PAYLOAD_VERSION = 1
SIGNATURE_LENGTH = 65

# Accepted field ranges: int64 price, uint64 conf, |expo| <= 64.
MAX_PRICE = 2**63 - 1
MAX_CONF = 2**64 - 1
MAX_EXPONENT = 64
MAX_PUBLISH_TIME = 2**63 - 1

_UPDATE_FIELDS = ("id", "price", "conf", "expo", "publish_time")


def _encode_body(feeds: Iterable[PriceFeed]) -> bytes:
    updates = [
        {
            "id": bytes.fromhex(feed.feed_id[2:]),
            "price": feed.price,
            "conf": feed.conf,
            "expo": feed.expo,
            "publish_time": feed.publish_time,
        }
        for feed in feeds
    ]
    return cbor2.dumps({"v": PAYLOAD_VERSION, "updates": updates}, canonical=True)


def encode_updates(feeds: Iterable[PriceFeed], private_key: str | bytes) -> bytes:
    """Build a signed update blob for the given prices.

    This is the publisher side of the format; the pool only ever decodes.

    :param feeds: Prices to publish.
    :param private_key: Publisher's secp256k1 private key.
    :returns: CBOR-encoded signed blob.
    """
    body = _encode_body(feeds)
    signed = Account.sign_message(encode_defunct(primitive=body), private_key)
    return cbor2.dumps({"body": body, "sig": bytes(signed.signature)}, canonical=True)


@dataclass(frozen=True)
class SignedUpdate:
    """A structurally decoded blob whose signature has not been checked.

    :ivar body: Signed body bytes.
    :ivar signature: 65-byte signature over ``body``.
    :ivar updates: Prices carried by the body.
    """

    body: bytes
    signature: bytes
    updates: tuple[PriceFeed, ...]


def _split_blob(blob: bytes) -> tuple[bytes, bytes]:
    try:
        envelope = cbor2.loads(blob)
    except (cbor2.CBORDecodeError, ValueError, TypeError) as e:
        raise InvalidUpdateData(f"Update blob is not valid CBOR: {e}") from e

    if not isinstance(envelope, dict):
        raise InvalidUpdateData("Update blob must be a CBOR map")
    body = envelope.get("body")
    sig = envelope.get("sig")
    if not isinstance(body, bytes) or not isinstance(sig, bytes):
        raise InvalidUpdateData("Update blob must carry 'body' and 'sig' byte strings")
    if len(sig) != SIGNATURE_LENGTH:
        raise InvalidUpdateData(
            f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(sig)}"
        )
    return body, sig


def _parse_update(raw: Any) -> PriceFeed:
    if not isinstance(raw, dict):
        raise InvalidUpdateData("Price update must be a CBOR map")
    missing = [f for f in _UPDATE_FIELDS if f not in raw]
    if missing:
        raise InvalidUpdateData(f"Price update missing fields: {missing}")

    for name in _UPDATE_FIELDS[1:]:
        # bool is an int subclass, reject it explicitly
        if not isinstance(raw[name], int) or isinstance(raw[name], bool):
            raise InvalidUpdateData(f"Price update field '{name}' must be an integer")
    if raw["price"] <= 0:
        raise InvalidUpdateData(f"Price must be positive, got {raw['price']}")
    if raw["price"] > MAX_PRICE:
        raise InvalidUpdateData(f"Price must not exceed {MAX_PRICE}")
    if raw["conf"] < 0:
        raise InvalidUpdateData(f"Confidence must not be negative, got {raw['conf']}")
    if raw["conf"] > MAX_CONF:
        raise InvalidUpdateData(f"Confidence must not exceed {MAX_CONF}")
    if abs(raw["expo"]) > MAX_EXPONENT:
        raise InvalidUpdateData(
            f"Exponent must be within +/-{MAX_EXPONENT}, got {raw['expo']}"
        )
    if not 0 <= raw["publish_time"] <= MAX_PUBLISH_TIME:
        raise InvalidUpdateData("publish_time must not be negative or beyond int64")

    try:
        feed_id = normalize_feed_id(raw["id"])
    except (ValueError, TypeError, AttributeError) as e:
        raise InvalidUpdateData(f"Invalid feed id in update: {e}") from e

    return PriceFeed(
        feed_id=feed_id,
        price=raw["price"],
        conf=raw["conf"],
        expo=raw["expo"],
        publish_time=raw["publish_time"],
    )


def _parse_body(body: bytes) -> list[PriceFeed]:
    try:
        decoded = cbor2.loads(body)
    except (cbor2.CBORDecodeError, ValueError, TypeError) as e:
        raise InvalidUpdateData(f"Update body is not valid CBOR: {e}") from e

    if not isinstance(decoded, dict) or decoded.get("v") != PAYLOAD_VERSION:
        raise InvalidUpdateData(f"Unsupported update payload version: {decoded!r:.60}")
    updates = decoded.get("updates")
    if not isinstance(updates, list) or not updates:
        raise InvalidUpdateData("Update body must contain a non-empty 'updates' list")
    return [_parse_update(raw) for raw in updates]


def parse_blob(blob: bytes) -> SignedUpdate:
    """Decode a blob's envelope and body once, leaving the signature unchecked.

    :param blob: CBOR-encoded signed blob.
    :returns: The decoded blob.
    :raises InvalidUpdateData: If the blob is malformed.
    """
    body, sig = _split_blob(blob)
    return SignedUpdate(body=body, signature=sig, updates=tuple(_parse_body(body)))


def decode_updates(blob: bytes) -> list[PriceFeed]:
    """Decode the prices in a blob without checking its signature.

    :param blob: CBOR-encoded signed blob.
    :returns: Prices carried by the blob.
    :raises InvalidUpdateData: If the blob is malformed.
    """
    return list(parse_blob(blob).updates)


def _recover(body: bytes, sig: bytes) -> str:
    try:
        return Account.recover_message(encode_defunct(primitive=body), signature=sig)
    except Exception as e:  # eth_keys and eth_utils raise unrelated error types
        raise InvalidUpdateData(f"Cannot recover update signer: {e}") from e


def recover_signer(blob: bytes) -> str:
    """Recover the checksummed address that signed a blob.

    :param blob: CBOR-encoded signed blob.
    :returns: Checksummed signer address.
    :raises InvalidUpdateData: If the blob is malformed or the signature
        cannot be recovered.
    """
    body, sig = _split_blob(blob)
    return _recover(body, sig)


class UpdateVerifier(ABC):
    """Abstract verifier turning an opaque update blob into trusted prices.

    Callers that need both the update count and the verified prices parse a
    blob once with :meth:`parse` and then :meth:`check` the result.
    """

    def parse(self, blob: bytes) -> SignedUpdate:
        """Decode a blob without verifying it.

        :raises InvalidUpdateData: If the blob is malformed.
        """
        return parse_blob(blob)

    @abstractmethod
    def check(self, update: SignedUpdate) -> None:
        """Verify a parsed blob.

        :param update: Blob returned by :meth:`parse`.
        :raises InvalidUpdateData: If the blob is not trusted.
        """
        pass

    def verify(self, blob: bytes) -> list[PriceFeed]:
        """Parse and verify a blob and return the prices it carries.

        :param blob: Opaque signed update blob.
        :returns: Verified prices.
        :raises InvalidUpdateData: If the blob is malformed or untrusted.
        """
        update = self.parse(blob)
        self.check(update)
        return list(update.updates)

    def count_updates(self, blob: bytes) -> int:
        """Count the price updates in a blob without verifying it."""
        return len(self.parse(blob).updates)


class SignedUpdateVerifier(UpdateVerifier):
    """Verifier accepting blobs signed by one of a set of publisher keys.

    :ivar trusted_signers: Checksummed publisher addresses.
    """

    def __init__(self, trusted_signers: Iterable[str]) -> None:
        """Initialize the verifier.

        :param trusted_signers: Publisher addresses whose signatures are
            accepted.
        :raises ValueError: If no signer is given or an address is invalid.
        """
        self.trusted_signers = frozenset(
            Web3.to_checksum_address(s) for s in trusted_signers
        )
        if not self.trusted_signers:
            raise ValueError("At least one trusted signer must be specified")

    def check(self, update: SignedUpdate) -> None:
        signer = _recover(update.body, update.signature)
        if signer not in self.trusted_signers:
            logger.warning(f"Rejected update blob signed by untrusted {signer}")
            raise InvalidUpdateData(f"Update signed by untrusted key {signer}")
