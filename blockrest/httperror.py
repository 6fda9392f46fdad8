"""HTTP errors, responses and the parsing of address and scripthash arguments."""

from __future__ import annotations

import dataclasses
import hashlib
import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from .address import AddressError, Network, address_to_script

_SCRIPTHASH_RE = re.compile(r"[0-9a-fA-F]{64}")


class HttpError(Exception):
    """A request failure carrying the HTTP status and plain-text message to send."""

    def __init__(self, message: str, status: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    @classmethod
    def not_found(cls, message: str) -> "HttpError":
        return cls(message, status=404)

    def __repr__(self) -> str:
        return f"HttpError({self.status}, {self.message!r})"


@dataclass
class Response:
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


def _cache_control(ttl: int) -> str:
    return f"public, max-age={ttl}"


def http_message(status: int, message: Union[str, bytes], ttl: int) -> Response:
    """A plain-text response cached for ``ttl`` seconds."""
    body = message.encode("utf-8") if isinstance(message, str) else bytes(message)
    return Response(
        status=status,
        headers={"Content-Type": "text/plain", "Cache-Control": _cache_control(ttl)},
        body=body,
    )


def _to_jsonable(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _to_jsonable(to_dict())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _to_jsonable(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {key: _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def json_response(value: Any, ttl: int) -> Response:
    """A compact JSON response cached for ``ttl`` seconds; non-finite floats become null."""
    try:
        text = json.dumps(
            _to_jsonable(value), separators=(",", ":"), ensure_ascii=False, allow_nan=False
        )
    except (TypeError, ValueError) as exc:
        raise HttpError(str(exc)) from None
    return Response(
        status=200,
        headers={"Content-Type": "application/json", "Cache-Control": _cache_control(ttl)},
        body=text.encode("utf-8"),
    )


def address_to_scripthash(address: str, network: Network) -> bytes:
    """The SHA-256 of the output script of ``address``."""
    try:
        script = address_to_script(address, network)
    except AddressError as exc:
        raise HttpError(str(exc)) from None
    return hashlib.sha256(bytes(script)).digest()


def parse_scripthash(scripthash: str) -> bytes:
    if not _SCRIPTHASH_RE.fullmatch(scripthash):
        raise HttpError("Invalid scripthash")
    return bytes.fromhex(scripthash)


def to_scripthash(script_type: str, script_str: str, network: Network) -> bytes:
    if script_type == "address":
        return address_to_scripthash(script_str, network)
    if script_type == "scripthash":
        return parse_scripthash(script_str)
    raise HttpError("Invalid script type")