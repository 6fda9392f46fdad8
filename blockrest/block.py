"""Block headers, the best-chain header list and block metadata."""

from __future__ import annotations

import hashlib
import logging
import math
import string
import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar, Iterator, Mapping, Optional, Sequence

log = logging.getLogger(__name__)

HASH_LEN = 32
MTP_SPAN = 11
DEFAULT_BLOCKHASH = bytes(HASH_LEN)

_U32_MAX = 0xFFFFFFFF
_HEADER_STRUCT = struct.Struct("<i32s32sIII")


def sha256d(data: bytes) -> bytes:
    """Double SHA-256 of ``data``, in internal byte order."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash_to_hex(digest: bytes) -> str:
    """Render a hash in the usual byte-reversed hex form."""
    return bytes(digest)[::-1].hex()


def hash_from_hex(text: str) -> bytes:
    """Parse a byte-reversed hex hash into internal byte order."""
    if len(text) != 2 * HASH_LEN:
        raise ValueError("Invalid hash string")
    if any(ch not in string.hexdigits for ch in text):
        raise ValueError("Invalid hex string")
    return bytes.fromhex(text)[::-1]


def full_hash(data: bytes) -> bytes:
    """Return the first 32 bytes of ``data``."""
    if len(data) < HASH_LEN:
        raise ValueError(f"expected at least {HASH_LEN} bytes, got {len(data)}")
    return bytes(data[:HASH_LEN])


def _compact_to_target(bits: int) -> int:
    exponent = bits >> 24
    mantissa = bits & 0x007FFFFF
    if exponent <= 3:
        return mantissa >> (8 * (3 - exponent))
    return mantissa << (8 * (exponent - 3))


_MAX_TARGET = _compact_to_target(0x1D00FFFF)


@dataclass(frozen=True)
class BlockHeader:
    """An 80-byte block header."""

    version: int
    prev_blockhash: bytes
    merkle_root: bytes
    time: int
    bits: int
    nonce: int

    SIZE: ClassVar[int] = 80

    def __post_init__(self) -> None:
        for name in ("prev_blockhash", "merkle_root"):
            if len(getattr(self, name)) != HASH_LEN:
                raise ValueError(f"{name} must be {HASH_LEN} bytes")

    def serialize(self) -> bytes:
        return _HEADER_STRUCT.pack(
            self.version,
            self.prev_blockhash,
            self.merkle_root,
            self.time,
            self.bits,
            self.nonce,
        )

    @classmethod
    def parse(cls, data: bytes) -> "BlockHeader":
        if len(data) != cls.SIZE:
            raise ValueError(f"block header must be {cls.SIZE} bytes, got {len(data)}")
        return cls(*_HEADER_STRUCT.unpack(bytes(data)))

    def block_hash(self) -> bytes:
        return sha256d(self.serialize())

    def difficulty(self) -> float:
        """Difficulty relative to the maximum target, as a float."""
        target = _compact_to_target(self.bits)
        if target == 0:
            return math.inf
        return _MAX_TARGET / target


@dataclass(frozen=True)
class HeaderEntry:
    """A header placed at a height of the best chain."""

    height: int
    hash: bytes
    header: BlockHeader

    def __str__(self) -> str:
        when = datetime.fromtimestamp(self.header.time, timezone.utc)
        return (
            f"hash={hash_to_hex(self.hash)} height={self.height} "
            f"@ {when.strftime('%Y-%m-%dT%H:%M:%SZ')}"
        )


@dataclass(frozen=True)
class BlockId:
    height: int
    hash: bytes
    time: int

    @classmethod
    def from_header_entry(cls, entry: HeaderEntry) -> "BlockId":
        return cls(height=entry.height, hash=entry.hash, time=entry.header.time)


class HeaderList:
    """The headers of the best chain, indexed by height and by hash."""

    def __init__(self) -> None:
        self._headers: list[HeaderEntry] = []
        self._heights: dict[bytes, int] = {}
        self._tip: bytes = DEFAULT_BLOCKHASH

    @classmethod
    def empty(cls) -> "HeaderList":
        return cls()

    @classmethod
    def from_headers(
        cls, headers_map: Mapping[bytes, BlockHeader], tip_hash: bytes
    ) -> "HeaderList":
        """Build the chain ending at ``tip_hash``; headers off that chain are ignored."""
        log.debug("processing %d headers, tip at %s", len(headers_map), hash_to_hex(tip_hash))
        remaining = dict(headers_map)
        chain: list[BlockHeader] = []
        blockhash = tip_hash
        while blockhash != DEFAULT_BLOCKHASH:
            header = remaining.pop(blockhash, None)
            if header is None:
                pointed_from = hash_to_hex(chain[-1].block_hash()) if chain else None
                raise ValueError(
                    f"missing expected blockhash in headers map: {hash_to_hex(blockhash)}, "
                    f"pointed from: {pointed_from}"
                )
            blockhash = header.prev_blockhash
            chain.append(header)
        chain.reverse()
        log.debug("%d chained headers (%d orphan blocks left)", len(chain), len(remaining))

        headers = cls.empty()
        headers.apply(headers.order(chain))
        return headers

    def order(self, new_headers: Sequence[BlockHeader]) -> list[HeaderEntry]:
        """Assign heights to a run of linked headers that extends this list."""
        hashed = [(header.block_hash(), header) for header in new_headers]
        for (prev_hash, _), (_, header) in zip(hashed, hashed[1:]):
            if header.prev_blockhash != prev_hash:
                raise ValueError("new headers do not form a chain")
        if not hashed:
            return []
        prev_blockhash = hashed[0][1].prev_blockhash
        if prev_blockhash == DEFAULT_BLOCKHASH:
            start = 0
        else:
            parent = self.header_by_blockhash(prev_blockhash)
            if parent is None:
                raise ValueError(f"{hash_to_hex(prev_blockhash)} is not part of the blockchain")
            start = parent.height + 1
        return [
            HeaderEntry(height=height, hash=blockhash, header=header)
            for height, (blockhash, header) in enumerate(hashed, start)
        ]

    def apply(self, new_headers: Sequence[HeaderEntry]) -> None:
        """Replace everything from the first new header's height onwards."""
        for prev, cur in zip(new_headers, new_headers[1:]):
            if prev.height + 1 != cur.height:
                raise ValueError("new headers have non-consecutive heights")
            if prev.hash != cur.header.prev_blockhash:
                raise ValueError("new headers do not form a chain")
        if not new_headers:
            return
        first = new_headers[0]
        new_height = first.height
        if new_height > len(self._headers):
            raise ValueError(f"new headers start at height {new_height}, beyond the tip")
        expected_prev = self._headers[new_height - 1].hash if new_height > 0 else DEFAULT_BLOCKHASH
        if first.header.prev_blockhash != expected_prev:
            raise ValueError("new headers do not connect to the existing chain")
        log.debug("applying %d new headers from height %d", len(new_headers), new_height)

        del self._headers[new_height:]
        for entry in new_headers:
            if entry.height != len(self._headers):
                raise ValueError("unexpected header height")
            self._tip = entry.hash
            self._headers.append(entry)
            self._heights[entry.hash] = entry.height

    def header_by_blockhash(self, blockhash: bytes) -> Optional[HeaderEntry]:
        height = self._heights.get(blockhash)
        if height is None or height >= len(self._headers):
            return None
        entry = self._headers[height]
        return entry if entry.hash == blockhash else None

    def header_by_height(self, height: int) -> Optional[HeaderEntry]:
        if 0 <= height < len(self._headers):
            return self._headers[height]
        return None

    def equals(self, other: "HeaderList") -> bool:
        mine = self._headers[-1] if self._headers else None
        theirs = other._headers[-1] if other._headers else None
        return mine == theirs

    def tip(self) -> bytes:
        expected = self._headers[-1].hash if self._headers else DEFAULT_BLOCKHASH
        if self._tip != expected:
            raise RuntimeError("header list tip is inconsistent")
        return self._tip

    def __len__(self) -> int:
        return len(self._headers)

    def __iter__(self) -> Iterator[HeaderEntry]:
        return iter(self._headers)

    def get_mtp(self, height: int) -> int:
        """Median time past at ``height``; the genesis block uses its own time."""
        if height == 0:
            return self._headers[0].header.time
        if height > len(self._headers) - 1:
            return 0
        window = self._headers[max(0, height - (MTP_SPAN - 1)) : height + 1]
        timestamps = sorted(entry.header.time for entry in window)
        return timestamps[len(timestamps) // 2]


@dataclass(frozen=True)
class BlockStatus:
    in_best_chain: bool
    height: Optional[int]
    next_best: Optional[bytes]

    @classmethod
    def confirmed(cls, height: int, next_best: Optional[bytes]) -> "BlockStatus":
        return cls(in_best_chain=True, height=height, next_best=next_best)

    @classmethod
    def orphaned(cls) -> "BlockStatus":
        return cls(in_best_chain=False, height=None, next_best=None)

    def to_dict(self) -> dict:
        return {
            "in_best_chain": self.in_best_chain,
            "height": self.height,
            "next_best": hash_to_hex(self.next_best) if self.next_best is not None else None,
        }


def _as_u32(value: float) -> int:
    if isinstance(value, float) and math.isnan(value):
        return 0
    if value <= 0:
        return 0
    if value >= _U32_MAX:
        return _U32_MAX
    return int(value)


def _number_field(val: Mapping, name: str) -> int:
    if not isinstance(val, Mapping) or name not in val:
        raise ValueError(f"missing {name}")
    value = val[name]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} not a number")
    return _as_u32(value)


@dataclass(frozen=True)
class BlockMeta:
    tx_count: int
    size: int
    weight: int

    @classmethod
    def parse_getblock(cls, val: Mapping) -> "BlockMeta":
        """Read the metadata from a ``getblock`` JSON result."""
        return cls(
            tx_count=_number_field(val, "nTx"),
            size=_number_field(val, "size"),
            weight=_number_field(val, "weight"),
        )


@dataclass(frozen=True)
class BlockHeaderMeta:
    header_entry: HeaderEntry
    meta: BlockMeta
    mtp: int