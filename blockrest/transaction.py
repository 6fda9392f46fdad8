"""Transactions, their wire format and helpers over inputs and outputs."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from .block import HASH_LEN, BlockId, hash_to_hex, sha256d

_NULL_TXID = bytes(HASH_LEN)
_NULL_VOUT = 0xFFFFFFFF

_OP_RETURN = 0x6A
_OP_CHECKSIGADD = 0xBA
# Opcodes that end legacy script execution on sight, or are illegal there.
_UNSPENDABLE_FIRST_OPCODES = frozenset(
    {
        _OP_RETURN,
        0x50,  # OP_RESERVED
        0x62,  # OP_VER
        0x89,  # OP_RESERVED1
        0x8A,  # OP_RESERVED2
        0x65,  # OP_VERIF
        0x66,  # OP_VERNOTIF
        0x7E, 0x7F, 0x80, 0x81,  # OP_CAT OP_SUBSTR OP_LEFT OP_RIGHT
        0x83, 0x84, 0x85, 0x86,  # OP_INVERT OP_AND OP_OR OP_XOR
        0x8D, 0x8E,  # OP_2MUL OP_2DIV
        0x95, 0x96, 0x97, 0x98, 0x99,  # OP_MUL OP_DIV OP_MOD OP_LSHIFT OP_RSHIFT
    }
)


def _is_provably_unspendable(script: bytes) -> bool:
    if not script:
        return False
    first = script[0]
    return first in _UNSPENDABLE_FIRST_OPCODES or first >= _OP_CHECKSIGADD


@dataclass(frozen=True, order=True)
class OutPoint:
    txid: bytes
    vout: int

    def is_null(self) -> bool:
        return self.txid == _NULL_TXID and self.vout == _NULL_VOUT

    def __str__(self) -> str:
        return f"{hash_to_hex(self.txid)}:{self.vout}"


@dataclass(frozen=True)
class TxIn:
    previous_output: OutPoint
    script_sig: bytes = b""
    sequence: int = 0xFFFFFFFF
    witness: tuple[bytes, ...] = ()


@dataclass(frozen=True)
class TxOut:
    value: int
    script_pubkey: bytes


def _compact_size(n: int) -> bytes:
    if n < 0xFD:
        return bytes([n])
    if n <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", n)
    if n <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", n)
    return b"\xff" + struct.pack("<Q", n)


def _var_bytes(data: bytes) -> bytes:
    return _compact_size(len(data)) + data


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise ValueError("unexpected end of data")
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def unpack(self, fmt: str) -> int:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))[0]

    def compact_size(self) -> int:
        prefix = self.unpack("<B")
        if prefix < 0xFD:
            return prefix
        fmt, minimum = {0xFD: ("<H", 0xFD), 0xFE: ("<I", 0x10000), 0xFF: ("<Q", 0x100000000)}[prefix]
        value = self.unpack(fmt)
        if value < minimum:
            raise ValueError("non-minimal varint")
        return value

    def var_bytes(self) -> bytes:
        return self.take(self.compact_size())

    @property
    def at_end(self) -> bool:
        return self._pos == len(self._data)


@dataclass
class Transaction:
    version: int
    inputs: list[TxIn] = field(default_factory=list)
    outputs: list[TxOut] = field(default_factory=list)
    lock_time: int = 0

    @classmethod
    def parse(cls, data: bytes) -> "Transaction":
        """Decode a transaction; the whole of ``data`` must be consumed."""
        reader = _Reader(bytes(data))
        version = reader.unpack("<i")
        count = reader.compact_size()
        segwit = False
        if count == 0:
            flag = reader.unpack("<B")
            if flag != 1:
                raise ValueError(f"unsupported segwit flag {flag}")
            segwit = True
            count = reader.compact_size()

        raw_inputs = []
        for _ in range(count):
            txid = reader.take(HASH_LEN)
            vout = reader.unpack("<I")
            script_sig = reader.var_bytes()
            sequence = reader.unpack("<I")
            raw_inputs.append((OutPoint(txid, vout), script_sig, sequence))

        outputs = []
        for _ in range(reader.compact_size()):
            value = reader.unpack("<Q")
            outputs.append(TxOut(value=value, script_pubkey=reader.var_bytes()))

        witnesses: list[tuple[bytes, ...]] = [() for _ in raw_inputs]
        if segwit:
            witnesses = [
                tuple(reader.var_bytes() for _ in range(reader.compact_size()))
                for _ in raw_inputs
            ]
            if raw_inputs and not any(witnesses):
                raise ValueError("witness flag set but no witnesses present")

        lock_time = reader.unpack("<I")
        if not reader.at_end:
            raise ValueError("data not consumed entirely when explicitly deserializing")

        inputs = [
            TxIn(previous_output=outpoint, script_sig=script_sig, sequence=sequence, witness=witness)
            for (outpoint, script_sig, sequence), witness in zip(raw_inputs, witnesses)
        ]
        return cls(version=version, inputs=inputs, outputs=outputs, lock_time=lock_time)

    def serialize(self, include_witness: bool = True) -> bytes:
        segwit = include_witness and (
            not self.inputs or any(txin.witness for txin in self.inputs)
        )
        parts = [struct.pack("<i", self.version)]
        if segwit:
            parts.append(b"\x00\x01")
        parts.append(_compact_size(len(self.inputs)))
        for txin in self.inputs:
            parts.append(txin.previous_output.txid)
            parts.append(struct.pack("<I", txin.previous_output.vout))
            parts.append(_var_bytes(txin.script_sig))
            parts.append(struct.pack("<I", txin.sequence))
        parts.append(_compact_size(len(self.outputs)))
        for txout in self.outputs:
            parts.append(struct.pack("<Q", txout.value))
            parts.append(_var_bytes(txout.script_pubkey))
        if segwit:
            for txin in self.inputs:
                parts.append(_compact_size(len(txin.witness)))
                parts.extend(_var_bytes(item) for item in txin.witness)
        parts.append(struct.pack("<I", self.lock_time))
        return b"".join(parts)

    def txid(self) -> bytes:
        return sha256d(self.serialize(include_witness=False))

    def total_size(self) -> int:
        return len(self.serialize(include_witness=True))

    def weight(self) -> int:
        return len(self.serialize(include_witness=False)) * 3 + self.total_size()

    def is_coinbase(self) -> bool:
        return len(self.inputs) == 1 and self.inputs[0].previous_output.is_null()


@dataclass(frozen=True)
class TransactionStatus:
    confirmed: bool
    block_height: Optional[int] = None
    block_hash: Optional[bytes] = None
    block_time: Optional[int] = None

    @classmethod
    def from_blockid(cls, blockid: Optional[BlockId]) -> "TransactionStatus":
        if blockid is None:
            return cls(confirmed=False)
        return cls(
            confirmed=True,
            block_height=blockid.height,
            block_hash=blockid.hash,
            block_time=blockid.time,
        )

    def to_dict(self) -> dict:
        result: dict = {"confirmed": self.confirmed}
        if self.block_height is not None:
            result["block_height"] = self.block_height
        if self.block_hash is not None:
            result["block_hash"] = hash_to_hex(self.block_hash)
        if self.block_time is not None:
            result["block_time"] = self.block_time
        return result


@dataclass(frozen=True)
class TxInput:
    txid: bytes
    vin: int


def is_coinbase(txin: TxIn) -> bool:
    return txin.previous_output.is_null()


def has_prevout(txin: TxIn) -> bool:
    return not txin.previous_output.is_null()


def is_spendable(txout: TxOut) -> bool:
    return not _is_provably_unspendable(txout.script_pubkey)


def extract_tx_prevouts(
    tx: Transaction, txos: Mapping[OutPoint, TxOut], allow_missing: bool
) -> dict[int, TxOut]:
    """Map input indexes to the outputs they spend, skipping coinbase inputs."""
    prevouts: dict[int, TxOut] = {}
    for index, txin in enumerate(tx.inputs):
        if not has_prevout(txin):
            continue
        prevout = txos.get(txin.previous_output)
        if prevout is None:
            if not allow_missing:
                raise KeyError(f"missing outpoint {txin.previous_output}")
            continue
        prevouts[index] = prevout
    return prevouts


def get_prev_outpoints(txs: Iterable[Transaction]) -> list[OutPoint]:
    """The distinct outpoints spent by ``txs``, in sorted order."""
    return sorted(
        {txin.previous_output for tx in txs for txin in tx.inputs if has_prevout(txin)}
    )


def serialize_outpoint(outpoint: OutPoint) -> dict:
    return {"txid": hash_to_hex(outpoint.txid), "vout": outpoint.vout}