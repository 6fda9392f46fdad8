"""Conversion between output scripts and Bitcoin addresses."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .block import sha256d
from .script import Script

_BASE58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_CONST = 1
_BECH32M_CONST = 0x2BC830A3


class Network(Enum):
    BITCOIN = "bitcoin"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"

    @property
    def pubkey_prefix(self) -> int:
        return 0x00 if self is Network.BITCOIN else 0x6F

    @property
    def script_prefix(self) -> int:
        return 0x05 if self is Network.BITCOIN else 0xC4

    @property
    def hrp(self) -> str:
        return {"bitcoin": "bc", "testnet": "tb", "signet": "tb", "regtest": "bcrt"}[self.value]


class AddressError(ValueError):
    """An address could not be parsed or is not valid for the network."""


def _base58check_encode(payload: bytes) -> str:
    data = payload + sha256d(payload)[:4]
    num = int.from_bytes(data, "big")
    out = ""
    while num:
        num, rem = divmod(num, 58)
        out = _BASE58[rem] + out
    zeros = len(data) - len(data.lstrip(b"\x00"))
    return "1" * zeros + out


def _base58check_decode(text: str) -> bytes:
    num = 0
    for ch in text:
        index = _BASE58.find(ch)
        if index < 0:
            raise AddressError(f"invalid base58 character {ch!r}")
        num = num * 58 + index
    body = num.to_bytes((num.bit_length() + 7) // 8, "big")
    zeros = len(text) - len(text.lstrip("1"))
    data = b"\x00" * zeros + body
    if len(data) < 4 or sha256d(data[:-4])[:4] != data[-4:]:
        raise AddressError("base58 checksum mismatch")
    return data[:-4]


def _polymod(values: list[int]) -> int:
    generators = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ value
        for bit, gen in enumerate(generators):
            if (top >> bit) & 1:
                chk ^= gen
    return chk


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _convert_bits(data: bytes | list[int], from_bits: int, to_bits: int, pad: bool) -> list[int]:
    acc = bits = 0
    out: list[int] = []
    maxv = (1 << to_bits) - 1
    for value in data:
        if value >> from_bits:
            raise AddressError("invalid data value")
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            out.append((acc >> bits) & maxv)
    if pad:
        if bits:
            out.append((acc << (to_bits - bits)) & maxv)
    elif bits >= from_bits or (acc << (to_bits - bits)) & maxv:
        raise AddressError("invalid padding")
    return out


def _segwit_encode(hrp: str, version: int, program: bytes) -> str:
    const = _BECH32_CONST if version == 0 else _BECH32M_CONST
    data = [version] + _convert_bits(program, 8, 5, True)
    polymod = _polymod(_hrp_expand(hrp) + data + [0] * 6) ^ const
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]
    return hrp + "1" + "".join(_BECH32_CHARSET[d] for d in data + checksum)


def _segwit_decode(text: str) -> tuple[str, int, bytes]:
    if text.lower() != text and text.upper() != text:
        raise AddressError("mixed-case bech32 string")
    text = text.lower()
    sep = text.rfind("1")
    if sep < 1 or sep + 7 > len(text) or len(text) > 90:
        raise AddressError("invalid bech32 string")
    hrp = text[:sep]
    try:
        data = [_BECH32_CHARSET.index(c) for c in text[sep + 1 :]]
    except ValueError:
        raise AddressError("invalid bech32 character") from None
    const = _polymod(_hrp_expand(hrp) + data)
    if const not in (_BECH32_CONST, _BECH32M_CONST):
        raise AddressError("bech32 checksum mismatch")
    version, program = data[0], bytes(_convert_bits(data[1:-6], 5, 8, False))
    if version > 16 or not 2 <= len(program) <= 40:
        raise AddressError("invalid witness program")
    if version == 0 and len(program) not in (20, 32):
        raise AddressError("invalid v0 witness program length")
    if (version == 0) != (const == _BECH32_CONST):
        raise AddressError("wrong bech32 variant for witness version")
    return hrp, version, program


def _witness_program(script: Script) -> Optional[tuple[int, bytes]]:
    if not 4 <= len(script) <= 42:
        return None
    first = script[0]
    if first == 0:
        version = 0
    elif 0x51 <= first <= 0x60:
        version = first - 0x50
    else:
        return None
    if script[1] != len(script) - 2:
        return None
    program = bytes(script[2:])
    if version == 0 and len(program) not in (20, 32):
        return None
    return version, program


def script_to_address(script: bytes, network: Network) -> Optional[str]:
    """The address paying to ``script``, or ``None`` if it has none."""
    script = Script(script)
    if script.is_p2pkh():
        return _base58check_encode(bytes([network.pubkey_prefix]) + script[3:23])
    if script.is_p2sh():
        return _base58check_encode(bytes([network.script_prefix]) + script[2:22])
    witness = _witness_program(script)
    if witness is not None:
        return _segwit_encode(network.hrp, *witness)
    return None


def address_to_script(address: str, network: Network) -> Script:
    """The output script of ``address``; raise AddressError if invalid for ``network``."""
    prefix = address[: address.rfind("1")].lower() if "1" in address else ""
    if prefix in ("bc", "tb", "bcrt"):
        hrp, version, program = _segwit_decode(address)
        if hrp != network.hrp:
            raise AddressError("Address on invalid network")
        op = 0 if version == 0 else 0x50 + version
        return Script(bytes([op, len(program)]) + program)

    payload = _base58check_decode(address)
    if len(payload) != 21:
        raise AddressError("invalid base58 payload length")
    version, body = payload[0], payload[1:]
    if version in (0x00, 0x6F):
        if version != network.pubkey_prefix:
            raise AddressError("Address on invalid network")
        return Script(b"\x76\xa9\x14" + body + b"\x88\xac")
    if version in (0x05, 0xC4):
        if version != network.script_prefix:
            raise AddressError("Address on invalid network")
        return Script(b"\xa9\x14" + body + b"\x87")
    raise AddressError(f"unknown address version byte {version}")