"""Script parsing, assembly rendering and output type detection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Optional

from .transaction import TxIn, TxOut, _is_provably_unspendable

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1 = 0x51
OP_RETURN = 0x6A
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_CHECKSIG = 0xAC

_PUSHDATA_WIDTH = {OP_PUSHDATA1: 1, OP_PUSHDATA2: 2, OP_PUSHDATA4: 4}


def _build_opcode_names() -> dict[int, str]:
    names = {
        0x00: "OP_0",
        OP_PUSHDATA1: "OP_PUSHDATA1",
        OP_PUSHDATA2: "OP_PUSHDATA2",
        OP_PUSHDATA4: "OP_PUSHDATA4",
        0x4F: "OP_PUSHNUM_NEG1",
        0x50: "OP_RESERVED",
    }
    for n in range(1, 0x4C):
        names[n] = f"OP_PUSHBYTES_{n}"
    for n in range(1, 17):
        names[0x50 + n] = f"OP_PUSHNUM_{n}"
    plain = (
        "NOP VER IF NOTIF VERIF VERNOTIF ELSE ENDIF VERIFY RETURN TOALTSTACK "
        "FROMALTSTACK 2DROP 2DUP 3DUP 2OVER 2ROT 2SWAP IFDUP DEPTH DROP DUP NIP "
        "OVER PICK ROLL ROT SWAP TUCK CAT SUBSTR LEFT RIGHT SIZE INVERT AND OR "
        "XOR EQUAL EQUALVERIFY RESERVED1 RESERVED2 1ADD 1SUB 2MUL 2DIV NEGATE "
        "ABS NOT 0NOTEQUAL ADD SUB MUL DIV MOD LSHIFT RSHIFT BOOLAND BOOLOR "
        "NUMEQUAL NUMEQUALVERIFY NUMNOTEQUAL LESSTHAN GREATERTHAN "
        "LESSTHANOREQUAL GREATERTHANOREQUAL MIN MAX WITHIN RIPEMD160 SHA1 "
        "SHA256 HASH160 HASH256 CODESEPARATOR CHECKSIG CHECKSIGVERIFY "
        "CHECKMULTISIG CHECKMULTISIGVERIFY NOP1 CLTV CSV NOP4 NOP5 NOP6 NOP7 "
        "NOP8 NOP9 NOP10 CHECKSIGADD"
    ).split()
    for offset, name in enumerate(plain):
        names[0x61 + offset] = f"OP_{name}"
    for code in range(0xBB, 0xFF):
        names[code] = f"OP_RETURN_{code}"
    names[0xFF] = "OP_INVALIDOPCODE"
    return names


OPCODE_NAMES = _build_opcode_names()


class Instruction(NamedTuple):
    """One script instruction; ``data`` is set for pushes and ``None`` otherwise."""

    opcode: int
    data: Optional[bytes]


class Script(bytes):
    """A raw script with helpers for reading and classifying it."""

    def _push_length(self, opcode: int, pos: int) -> tuple[int, int]:
        """Return (data length, position after length prefix); raise on truncation."""
        if opcode < OP_PUSHDATA1:
            return opcode, pos
        width = _PUSHDATA_WIDTH[opcode]
        if pos + width > len(self):
            raise ValueError("unexpected end of script")
        return int.from_bytes(self[pos : pos + width], "little"), pos + width

    def instructions(self) -> Iterator[Instruction]:
        """Yield instructions; raise ValueError at a truncated push."""
        pos = 0
        while pos < len(self):
            opcode = self[pos]
            pos += 1
            if opcode <= OP_PUSHDATA4:
                length, pos = self._push_length(opcode, pos)
                if pos + length > len(self):
                    raise ValueError("push past end of script")
                yield Instruction(opcode, bytes(self[pos : pos + length]))
                pos += length
            else:
                yield Instruction(opcode, None)

    def to_asm(self) -> str:
        parts: list[str] = []
        pos = 0
        while pos < len(self):
            opcode = self[pos]
            pos += 1
            parts.append(OPCODE_NAMES[opcode])
            if opcode == OP_0 or opcode > OP_PUSHDATA4:
                continue
            try:
                length, pos = self._push_length(opcode, pos)
            except ValueError:
                parts.append("<unexpected end>")
                break
            if pos + length > len(self):
                parts.append("<push past end>")
                break
            parts.append(self[pos : pos + length].hex())
            pos += length
        return " ".join(parts)

    def is_empty(self) -> bool:
        return len(self) == 0

    def is_op_return(self) -> bool:
        return len(self) > 0 and self[0] == OP_RETURN

    def is_p2pk(self) -> bool:
        return (len(self) == 67 and self[0] == 0x41 and self[-1] == OP_CHECKSIG) or (
            len(self) == 35 and self[0] == 0x21 and self[-1] == OP_CHECKSIG
        )

    def is_p2pkh(self) -> bool:
        return (
            len(self) == 25
            and self[0] == OP_DUP
            and self[1] == OP_HASH160
            and self[2] == 0x14
            and self[23] == OP_EQUALVERIFY
            and self[24] == OP_CHECKSIG
        )

    def is_p2sh(self) -> bool:
        return len(self) == 23 and self[0] == OP_HASH160 and self[1] == 0x14 and self[22] == OP_EQUAL

    def is_p2wpkh(self) -> bool:
        return len(self) == 22 and self[0] == OP_0 and self[1] == 0x14

    def is_p2wsh(self) -> bool:
        return len(self) == 34 and self[0] == OP_0 and self[1] == 0x20

    def is_p2tr(self) -> bool:
        return len(self) == 34 and self[0] == OP_1 and self[1] == 0x20

    def is_provably_unspendable(self) -> bool:
        return _is_provably_unspendable(bytes(self))

    def script_type(self) -> str:
        """The output type name used in the REST output."""
        checks = (
            ("empty", self.is_empty),
            ("op_return", self.is_op_return),
            ("p2pk", self.is_p2pk),
            ("p2pkh", self.is_p2pkh),
            ("p2sh", self.is_p2sh),
            ("v0_p2wpkh", self.is_p2wpkh),
            ("v0_p2wsh", self.is_p2wsh),
            ("v1_p2tr", self.is_p2tr),
            ("provably_unspendable", self.is_provably_unspendable),
        )
        return next((name for name, check in checks if check()), "unknown")


@dataclass(frozen=True)
class InnerScripts:
    redeem_script: Optional[Script]
    witness_script: Optional[Script]


def get_innerscripts(txin: TxIn, prevout: TxOut) -> InnerScripts:
    """The redeemScript of a P2SH spend and the witnessScript of a P2WSH spend."""
    spent = Script(prevout.script_pubkey)
    redeem_script: Optional[Script] = None
    if spent.is_p2sh():
        try:
            instructions = list(Script(txin.script_sig).instructions())
        except ValueError:
            instructions = []
        if instructions and instructions[-1].data is not None:
            redeem_script = Script(instructions[-1].data)

    witness_script: Optional[Script] = None
    if spent.is_p2wsh() or (redeem_script is not None and redeem_script.is_p2wsh()):
        if txin.witness:
            witness_script = Script(txin.witness[-1])

    return InnerScripts(redeem_script=redeem_script, witness_script=witness_script)