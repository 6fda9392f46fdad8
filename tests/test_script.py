import pytest

from blockrest.script import Instruction, Script, get_innerscripts
from blockrest.transaction import OutPoint, TxIn, TxOut

H20 = bytes(range(20))
H32 = bytes(range(32))

P2PKH = Script(b"\x76\xa9\x14" + H20 + b"\x88\xac")
P2SH = Script(b"\xa9\x14" + H20 + b"\x87")
P2WPKH = Script(b"\x00\x14" + H20)
P2WSH = Script(b"\x00\x20" + H32)
P2TR = Script(b"\x51\x20" + H32)
P2PK = Script(b"\x21" + bytes(33) + b"\xac")


@pytest.mark.parametrize(
    "script,expected",
    [
        (Script(b""), "empty"),
        (Script(b"\x6a\x01\x00"), "op_return"),
        (P2PK, "p2pk"),
        (P2PKH, "p2pkh"),
        (P2SH, "p2sh"),
        (P2WPKH, "v0_p2wpkh"),
        (P2WSH, "v0_p2wsh"),
        (P2TR, "v1_p2tr"),
        (Script(b"\xba"), "provably_unspendable"),
        (Script(b"\x51"), "unknown"),
    ],
)
def test_script_type(script, expected):
    assert script.script_type() == expected


def test_p2pkh_asm():
    assert P2PKH.to_asm() == f"OP_DUP OP_HASH160 OP_PUSHBYTES_20 {H20.hex()} OP_EQUALVERIFY OP_CHECKSIG"


def test_asm_push_past_end():
    assert Script(b"\x05\xab").to_asm() == "OP_PUSHBYTES_5 <push past end>"


def test_empty_asm():
    assert Script(b"").to_asm() == ""


def test_instructions_roundtrip_pushdata1():
    payload = bytes(80)
    script = Script(b"\x4c\x50" + payload + b"\xac")
    assert list(script.instructions()) == [Instruction(0x4C, payload), Instruction(0xAC, None)]


def test_instructions_truncated_raises():
    with pytest.raises(ValueError):
        list(Script(b"\x4d\x01").instructions())


def test_op0_is_empty_push():
    assert list(Script(b"\x00").instructions()) == [Instruction(0, b"")]


def test_innerscripts_p2sh_p2wsh():
    witness_script = Script(b"\x51\xae")
    redeem = P2WSH
    txin = TxIn(
        previous_output=OutPoint(H32, 0),
        script_sig=bytes([len(redeem)]) + redeem,
        witness=(b"\x01", bytes(witness_script)),
    )
    result = get_innerscripts(txin, TxOut(1000, bytes(P2SH)))
    assert result.redeem_script == redeem
    assert result.witness_script == witness_script


def test_innerscripts_plain_p2pkh():
    txin = TxIn(previous_output=OutPoint(H32, 0), script_sig=b"\x01\x02")
    result = get_innerscripts(txin, TxOut(1000, bytes(P2PKH)))
    assert result.redeem_script is None and result.witness_script is None


def test_innerscripts_bad_scriptsig():
    txin = TxIn(previous_output=OutPoint(H32, 0), script_sig=b"\x05\x01")
    assert get_innerscripts(txin, TxOut(1, bytes(P2SH))).redeem_script is None