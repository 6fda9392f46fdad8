import pytest

from blockrest.block import BlockId, hash_from_hex
from blockrest.transaction import (
    OutPoint,
    Transaction,
    TransactionStatus,
    TxIn,
    TxInput,
    TxOut,
    extract_tx_prevouts,
    get_prev_outpoints,
    has_prevout,
    is_coinbase,
    is_spendable,
    serialize_outpoint,
)

NULL_OUTPOINT = OutPoint(bytes(32), 0xFFFFFFFF)


def coinbase_tx():
    return Transaction(
        version=1,
        inputs=[TxIn(NULL_OUTPOINT, b"\x51", 0xFFFFFFFF)],
        outputs=[TxOut(50, b"\x51")],
        lock_time=0,
    )


def spend_tx(*outpoints, witness=()):
    return Transaction(
        version=2,
        inputs=[TxIn(op, b"", 0xFFFFFFFE, witness) for op in outpoints],
        outputs=[TxOut(1000, b"\x00\x14" + b"\x01" * 20)],
        lock_time=100,
    )


def test_coinbase_wire_bytes():
    expected = bytes.fromhex(
        "01000000" "01" + "00" * 32 + "ffffffff" "01" "51" "ffffffff"
        "01" "3200000000000000" "01" "51" "00000000"
    )
    tx = coinbase_tx()
    assert tx.serialize() == expected
    assert Transaction.parse(expected) == tx
    assert tx.total_size() == len(expected)
    assert tx.weight() == 4 * len(expected)


def test_segwit_roundtrip():
    outpoint = OutPoint(b"\x05" * 32, 1)
    tx = spend_tx(outpoint, witness=(b"\xaa" * 3, b""))
    raw = tx.serialize()
    assert raw[4:6] == b"\x00\x01"
    assert Transaction.parse(raw) == tx
    stripped = spend_tx(outpoint)
    assert tx.txid() == stripped.txid()
    assert tx.serialize(include_witness=False) == stripped.serialize()
    assert tx.weight() == 3 * len(stripped.serialize()) + len(raw)
    assert tx.total_size() > stripped.total_size()


def test_parse_rejects_trailing_bytes():
    with pytest.raises(ValueError):
        Transaction.parse(coinbase_tx().serialize() + b"\x00")


def test_parse_rejects_truncated():
    with pytest.raises(ValueError):
        Transaction.parse(coinbase_tx().serialize()[:-1])


def test_parse_rejects_bad_segwit_flag():
    raw = bytes.fromhex("01000000" "00" "02")
    with pytest.raises(ValueError, match="segwit flag"):
        Transaction.parse(raw)


def test_parse_rejects_empty_witnesses():
    legacy = spend_tx(OutPoint(b"\x05" * 32, 1)).serialize()
    # insert marker and flag, then empty witness stack before lock time
    raw = legacy[:4] + b"\x00\x01" + legacy[4:-4] + b"\x00" + legacy[-4:]
    with pytest.raises(ValueError, match="no witnesses"):
        Transaction.parse(raw)


def test_parse_rejects_non_minimal_varint():
    raw = coinbase_tx().serialize()
    bad = raw[:4] + b"\xfd\x01\x00" + raw[5:]
    with pytest.raises(ValueError, match="non-minimal"):
        Transaction.parse(bad)


def test_is_coinbase():
    assert coinbase_tx().is_coinbase()
    assert not spend_tx(OutPoint(b"\x01" * 32, 0)).is_coinbase()
    assert is_coinbase(coinbase_tx().inputs[0])
    assert not has_prevout(coinbase_tx().inputs[0])
    assert has_prevout(TxIn(OutPoint(bytes(32), 0)))


def test_outpoint_is_null():
    assert NULL_OUTPOINT.is_null()
    assert not OutPoint(bytes(32), 0).is_null()
    assert not OutPoint(b"\x01" * 32, 0xFFFFFFFF).is_null()


@pytest.mark.parametrize(
    "script, spendable",
    [
        (b"\x6a\x04data", False),
        (b"\x50", False),
        (b"\xba", False),
        (b"\x76\xa9\x14" + b"\x00" * 20 + b"\x88\xac", True),
        (b"", True),
    ],
)
def test_is_spendable(script, spendable):
    assert is_spendable(TxOut(1, script)) is spendable


def test_extract_tx_prevouts():
    first = OutPoint(b"\x01" * 32, 0)
    second = OutPoint(b"\x02" * 32, 3)
    tx = spend_tx(first, second)
    known = TxOut(500, b"\x51")
    assert extract_tx_prevouts(tx, {first: known}, True) == {0: known}
    with pytest.raises(KeyError):
        extract_tx_prevouts(tx, {first: known}, False)
    assert extract_tx_prevouts(coinbase_tx(), {}, False) == {}


def test_get_prev_outpoints_sorted_unique():
    a = OutPoint(b"\x02" * 32, 0)
    b = OutPoint(b"\x01" * 32, 5)
    c = OutPoint(b"\x01" * 32, 1)
    txs = [spend_tx(a, b), spend_tx(c, a), coinbase_tx()]
    assert get_prev_outpoints(txs) == [c, b, a]


def test_serialize_outpoint():
    txid = hash_from_hex("00" * 31 + "01")
    assert serialize_outpoint(OutPoint(txid, 7)) == {"txid": "00" * 31 + "01", "vout": 7}


def test_transaction_status():
    assert TransactionStatus.from_blockid(None).to_dict() == {"confirmed": False}
    block_hash = hash_from_hex("00" * 31 + "0f")
    status = TransactionStatus.from_blockid(BlockId(height=102, hash=block_hash, time=1234))
    assert status.to_dict() == {
        "confirmed": True,
        "block_height": 102,
        "block_hash": "00" * 31 + "0f",
        "block_time": 1234,
    }


def test_tx_input_fields():
    entry = TxInput(txid=b"\x09" * 32, vin=4)
    assert (entry.txid, entry.vin) == (b"\x09" * 32, 4)