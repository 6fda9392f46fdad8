"""JSON-ready views of blocks, transactions, outputs and spends for the REST API."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .address import Network, script_to_address
from .block import DEFAULT_BLOCKHASH, BlockHeaderMeta, BlockId, hash_to_hex
from .fees import get_tx_fee
from .script import Script, get_innerscripts
from .transaction import (
    OutPoint,
    Transaction,
    TransactionStatus,
    TxIn,
    TxOut,
    extract_tx_prevouts,
    is_coinbase,
)

_U32_MASK = 0xFFFFFFFF


def block_value(blockhm: BlockHeaderMeta) -> dict[str, Any]:
    entry = blockhm.header_entry
    header = entry.header
    return {
        "id": hash_to_hex(header.block_hash()),
        "height": entry.height,
        "version": header.version & _U32_MASK,
        "timestamp": header.time,
        "tx_count": blockhm.meta.tx_count,
        "size": blockhm.meta.size,
        "weight": blockhm.meta.weight,
        "merkle_root": hash_to_hex(header.merkle_root),
        "previousblockhash": (
            hash_to_hex(header.prev_blockhash)
            if header.prev_blockhash != DEFAULT_BLOCKHASH
            else None
        ),
        "mediantime": blockhm.mtp,
        "nonce": header.nonce,
        "bits": header.bits,
        "difficulty": header.difficulty(),
    }


def txout_value(txout: TxOut, network: Network) -> dict[str, Any]:
    script = Script(txout.script_pubkey)
    value: dict[str, Any] = {
        "scriptpubkey": script.hex(),
        "scriptpubkey_asm": script.to_asm(),
        "scriptpubkey_type": script.script_type(),
    }
    address = script_to_address(script, network)
    if address is not None:
        value["scriptpubkey_address"] = address
    value["value"] = txout.value
    return value


def txin_value(txin: TxIn, prevout: Optional[TxOut], network: Network) -> dict[str, Any]:
    script_sig = Script(txin.script_sig)
    value: dict[str, Any] = {
        "txid": hash_to_hex(txin.previous_output.txid),
        "vout": txin.previous_output.vout,
        "prevout": txout_value(prevout, network) if prevout is not None else None,
        "scriptsig": script_sig.hex(),
        "scriptsig_asm": script_sig.to_asm(),
    }
    if txin.witness:
        value["witness"] = [item.hex() for item in txin.witness]
    value["is_coinbase"] = is_coinbase(txin)
    value["sequence"] = txin.sequence
    if prevout is not None:
        inner = get_innerscripts(txin, prevout)
        if inner.redeem_script is not None:
            value["inner_redeemscript_asm"] = inner.redeem_script.to_asm()
        if inner.witness_script is not None:
            value["inner_witnessscript_asm"] = inner.witness_script.to_asm()
    return value


def transaction_value(
    tx: Transaction,
    blockid: Optional[BlockId],
    txos: Mapping[OutPoint, TxOut],
    network: Network,
) -> dict[str, Any]:
    """A transaction with its resolved prevouts, fee and confirmation status."""
    prevouts = extract_tx_prevouts(tx, txos, True)
    return {
        "txid": hash_to_hex(tx.txid()),
        "version": tx.version & _U32_MASK,
        "locktime": tx.lock_time,
        "vin": [
            txin_value(txin, prevouts.get(index), network)
            for index, txin in enumerate(tx.inputs)
        ],
        "vout": [txout_value(txout, network) for txout in tx.outputs],
        "size": tx.total_size(),
        "weight": tx.weight(),
        "fee": get_tx_fee(tx, prevouts),
        "status": TransactionStatus.from_blockid(blockid).to_dict(),
    }


def utxo_value(utxo: Any) -> dict[str, Any]:
    """An unspent output; ``utxo`` has ``txid``, ``vout``, ``confirmed`` and ``value``."""
    return {
        "txid": hash_to_hex(utxo.txid),
        "vout": utxo.vout,
        "status": TransactionStatus.from_blockid(utxo.confirmed).to_dict(),
        "value": utxo.value,
    }


def spending_value(spend: Any) -> dict[str, Any]:
    """The spend of an output; ``spend`` is ``None`` or has ``txid``, ``vin`` and ``confirmed``."""
    if spend is None:
        return {"spent": False}
    return {
        "spent": True,
        "txid": hash_to_hex(spend.txid),
        "vin": spend.vin,
        "status": TransactionStatus.from_blockid(spend.confirmed).to_dict(),
    }