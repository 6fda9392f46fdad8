"""Transaction fees and mempool fee histograms."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from .transaction import Transaction, TxOut

VSIZE_BIN_WIDTH = 50_000  # in vbytes


def get_tx_fee(tx: Transaction, prevouts: Mapping[int, TxOut]) -> int:
    """Inputs minus outputs in satoshis; zero for a coinbase."""
    if tx.is_coinbase():
        return 0
    total_in = sum(prevout.value for prevout in prevouts.values())
    total_out = sum(txout.value for txout in tx.outputs)
    if total_out > total_in:
        raise ValueError("transaction outputs exceed its inputs")
    return total_in - total_out


@dataclass(frozen=True)
class TxFeeInfo:
    fee: int  # satoshis
    vsize: int  # virtual bytes, weight / 4 rounded up
    fee_per_vbyte: float

    @classmethod
    def from_transaction(cls, tx: Transaction, prevouts: Mapping[int, TxOut]) -> "TxFeeInfo":
        fee = get_tx_fee(tx, prevouts)
        vsize_float = tx.weight() / 4
        return cls(fee=fee, vsize=math.ceil(vsize_float), fee_per_vbyte=fee / vsize_float)


def make_fee_histogram(entries: Iterable[TxFeeInfo]) -> list[tuple[float, int]]:
    """Bins of (fee rate, total vsize paying at least that rate), highest rate first."""
    histogram: list[tuple[float, int]] = []
    bin_size = 0
    last_fee_rate = 0.0
    for entry in sorted(entries, key=lambda e: e.fee_per_vbyte, reverse=True):
        if bin_size > VSIZE_BIN_WIDTH and last_fee_rate != entry.fee_per_vbyte:
            histogram.append((last_fee_rate, bin_size))
            bin_size = 0
        last_fee_rate = entry.fee_per_vbyte
        bin_size += entry.vsize
    if bin_size > 0:
        histogram.append((last_fee_rate, bin_size))
    return histogram