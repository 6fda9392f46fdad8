# blockrest

A small library with no dependencies. It holds the Bitcoin data types
that a block explorer's REST API is built on, and the JSON and plain-text
responses that such an API sends. It covers block headers and the
best-chain header list, transactions and their wire format, scripts,
addresses, fees, and the JSON shapes of blocks, transactions, outputs,
UTXOs and spends.

## Installing

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `blockrest.block`: `sha256d`, `hash_to_hex` and `hash_from_hex`
  (byte-reversed hex), `full_hash`. Also `BlockHeader`, an 80-byte header
  with `serialize`, `parse`, `block_hash` and `difficulty`. `HeaderList`
  holds the best chain and provides `from_headers`, `order`, `apply`,
  `header_by_height`, `header_by_blockhash`, `tip` and `get_mtp`, which
  gives the median time past over 11 blocks. The module also has
  `HeaderEntry`, `BlockId`, `BlockStatus`, `BlockMeta` (with
  `parse_getblock` for a `getblock` JSON result) and `BlockHeaderMeta`.
- `blockrest.transaction`: `OutPoint`, `TxIn`, `TxOut` and `Transaction`.
  `Transaction` provides `parse` and `serialize` (with or without
  witnesses), `txid`, `total_size`, `weight` and `is_coinbase`. Also
  `TransactionStatus`, `TxInput`, `is_coinbase`, `has_prevout`,
  `is_spendable`, `extract_tx_prevouts`, `get_prev_outpoints` and
  `serialize_outpoint`.
- `blockrest.script`: `Script`, a `bytes` subclass. It provides
  `instructions`, `to_asm`, the type checks from `is_p2pk` to `is_p2tr`,
  and `is_provably_unspendable`. Its `script_type` method returns the
  output type name: `p2pkh`, `v0_p2wpkh`, `v1_p2tr`, `op_return`,
  `unknown` and so on. The module also has `get_innerscripts`, which
  finds the redeemScript of a P2SH spend and the witnessScript of a P2WSH
  spend.
- `blockrest.address`: `Network` (bitcoin, testnet, signet, regtest),
  `script_to_address` and `address_to_script` for base58 and
  bech32/bech32m addresses, and `AddressError`.
- `blockrest.fees`: `get_tx_fee`, `TxFeeInfo.from_transaction` and
  `make_fee_histogram`. The histogram groups transactions into bins of
  more than 50,000 vbytes, highest fee rate first.
- `blockrest.values`: the JSON-ready dictionaries `block_value`,
  `txout_value`, `txin_value`, `transaction_value`, `utxo_value` and
  `spending_value`.
- `blockrest.httperror`: `HttpError` (status 400 by default;
  `HttpError.not_found` gives 404) and `Response`. `http_message` builds
  a plain-text response and `json_response` a compact JSON one, both with
  a `Cache-Control: public, max-age=<ttl>` header. `to_scripthash`,
  `address_to_scripthash` and `parse_scripthash` turn an address or a hex
  scripthash into the 32-byte SHA-256 of the output script.

## Examples

```python
from blockrest.address import Network, script_to_address
from blockrest.httperror import HttpError, json_response, to_scripthash
from blockrest.script import Script

script = Script(b"\x00\x14" + bytes(20))
script.script_type()                        # "v0_p2wpkh"
address = script_to_address(script, Network.REGTEST)

scripthash = to_scripthash("address", address, Network.REGTEST)

response = json_response({"address": address}, 10)
response.headers["Cache-Control"]           # "public, max-age=10"

try:
    to_scripthash("scripthash", "not-hex", Network.REGTEST)
except HttpError as err:
    err.status, err.message                 # (400, "Invalid scripthash")
```

## What this package does not do

This package does not run an HTTP server and does not route requests to
endpoints. It does not store or index the chain or the mempool. It does
not compute merkle proofs, and it does not wait on process signals or
block notifications. It supplies the data types, the JSON shapes and the
response and error objects. An application that serves the API brings its
own server, request handling and index.