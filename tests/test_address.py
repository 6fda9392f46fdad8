import pytest

from blockrest.address import AddressError, Network, address_to_script, script_to_address
from blockrest.script import Script

H20 = bytes(range(1, 21))
H32 = bytes(range(1, 33))

SCRIPTS = [
    Script(b"\x76\xa9\x14" + H20 + b"\x88\xac"),
    Script(b"\xa9\x14" + H20 + b"\x87"),
    Script(b"\x00\x14" + H20),
    Script(b"\x00\x20" + H32),
    Script(b"\x51\x20" + H32),
]


def test_zero_pubkey_hash_address():
    script = b"\x76\xa9\x14" + bytes(20) + b"\x88\xac"
    assert script_to_address(script, Network.BITCOIN) == "1111111111111111111114oLvT2"


@pytest.mark.parametrize("network", list(Network))
@pytest.mark.parametrize("script", SCRIPTS)
def test_roundtrip(script, network):
    addr = script_to_address(script, network)
    assert address_to_script(addr, network) == script


def test_segwit_prefixes():
    assert script_to_address(SCRIPTS[2], Network.BITCOIN).startswith("bc1q")
    assert script_to_address(SCRIPTS[4], Network.REGTEST).startswith("bcrt1p")


def test_uppercase_bech32_accepted():
    addr = script_to_address(SCRIPTS[2], Network.BITCOIN)
    assert address_to_script(addr.upper(), Network.BITCOIN) == SCRIPTS[2]


def test_p2pk_has_no_address():
    assert script_to_address(b"\x21" + bytes(33) + b"\xac", Network.BITCOIN) is None


@pytest.mark.parametrize("script", SCRIPTS)
def test_wrong_network(script):
    addr = script_to_address(script, Network.BITCOIN)
    with pytest.raises(AddressError):
        address_to_script(addr, Network.REGTEST)


@pytest.mark.parametrize("index", [0, 2])
def test_checksum_corruption(index):
    addr = script_to_address(SCRIPTS[index], Network.BITCOIN)
    bad = addr[:-1] + ("q" if addr[-1] != "q" else "p")
    with pytest.raises(AddressError):
        address_to_script(bad, Network.BITCOIN)


def test_mixed_case_rejected():
    addr = script_to_address(SCRIPTS[2], Network.BITCOIN)
    with pytest.raises(AddressError):
        address_to_script(addr[:5] + addr[5:].upper(), Network.BITCOIN)


def test_garbage_rejected():
    with pytest.raises(AddressError):
        address_to_script("not-an-address0OIl", Network.BITCOIN)