import json

import base58
import pytest
from solders.keypair import Keypair
from spl.token.instructions import get_associated_token_address

from core.errors import ErrorKind, InvalidInput, InvalidKeyLength
from core.wallet import SECRET_KEY_LENGTH, Wallet, parse_secret, resolve_signing_identity


def test_wallet_from_secret(keypair, secret):
    wallet = Wallet(secret)
    assert wallet.pubkey == keypair.pubkey()
    assert bytes(wallet.keypair) == secret


def test_resolve_signing_identity_accepts_byte_list(keypair, secret):
    wallet = resolve_signing_identity(list(secret))
    assert wallet.pubkey == keypair.pubkey()


@pytest.mark.parametrize("length", [0, 32, 63, 65])
def test_wrong_length_is_rejected(length):
    with pytest.raises(InvalidKeyLength) as exc_info:
        resolve_signing_identity(bytes(length))
    assert exc_info.value.kind is ErrorKind.INVALID_INPUT
    assert exc_info.value.detail["length"] == length


def test_byte_list_out_of_range_is_rejected():
    with pytest.raises(InvalidInput):
        resolve_signing_identity([256] * SECRET_KEY_LENGTH)


def test_sign_verifies_against_pubkey(secret):
    wallet = Wallet(secret)
    signature = wallet.sign(b"payload")
    assert signature.verify(wallet.pubkey, b"payload")
    assert not signature.verify(wallet.pubkey, b"other payload")


def test_associated_token_address_matches_spl(secret):
    wallet = Wallet(secret)
    mint = Keypair().pubkey()
    assert wallet.get_associated_token_address(mint) == get_associated_token_address(
        wallet.pubkey, mint
    )


def test_parse_secret_json_array(secret):
    assert parse_secret(json.dumps(list(secret))) == secret


def test_parse_secret_base58(secret):
    encoded = base58.b58encode(secret).decode()
    assert parse_secret(f"  {encoded}\n") == secret


@pytest.mark.parametrize("text", ["[1, 2, 300]", "[1, 2", "0OIl"])
def test_parse_secret_malformed(text):
    with pytest.raises(InvalidInput):
        parse_secret(text)
