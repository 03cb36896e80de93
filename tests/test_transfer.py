import struct

import pytest
from solders.keypair import Keypair
from spl.token.instructions import get_associated_token_address

from core.errors import InvalidMint, InvalidQuantity, InvalidRecipient, LedgerSubmissionError
from core.finalizer import TransactionFinalizer
from core.pubkeys import TOKEN_PROGRAM
from core.wallet import Wallet
from tokens.provisioner import AccountProvisioner
from tokens.transfer import TokenTransferer, parse_address


@pytest.fixture
def wallet(secret):
    return Wallet(secret)


@pytest.fixture
def transferer(ledger):
    finalizer = TransactionFinalizer(ledger)
    return TokenTransferer(ledger, finalizer, AccountProvisioner(ledger, finalizer))


@pytest.fixture
def funded_mint(ledger, wallet):
    """A 6-decimal mint with 10 whole tokens in the signer's associated account."""
    mint = Keypair().pubkey()
    ledger.add_mint(mint, 6, wallet.pubkey)
    ledger.add_token_account(wallet.get_associated_token_address(mint), 10_000_000)
    return mint


async def test_transfer_one_unit(ledger, transferer, wallet, funded_mint):
    recipient = Keypair().pubkey()

    signature = await transferer.transfer(wallet, str(recipient), str(funded_mint), 1)

    assert signature == ledger.confirmed[-1]
    program, accounts, data = ledger.instructions()[-1]
    assert program == TOKEN_PROGRAM
    assert struct.unpack("<BQ", data) == (3, 1_000_000)

    destination = get_associated_token_address(recipient, funded_mint)
    assert accounts[:3] == [
        wallet.get_associated_token_address(funded_mint),
        destination,
        wallet.pubkey,
    ]
    assert ledger.token_balances[destination] == 1_000_000
    assert ledger.token_balances[accounts[0]] == 9_000_000


async def test_transfer_creates_recipient_account_once(ledger, transferer, wallet, funded_mint):
    recipient = str(Keypair().pubkey())

    await transferer.transfer(wallet, recipient, str(funded_mint), 1)
    await transferer.transfer(wallet, recipient, str(funded_mint), 2)

    # associated account + transfer, then transfer only
    assert len(ledger.sent) == 3


async def test_transfer_uses_mint_decimals(ledger, transferer, wallet):
    mint = Keypair().pubkey()
    ledger.add_mint(mint, 2, wallet.pubkey)
    ledger.add_token_account(wallet.get_associated_token_address(mint), 1_000)

    await transferer.transfer(wallet, str(Keypair().pubkey()), str(mint), 2.5)

    _, _, data = ledger.instructions()[-1]
    assert struct.unpack("<BQ", data) == (3, 250)


@pytest.mark.parametrize("recipient", ["not-a-wallet", "", "0OIl0OIl", 42])
async def test_malformed_recipient_makes_no_network_calls(
    ledger, transferer, wallet, funded_mint, recipient
):
    with pytest.raises(InvalidRecipient):
        await transferer.transfer(wallet, recipient, str(funded_mint), 1)
    assert ledger.network_calls() == []


async def test_malformed_mint_makes_no_network_calls(ledger, transferer, wallet):
    with pytest.raises(InvalidMint):
        await transferer.transfer(wallet, str(Keypair().pubkey()), "bogus", 1)
    assert ledger.network_calls() == []


@pytest.mark.parametrize("quantity", [0, -5, float("nan")])
async def test_invalid_quantity_makes_no_network_calls(
    ledger, transferer, wallet, funded_mint, quantity
):
    with pytest.raises(InvalidQuantity):
        await transferer.transfer(wallet, str(Keypair().pubkey()), str(funded_mint), quantity)
    assert ledger.network_calls() == []


async def test_unknown_mint_is_rejected_before_submission(ledger, transferer, wallet):
    with pytest.raises(InvalidMint, match="not found"):
        await transferer.transfer(wallet, str(Keypair().pubkey()), str(Keypair().pubkey()), 1)
    assert ledger.sent == []


async def test_non_mint_account_is_rejected(ledger, transferer, wallet, funded_mint):
    token_account = wallet.get_associated_token_address(funded_mint)

    with pytest.raises(InvalidMint):
        await transferer.transfer(wallet, str(Keypair().pubkey()), str(token_account), 1)


async def test_overdraft_is_rejected_by_ledger(ledger, transferer, wallet, funded_mint):
    with pytest.raises(LedgerSubmissionError, match="insufficient funds"):
        await transferer.transfer(wallet, str(Keypair().pubkey()), str(funded_mint), 11)


def test_parse_address_round_trips():
    pubkey = Keypair().pubkey()
    assert parse_address(str(pubkey), InvalidRecipient) == pubkey


async def test_amount_beyond_u64_fails_before_submission(
    ledger, transferer, wallet, funded_mint
):
    with pytest.raises(InvalidQuantity, match="largest token amount"):
        await transferer.transfer(wallet, str(Keypair().pubkey()), str(funded_mint), 1e20)

    assert "sendTransaction" not in ledger.calls
    assert len(ledger.accounts) == 2
