import struct

import pytest
from solders.account import Account
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from config_loader import RegistryConfig, ServiceConfig
from core.client import LedgerClient
from core.errors import LedgerSubmissionError
from core.mint import MINT_LAYOUT
from core.pubkeys import LAMPORTS_PER_SOL, SystemAddresses
from interfaces.core import ProposalHandle, RegistryClient, TokenRecord

TOKEN_ACCOUNT_SIZE = 165
MINT_RENT = 1_461_600
TOKEN_ACCOUNT_RENT = 2_039_280


class FakeLedger(LedgerClient):
    """In-memory ledger that executes the token instructions the service emits.

    Transactions are applied atomically after their signatures are verified,
    so tests observe the same state transitions the network would produce.
    """

    def __init__(self, balance: int = 10 * LAMPORTS_PER_SOL, rent: int = MINT_RENT):
        super().__init__("http://fake-ledger")
        self.balance = balance
        self.rent = rent
        self.accounts: dict[Pubkey, Account] = {}
        self.token_balances: dict[Pubkey, int] = {}
        self.calls: list[str] = []
        self.sent: list[VersionedTransaction] = []
        self.blockhashes: list[Hash] = []
        self.confirmed: list[Signature] = []
        self.send_error: Exception | None = None
        self.confirm_error: Exception | None = None

    # ── RPC surface ──────────────────────────────────────────────

    async def get_balance(self, pubkey: Pubkey) -> int:
        self.calls.append("getBalance")
        return self.balance

    async def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        self.calls.append("getMinimumBalanceForRentExemption")
        return self.rent

    async def get_latest_blockhash(self) -> tuple[Hash, int]:
        self.calls.append("getLatestBlockhash")
        blockhash = Hash.new_unique()
        self.blockhashes.append(blockhash)
        return blockhash, 1_000

    async def get_account_info(self, pubkey: Pubkey) -> Account | None:
        self.calls.append("getAccountInfo")
        return self.accounts.get(pubkey)

    async def send_transaction(
        self, transaction: VersionedTransaction, skip_preflight: bool = False
    ) -> Signature:
        self.calls.append("sendTransaction")
        if self.send_error is not None:
            raise self.send_error
        self._verify_signatures(transaction)
        self._apply(transaction)
        self.sent.append(transaction)
        return transaction.signatures[0]

    async def confirm_transaction(
        self, signature: Signature, last_valid_block_height: int | None = None
    ) -> None:
        self.calls.append("confirmTransaction")
        if self.confirm_error is not None:
            raise self.confirm_error
        self.confirmed.append(signature)

    async def close(self) -> None:
        self.calls.append("close")

    # ── helpers ──────────────────────────────────────────────────

    def add_mint(self, mint: Pubkey, decimals: int, authority: Pubkey) -> None:
        self.accounts[mint] = Account(
            lamports=MINT_RENT,
            data=mint_data(decimals, bytes(authority)),
            owner=SystemAddresses.TOKEN_PROGRAM,
        )

    def add_token_account(self, address: Pubkey, amount: int = 0) -> None:
        self.accounts[address] = _token_account()
        self.token_balances[address] = amount

    def instructions(self) -> list[tuple[Pubkey, list[Pubkey], bytes]]:
        """Every instruction submitted so far as (program, accounts, data)."""
        decoded = []
        for transaction in self.sent:
            decoded.extend(_decode(transaction))
        return decoded

    def network_calls(self) -> list[str]:
        return [call for call in self.calls if call != "close"]

    @staticmethod
    def _verify_signatures(transaction: VersionedTransaction) -> None:
        message = transaction.message
        payload = to_bytes_versioned(message)
        required = message.account_keys[: message.header.num_required_signatures]
        for pubkey, signature in zip(required, transaction.signatures):
            if not signature.verify(pubkey, payload):
                raise LedgerSubmissionError(
                    f"Transaction signature verification failure for {pubkey}"
                )

    def _apply(self, transaction: VersionedTransaction) -> None:
        accounts = dict(self.accounts)
        balances = dict(self.token_balances)

        for program, keys, data in _decode(transaction):
            if program == SystemAddresses.SYSTEM_PROGRAM:
                kind, lamports = struct.unpack_from("<IQ", data)
                if kind != 0:  # only CreateAccount has state effects here
                    continue
                (space,) = struct.unpack_from("<Q", data, 12)
                owner = Pubkey.from_bytes(data[20:52])
                if keys[1] in accounts:
                    raise LedgerSubmissionError(f"Allocate: account {keys[1]} already in use")
                accounts[keys[1]] = Account(lamports=lamports, data=bytes(space), owner=owner)

            elif program == SystemAddresses.ASSOCIATED_TOKEN_PROGRAM:
                address = keys[1]
                if address in accounts:
                    if data[:1] == b"\x01":
                        continue
                    raise LedgerSubmissionError(f"Associated account {address} already in use")
                accounts[address] = _token_account()
                balances[address] = 0

            elif program == SystemAddresses.TOKEN_PROGRAM:
                kind = data[0]
                if kind == 0:  # InitializeMint
                    freeze = data[35:67] if data[34] else bytes(32)
                    accounts[keys[0]] = Account(
                        lamports=accounts[keys[0]].lamports,
                        data=mint_data(data[1], data[2:34], data[34], freeze),
                        owner=SystemAddresses.TOKEN_PROGRAM,
                    )
                elif kind == 7:  # MintTo
                    (amount,) = struct.unpack_from("<Q", data, 1)
                    if keys[1] not in accounts:
                        raise LedgerSubmissionError("MintTo: invalid account data")
                    balances[keys[1]] = balances.get(keys[1], 0) + amount
                elif kind == 3:  # Transfer
                    (amount,) = struct.unpack_from("<Q", data, 1)
                    source, dest = keys[0], keys[1]
                    if source not in accounts or dest not in accounts:
                        raise LedgerSubmissionError("Transfer: invalid account data")
                    if balances.get(source, 0) < amount:
                        raise LedgerSubmissionError("Transfer: insufficient funds")
                    balances[source] -= amount
                    balances[dest] = balances.get(dest, 0) + amount

            elif program == SystemAddresses.METADATA_PROGRAM:
                if keys[0] in accounts:
                    raise LedgerSubmissionError(f"Metadata account {keys[0]} already in use")
                accounts[keys[0]] = Account(
                    lamports=5_616_720, data=bytes(data), owner=SystemAddresses.METADATA_PROGRAM
                )

        self.accounts = accounts
        self.token_balances = balances


def mint_data(
    decimals: int,
    authority: bytes,
    freeze_option: int = 0,
    freeze: bytes = bytes(32),
) -> bytes:
    return MINT_LAYOUT.build(
        {
            "mint_authority_option": 1,
            "mint_authority": bytes(authority),
            "supply": 0,
            "decimals": decimals,
            "is_initialized": True,
            "freeze_authority_option": freeze_option,
            "freeze_authority": bytes(freeze),
        }
    )


def _token_account() -> Account:
    return Account(
        lamports=TOKEN_ACCOUNT_RENT,
        data=bytes(TOKEN_ACCOUNT_SIZE),
        owner=SystemAddresses.TOKEN_PROGRAM,
    )


def _decode(transaction: VersionedTransaction) -> list[tuple[Pubkey, list[Pubkey], bytes]]:
    message = transaction.message
    keys = message.account_keys
    return [
        (
            keys[ix.program_id_index],
            [keys[index] for index in bytes(ix.accounts)],
            bytes(ix.data),
        )
        for ix in message.instructions
    ]


class RecordingRegistry(RegistryClient):
    """Registry stand-in that records proposals, or fails when told to."""

    def __init__(self, enabled: bool = True, error: Exception | None = None):
        self._enabled = enabled
        self.error = error
        self.records: list[TokenRecord] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def propose_addition(self, record: TokenRecord) -> ProposalHandle | None:
        self.records.append(record)
        if self.error is not None:
            raise self.error
        return ProposalHandle(
            branch=f"add-token-{record.mint}-test",
            path=f"tokens/{record.mint}.json",
            number=len(self.records),
            url=f"https://github.com/example/pull/{len(self.records)}",
        )


@pytest.fixture
def keypair() -> Keypair:
    return Keypair.from_seed(bytes(range(32)))


@pytest.fixture
def secret(keypair: Keypair) -> bytes:
    return bytes(keypair)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def service_config(secret: bytes) -> ServiceConfig:
    return ServiceConfig(
        name="token-service-test",
        rpc_endpoint="http://fake-ledger",
        secret_key=secret,
        metadata_uri="https://example.com/api/metadata",
        logo_uri="https://example.com/api/metadata/image.png",
        website="https://example.com",
        tags=("devnet", "test"),
        validate_metadata_uri=False,
        metadata_document={
            "name": "Token_001",
            "symbol": "BCS",
            "description": "Test token",
            "website": "https://example.com",
            "image": "https://example.com/api/metadata/image.png",
        },
        registry=RegistryConfig(github_token="test-token"),
    )
