"""
Metaplex token metadata: PDA derivation and CreateMetadataAccountV3 instruction.

Pure data assembly, no I/O. Field lengths are validated before these
functions are reached.
"""

from typing import Final

from construct import Const, Flag, Int8ul, Int16ul, Int32ul, PascalString, Struct
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from core.pubkeys import METADATA_PROGRAM, METADATA_SEED, SystemAddresses
from interfaces.core import MetadataFields

CREATE_METADATA_ACCOUNT_V3: Final[int] = 33

# Borsh encoding of Option::None
_NONE: Final[int] = 0

CREATE_METADATA_ACCOUNT_V3_LAYOUT = Struct(
    "instruction" / Const(CREATE_METADATA_ACCOUNT_V3, Int8ul),
    "name" / PascalString(Int32ul, "utf8"),
    "symbol" / PascalString(Int32ul, "utf8"),
    "uri" / PascalString(Int32ul, "utf8"),
    "seller_fee_basis_points" / Int16ul,
    "creators" / Const(_NONE, Int8ul),
    "collection" / Const(_NONE, Int8ul),
    "uses" / Const(_NONE, Int8ul),
    "is_mutable" / Flag,
    "collection_details" / Const(_NONE, Int8ul),
)


def derive_metadata_address(mint: Pubkey, program_id: Pubkey = METADATA_PROGRAM) -> Pubkey:
    """Derive the Program Derived Address (PDA) of a mint's metadata account.

    Args:
        mint: Token mint address
        program_id: Metadata program that owns the account

    Returns:
        Pubkey of the derived metadata account
    """
    derived_address, _ = Pubkey.find_program_address(
        [METADATA_SEED, bytes(program_id), bytes(mint)],
        program_id,
    )
    return derived_address


def encode_metadata_args(fields: MetadataFields) -> bytes:
    """Encode CreateMetadataAccountV3 instruction data.

    Creators, collection, uses and collection details are always unset.
    """
    return CREATE_METADATA_ACCOUNT_V3_LAYOUT.build(
        {
            "name": fields.name,
            "symbol": fields.symbol,
            "uri": fields.uri,
            "seller_fee_basis_points": fields.seller_fee_basis_points,
            "is_mutable": fields.is_mutable,
        }
    )


def build_metadata_instruction(
    mint: Pubkey,
    metadata_address: Pubkey,
    authority: Pubkey,
    fields: MetadataFields,
    payer: Pubkey | None = None,
) -> Instruction:
    """Build the instruction that creates the metadata record for a mint.

    Args:
        mint: Token mint address
        metadata_address: Derived metadata PDA
        authority: Mint authority, also used as update authority
        fields: Name, symbol, URI and royalty settings
        payer: Rent payer, defaults to the authority

    Returns:
        CreateMetadataAccountV3 instruction
    """
    payer = payer or authority
    accounts = [
        AccountMeta(pubkey=metadata_address, is_signer=False, is_writable=True),
        AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
        AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=authority, is_signer=False, is_writable=False),
        AccountMeta(
            pubkey=SystemAddresses.SYSTEM_PROGRAM, is_signer=False, is_writable=False
        ),
    ]
    return Instruction(SystemAddresses.METADATA_PROGRAM, encode_metadata_args(fields), accounts)
