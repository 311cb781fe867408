from __future__ import annotations

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from .project_constants import TOKEN_PROGRAM_ID

# SPL Token CloseAccount instruction index
CLOSE_ACCOUNT_IX = bytes([9])


def build_close_account_ix(
    token_account: str,
    owner: Pubkey,
    program_id: str = TOKEN_PROGRAM_ID,
) -> Instruction:
    """Close `token_account`, refunding its rent to `owner` (who also signs)."""
    return Instruction(
        program_id=Pubkey.from_string(program_id),
        accounts=[
            AccountMeta(
                pubkey=Pubkey.from_string(token_account),
                is_signer=False,
                is_writable=True,
            ),
            AccountMeta(pubkey=owner, is_signer=False, is_writable=True),
            AccountMeta(pubkey=owner, is_signer=True, is_writable=False),
        ],
        data=CLOSE_ACCOUNT_IX,
    )


def build_transfer_ix(
    from_pubkey: Pubkey, to_pubkey: Pubkey, lamports: int
) -> Instruction:
    params = TransferParams(
        from_pubkey=from_pubkey, to_pubkey=to_pubkey, lamports=int(lamports)
    )
    return transfer(params)
