from __future__ import annotations

import base64
import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.transaction import Transaction

from .errors import TransientNetworkError
from .project_constants import TOKEN_PROGRAM_ID
from .token_accounts import TokenAccountRef, parse_token_accounts

log = logging.getLogger(__name__)


class ChainClient(Protocol):
    def get_balance(self, address: str) -> int: ...

    def get_token_accounts_by_owner(self, owner: str) -> List[TokenAccountRef]: ...

    def send_and_confirm(
        self, instructions: Sequence[Instruction], signer: Keypair, max_retries: int = 3
    ) -> str: ...


class RpcClient:
    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 60.0,
        commitment: str = "confirmed",
        confirm_timeout_s: float = 60.0,
        poll_interval_s: float = 0.8,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.confirm_timeout_s = confirm_timeout_s
        self.poll_interval_s = poll_interval_s
        self.client = httpx.Client(timeout=timeout_s, transport=transport)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _post(self, method: str, params: List[Any]) -> Dict[str, Any]:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            resp = self.client.post(self.rpc_url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransientNetworkError(f"{method} failed: {e}") from e
        if not isinstance(data, dict):
            raise TransientNetworkError(f"{method} returned a non-object body")
        if "error" in data:
            raise TransientNetworkError(f"RPC error: {data['error']}")
        return data

    def _result_value(self, method: str, params: List[Any]) -> Any:
        """Returns `result.value`; any other response shape is a failed call."""
        data = self._post(method, params)
        result = data.get("result")
        if not isinstance(result, dict) or "value" not in result:
            raise TransientNetworkError(f"{method} returned no result value: {data}")
        return result["value"]

    def get_balance(self, address: str) -> int:
        """Returns the lamport balance of `address`."""
        value = self._result_value(
            "getBalance", [address, {"commitment": self.commitment}]
        )
        if isinstance(value, bool) or not isinstance(value, int):
            raise TransientNetworkError(f"getBalance returned {value!r}")
        return value

    def get_token_accounts_by_owner(self, owner: str) -> List[TokenAccountRef]:
        value = self._result_value(
            "getTokenAccountsByOwner",
            [
                owner,
                {"programId": TOKEN_PROGRAM_ID},
                {"encoding": "jsonParsed", "commitment": self.commitment},
            ],
        )
        if value is None:
            return []
        if not isinstance(value, list):
            raise TransientNetworkError(f"getTokenAccountsByOwner returned {value!r}")
        return parse_token_accounts(owner, value)

    def get_latest_blockhash(self) -> Hash:
        value = self._result_value(
            "getLatestBlockhash", [{"commitment": self.commitment}]
        )
        blockhash = value.get("blockhash") if isinstance(value, dict) else None
        if not blockhash:
            raise TransientNetworkError(
                f"getLatestBlockhash returned no blockhash: {value!r}"
            )
        return Hash.from_string(blockhash)

    def send_transaction(
        self, instructions: Sequence[Instruction], signer: Keypair, max_retries: int = 3
    ) -> str:
        """
        Signs and submits one transaction. `max_retries` is handed to the RPC
        node, which rebroadcasts the same signed transaction; the client never
        re-signs, so a transfer cannot land twice.
        """
        if not instructions:
            raise ValueError("No instructions to send")

        blockhash = self.get_latest_blockhash()
        msg = Message.new_with_blockhash(list(instructions), signer.pubkey(), blockhash)
        tx = Transaction.new_unsigned(msg)
        tx.sign([signer], blockhash)
        tx_b64 = base64.b64encode(bytes(tx)).decode("ascii")

        data = self._post(
            "sendTransaction",
            [
                tx_b64,
                {
                    "encoding": "base64",
                    "skipPreflight": False,
                    "preflightCommitment": self.commitment,
                    "maxRetries": max_retries,
                },
            ],
        )
        sig = data.get("result")
        if not sig:
            raise TransientNetworkError(
                f"sendTransaction returned no signature: {data}"
            )
        return str(sig)

    def confirm_signature(self, signature: str) -> None:
        deadline = time.monotonic() + self.confirm_timeout_s
        while time.monotonic() < deadline:
            statuses = self._result_value(
                "getSignatureStatuses",
                [[signature], {"searchTransactionHistory": True}],
            )
            status = statuses[0] if isinstance(statuses, list) and statuses else None
            if isinstance(status, dict):
                if status.get("err"):
                    raise TransientNetworkError(
                        f"Transaction {signature} failed: {status['err']}"
                    )
                level = (status.get("confirmationStatus") or "").lower()
                if level in ("confirmed", "finalized"):
                    return
            time.sleep(self.poll_interval_s)
        raise TransientNetworkError(f"Timed out waiting for confirmation: {signature}")

    def send_and_confirm(
        self, instructions: Sequence[Instruction], signer: Keypair, max_retries: int = 3
    ) -> str:
        sig = self.send_transaction(instructions, signer, max_retries=max_retries)
        log.debug("Sent %s, waiting for confirmation", sig)
        self.confirm_signature(sig)
        return sig
