"""
Data models for Solana listener output.

SignatureInfo mirrors one getSignaturesForAddress item; RawTransaction is the
immutable, normalized view of one getTransaction (jsonParsed) result that the
classifier and payload builder consume.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any


@dataclass(frozen=True)
class SignatureInfo:
    """
    Transaction signature info from getSignaturesForAddress.

    Used as the unit of work emitted by the poller, oldest-first.
    """

    signature: str
    slot: int
    err: Any  # None if success; dict/object from RPC if failed
    block_time: int | None
    memo: str | None
    confirmation_status: str | None  # processed | confirmed | finalized

    @property
    def failed(self) -> bool:
        return self.err is not None

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureInfo":
        """Build from a single getSignaturesForAddress result item."""
        return cls(
            signature=item["signature"],
            slot=int(item["slot"]),
            err=item.get("err"),
            block_time=item.get("blockTime"),
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class Instruction:
    """One instruction: the program it targets and its opaque data (base58, when unparsed)."""

    program_id: str
    data: str | None = None
    accounts: tuple[str, ...] = ()


@dataclass(frozen=True)
class TokenBalance:
    """Pre- or post-transaction SPL token balance snapshot for one account."""

    account_index: int
    mint: str
    owner: str | None
    ui_amount: Decimal
    decimals: int = 0

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "TokenBalance":
        ui = item.get("uiTokenAmount") or {}
        return cls(
            account_index=int(item["accountIndex"]),
            mint=item["mint"],
            owner=item.get("owner"),
            ui_amount=_to_decimal(ui.get("uiAmountString")),
            decimals=int(ui.get("decimals") or 0),
        )


@dataclass(frozen=True)
class BalanceDelta:
    """Net token change for one (account, mint) pair across a transaction."""

    account_index: int
    mint: str
    owner: str | None
    delta: Decimal


def _to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal(0)


def _account_keys(message: dict[str, Any]) -> list[str]:
    """Resolve accountKeys to base58 strings (handles json vs jsonParsed)."""
    keys = message.get("accountKeys") or []
    out: list[str] = []
    for k in keys:
        if isinstance(k, str):
            out.append(k)
        elif isinstance(k, dict):
            out.append(k.get("pubkey", ""))
    return out


def _instruction(ix: dict[str, Any], account_keys: list[str]) -> Instruction | None:
    program_id = ix.get("programId")
    if program_id is None:
        idx = ix.get("programIdIndex")
        if idx is None or not (0 <= idx < len(account_keys)):
            return None
        program_id = account_keys[idx]
    accounts = []
    for acc in ix.get("accounts") or []:
        if isinstance(acc, int):
            if 0 <= acc < len(account_keys):
                accounts.append(account_keys[acc])
        else:
            accounts.append(str(acc))
    return Instruction(program_id=str(program_id), data=ix.get("data"), accounts=tuple(accounts))


@dataclass(frozen=True)
class RawTransaction:
    """
    Immutable transaction record fetched from the ledger.

    Produced once per signature by the RPC client and consumed once by the
    classifier; never mutated.
    """

    signature: str
    instructions: tuple[Instruction, ...]
    inner_instructions: tuple[Instruction, ...]
    pre_token_balances: tuple[TokenBalance, ...]
    post_token_balances: tuple[TokenBalance, ...]
    log_messages: tuple[str, ...]
    block_time: int | None
    slot: int
    fee_payer: str
    fee: int
    err: Any = None

    def targets_program(self, program_id: str) -> bool:
        """True if any top-level instruction calls the given program."""
        return any(ix.program_id == program_id for ix in self.instructions)

    def token_balance_deltas(self) -> list[BalanceDelta]:
        """
        Post minus pre balance per (account index, mint), in account order.

        A missing snapshot counts as a zero balance (e.g. a token account created
        inside this transaction has no pre-balance).
        """
        pre = {(b.account_index, b.mint): b for b in self.pre_token_balances}
        post = {(b.account_index, b.mint): b for b in self.post_token_balances}
        deltas: list[BalanceDelta] = []
        for key in sorted(set(pre) | set(post)):
            before = pre.get(key)
            after = post.get(key)
            owner = (after.owner if after else None) or (before.owner if before else None)
            amount_before = before.ui_amount if before else Decimal(0)
            amount_after = after.ui_amount if after else Decimal(0)
            deltas.append(
                BalanceDelta(
                    account_index=key[0],
                    mint=key[1],
                    owner=owner,
                    delta=amount_after - amount_before,
                )
            )
        return deltas

    def has_token_movement(self) -> bool:
        return any(d.delta != 0 for d in self.token_balance_deltas())

    @classmethod
    def from_rpc_result(cls, signature: str, raw: dict[str, Any]) -> "RawTransaction":
        """
        Build from a getTransaction result (jsonParsed or json encoding).
        Raises ValueError when the payload has no transaction message.
        """
        tx_obj = raw.get("transaction")
        message = tx_obj.get("message") if isinstance(tx_obj, dict) else None
        if not isinstance(message, dict):
            raise ValueError(f"Transaction {signature} has no message")
        meta = raw.get("meta") if isinstance(raw.get("meta"), dict) else {}

        account_keys = _account_keys(message)
        instructions = [
            ix
            for ix in (_instruction(i, account_keys) for i in message.get("instructions") or [])
            if ix is not None
        ]
        inner: list[Instruction] = []
        for block in meta.get("innerInstructions") or []:
            for i in block.get("instructions") or []:
                ix = _instruction(i, account_keys)
                if ix is not None:
                    inner.append(ix)

        block_time = raw.get("blockTime")
        return cls(
            signature=signature,
            instructions=tuple(instructions),
            inner_instructions=tuple(inner),
            pre_token_balances=tuple(
                TokenBalance.from_rpc_item(b) for b in meta.get("preTokenBalances") or []
            ),
            post_token_balances=tuple(
                TokenBalance.from_rpc_item(b) for b in meta.get("postTokenBalances") or []
            ),
            log_messages=tuple(meta.get("logMessages") or []),
            block_time=int(block_time) if block_time is not None else None,
            slot=int(raw.get("slot") or 0),
            fee_payer=account_keys[0] if account_keys else "",
            fee=int(meta.get("fee") or 0),
            err=meta.get("err"),
        )
