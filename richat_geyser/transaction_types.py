"""Records describing a transaction and its execution status."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Optional, Tuple, Union

from richat_geyser.replica import U64_MAX, U8_MAX, Reward

PUBKEY_BYTES = 32
SIGNATURE_BYTES = 64
HASH_BYTES = 32
U32_MAX = (1 << 32) - 1


def _check_int(name: str, value: object, high: int, low: int = 0) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not low <= value <= high:
        raise ValueError(f"{name}={value} is out of range [{low}, {high}]")


def _check_optional_int(name: str, value: object, high: int) -> None:
    if value is not None:
        _check_int(name, value, high)


def _sized(name: str, value: object, size: int) -> bytes:
    data = bytes(value)
    if len(data) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(data)}")
    return data


def _keys(name: str, values: Iterable[object], size: int) -> Tuple[bytes, ...]:
    return tuple(_sized(name, value, size) for value in values)


def _set(obj: object, name: str, value: object) -> None:
    object.__setattr__(obj, name, value)


def _optional_tuple(value: Optional[Iterable[object]]) -> Optional[tuple]:
    return None if value is None else tuple(value)


@dataclass(frozen=True)
class MessageHeader:
    num_required_signatures: int = 0
    num_readonly_signed_accounts: int = 0
    num_readonly_unsigned_accounts: int = 0

    def __post_init__(self) -> None:
        _check_int("num_required_signatures", self.num_required_signatures, U8_MAX)
        _check_int("num_readonly_signed_accounts", self.num_readonly_signed_accounts, U8_MAX)
        _check_int(
            "num_readonly_unsigned_accounts", self.num_readonly_unsigned_accounts, U8_MAX
        )


@dataclass(frozen=True)
class CompiledInstruction:
    """An instruction whose accounts are indexes into the message's account keys."""

    program_id_index: int
    accounts: bytes = b""
    data: bytes = b""

    def __post_init__(self) -> None:
        _check_int("program_id_index", self.program_id_index, U8_MAX)
        _set(self, "accounts", bytes(self.accounts))
        _set(self, "data", bytes(self.data))


@dataclass(frozen=True)
class LegacyMessage:
    header: MessageHeader = field(default_factory=MessageHeader)
    account_keys: Tuple[bytes, ...] = ()
    recent_blockhash: bytes = bytes(HASH_BYTES)
    instructions: Tuple[CompiledInstruction, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "account_keys", _keys("account key", self.account_keys, PUBKEY_BYTES))
        _set(self, "recent_blockhash", _sized("recent_blockhash", self.recent_blockhash, HASH_BYTES))
        _set(self, "instructions", tuple(self.instructions))

    @property
    def is_versioned(self) -> bool:
        return False


@dataclass(frozen=True)
class MessageAddressTableLookup:
    account_key: bytes
    writable_indexes: bytes = b""
    readonly_indexes: bytes = b""

    def __post_init__(self) -> None:
        _set(self, "account_key", _sized("account_key", self.account_key, PUBKEY_BYTES))
        _set(self, "writable_indexes", bytes(self.writable_indexes))
        _set(self, "readonly_indexes", bytes(self.readonly_indexes))


@dataclass(frozen=True)
class V0Message:
    header: MessageHeader = field(default_factory=MessageHeader)
    account_keys: Tuple[bytes, ...] = ()
    recent_blockhash: bytes = bytes(HASH_BYTES)
    instructions: Tuple[CompiledInstruction, ...] = ()
    address_table_lookups: Tuple[MessageAddressTableLookup, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "account_keys", _keys("account key", self.account_keys, PUBKEY_BYTES))
        _set(self, "recent_blockhash", _sized("recent_blockhash", self.recent_blockhash, HASH_BYTES))
        _set(self, "instructions", tuple(self.instructions))
        _set(self, "address_table_lookups", tuple(self.address_table_lookups))

    @property
    def is_versioned(self) -> bool:
        return True


Message = Union[LegacyMessage, V0Message]


@dataclass(frozen=True)
class LoadedAddresses:
    writable: Tuple[bytes, ...] = ()
    readonly: Tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "writable", _keys("writable address", self.writable, PUBKEY_BYTES))
        _set(self, "readonly", _keys("readonly address", self.readonly, PUBKEY_BYTES))


@dataclass(frozen=True)
class SanitizedTransaction:
    """A signed transaction; the first signature identifies it."""

    message: Message
    signatures: Tuple[bytes, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.message, (LegacyMessage, V0Message)):
            raise TypeError(f"not a transaction message: {self.message!r}")
        signatures = _keys("signature", self.signatures, SIGNATURE_BYTES)
        if not signatures:
            raise ValueError("a transaction needs at least one signature")
        _set(self, "signatures", signatures)

    @property
    def signature(self) -> bytes:
        return self.signatures[0]


class InstructionErrorKind(IntEnum):
    """Instruction error variants, numbered by their serialized index."""

    GENERIC_ERROR = 0
    INVALID_ARGUMENT = 1
    INVALID_INSTRUCTION_DATA = 2
    INVALID_ACCOUNT_DATA = 3
    ACCOUNT_DATA_TOO_SMALL = 4
    INSUFFICIENT_FUNDS = 5
    INCORRECT_PROGRAM_ID = 6
    MISSING_REQUIRED_SIGNATURE = 7
    ACCOUNT_ALREADY_INITIALIZED = 8
    UNINITIALIZED_ACCOUNT = 9
    UNBALANCED_INSTRUCTION = 10
    MODIFIED_PROGRAM_ID = 11
    EXTERNAL_ACCOUNT_LAMPORT_SPEND = 12
    EXTERNAL_ACCOUNT_DATA_MODIFIED = 13
    READONLY_LAMPORT_CHANGE = 14
    READONLY_DATA_MODIFIED = 15
    DUPLICATE_ACCOUNT_INDEX = 16
    EXECUTABLE_MODIFIED = 17
    RENT_EPOCH_MODIFIED = 18
    NOT_ENOUGH_ACCOUNT_KEYS = 19
    ACCOUNT_DATA_SIZE_CHANGED = 20
    ACCOUNT_NOT_EXECUTABLE = 21
    ACCOUNT_BORROW_FAILED = 22
    ACCOUNT_BORROW_OUTSTANDING = 23
    DUPLICATE_ACCOUNT_OUT_OF_SYNC = 24
    CUSTOM = 25
    INVALID_ERROR = 26
    EXECUTABLE_DATA_MODIFIED = 27
    EXECUTABLE_LAMPORT_CHANGE = 28
    EXECUTABLE_ACCOUNT_NOT_RENT_EXEMPT = 29
    UNSUPPORTED_PROGRAM_ID = 30
    CALL_DEPTH = 31
    MISSING_ACCOUNT = 32
    REENTRANCY_NOT_ALLOWED = 33
    MAX_SEED_LENGTH_EXCEEDED = 34
    INVALID_SEEDS = 35
    INVALID_REALLOC = 36
    COMPUTATIONAL_BUDGET_EXCEEDED = 37
    PRIVILEGE_ESCALATION = 38
    PROGRAM_ENVIRONMENT_SETUP_FAILURE = 39
    PROGRAM_FAILED_TO_COMPLETE = 40
    PROGRAM_FAILED_TO_COMPILE = 41
    IMMUTABLE = 42
    INCORRECT_AUTHORITY = 43
    BORSH_IO_ERROR = 44
    ACCOUNT_NOT_RENT_EXEMPT = 45
    INVALID_ACCOUNT_OWNER = 46
    ARITHMETIC_OVERFLOW = 47
    UNSUPPORTED_SYSVAR = 48
    ILLEGAL_OWNER = 49
    MAX_ACCOUNTS_DATA_ALLOCATIONS_EXCEEDED = 50
    MAX_ACCOUNTS_EXCEEDED = 51
    MAX_INSTRUCTION_TRACE_LENGTH_EXCEEDED = 52
    BUILTIN_PROGRAMS_MUST_CONSUME_COMPUTE_UNITS = 53


@dataclass(frozen=True)
class InstructionError:
    """An instruction failure; ``custom`` and ``message`` carry variant payloads."""

    kind: InstructionErrorKind
    custom: Optional[int] = None
    message: Optional[str] = None

    def __post_init__(self) -> None:
        kind = InstructionErrorKind(self.kind)
        _set(self, "kind", kind)
        if kind is InstructionErrorKind.CUSTOM:
            _check_int("custom", self.custom, U32_MAX)
            if self.message is not None:
                raise ValueError("a custom instruction error carries no message")
        elif kind is InstructionErrorKind.BORSH_IO_ERROR:
            if not isinstance(self.message, str):
                raise TypeError("a borsh io error needs a message string")
            if self.custom is not None:
                raise ValueError("a borsh io error carries no custom code")
        elif self.custom is not None or self.message is not None:
            raise ValueError(f"{kind.name} carries no payload")


class TransactionErrorKind(IntEnum):
    """Transaction error variants, numbered by their serialized index."""

    ACCOUNT_IN_USE = 0
    ACCOUNT_LOADED_TWICE = 1
    ACCOUNT_NOT_FOUND = 2
    PROGRAM_ACCOUNT_NOT_FOUND = 3
    INSUFFICIENT_FUNDS_FOR_FEE = 4
    INVALID_ACCOUNT_FOR_FEE = 5
    ALREADY_PROCESSED = 6
    BLOCKHASH_NOT_FOUND = 7
    INSTRUCTION_ERROR = 8
    CALL_CHAIN_TOO_DEEP = 9
    MISSING_SIGNATURE_FOR_FEE = 10
    INVALID_ACCOUNT_INDEX = 11
    SIGNATURE_FAILURE = 12
    INVALID_PROGRAM_FOR_EXECUTION = 13
    SANITIZE_FAILURE = 14
    CLUSTER_MAINTENANCE = 15
    ACCOUNT_BORROW_OUTSTANDING = 16
    WOULD_EXCEED_MAX_BLOCK_COST_LIMIT = 17
    UNSUPPORTED_VERSION = 18
    INVALID_WRITABLE_ACCOUNT = 19
    WOULD_EXCEED_MAX_ACCOUNT_COST_LIMIT = 20
    WOULD_EXCEED_ACCOUNT_DATA_BLOCK_LIMIT = 21
    TOO_MANY_ACCOUNT_LOCKS = 22
    ADDRESS_LOOKUP_TABLE_NOT_FOUND = 23
    INVALID_ADDRESS_LOOKUP_TABLE_OWNER = 24
    INVALID_ADDRESS_LOOKUP_TABLE_DATA = 25
    INVALID_ADDRESS_LOOKUP_TABLE_INDEX = 26
    INVALID_RENT_PAYING_ACCOUNT = 27
    WOULD_EXCEED_MAX_VOTE_COST_LIMIT = 28
    WOULD_EXCEED_ACCOUNT_DATA_TOTAL_LIMIT = 29
    DUPLICATE_INSTRUCTION = 30
    INSUFFICIENT_FUNDS_FOR_RENT = 31
    MAX_LOADED_ACCOUNTS_DATA_SIZE_EXCEEDED = 32
    INVALID_LOADED_ACCOUNTS_DATA_SIZE_LIMIT = 33
    RESANITIZATION_NEEDED = 34
    PROGRAM_EXECUTION_TEMPORARILY_RESTRICTED = 35
    UNBALANCED_TRANSACTION = 36
    PROGRAM_CACHE_HIT_MAX_LIMIT = 37


_INSTRUCTION_INDEXED = {
    TransactionErrorKind.INSTRUCTION_ERROR,
    TransactionErrorKind.DUPLICATE_INSTRUCTION,
}
_ACCOUNT_INDEXED = {
    TransactionErrorKind.INSUFFICIENT_FUNDS_FOR_RENT,
    TransactionErrorKind.PROGRAM_EXECUTION_TEMPORARILY_RESTRICTED,
}


@dataclass(frozen=True)
class TransactionError:
    """A transaction failure with the payload its variant requires."""

    kind: TransactionErrorKind
    instruction_index: Optional[int] = None
    instruction_error: Optional[InstructionError] = None
    account_index: Optional[int] = None

    def __post_init__(self) -> None:
        kind = TransactionErrorKind(self.kind)
        _set(self, "kind", kind)
        if kind in _INSTRUCTION_INDEXED:
            _check_int("instruction_index", self.instruction_index, U8_MAX)
        elif self.instruction_index is not None:
            raise ValueError(f"{kind.name} carries no instruction index")
        if kind is TransactionErrorKind.INSTRUCTION_ERROR:
            if not isinstance(self.instruction_error, InstructionError):
                raise TypeError("an instruction error needs an InstructionError")
        elif self.instruction_error is not None:
            raise ValueError(f"{kind.name} carries no instruction error")
        if kind in _ACCOUNT_INDEXED:
            _check_int("account_index", self.account_index, U8_MAX)
        elif self.account_index is not None:
            raise ValueError(f"{kind.name} carries no account index")


@dataclass(frozen=True)
class InnerInstruction:
    instruction: CompiledInstruction
    stack_height: Optional[int] = None

    def __post_init__(self) -> None:
        _check_optional_int("stack_height", self.stack_height, U32_MAX)


@dataclass(frozen=True)
class InnerInstructions:
    """Instructions invoked by the top-level instruction at ``index``."""

    index: int
    instructions: Tuple[InnerInstruction, ...] = ()

    def __post_init__(self) -> None:
        _check_int("index", self.index, U8_MAX)
        _set(self, "instructions", tuple(self.instructions))


@dataclass(frozen=True)
class UiTokenAmount:
    ui_amount: Optional[float] = None
    decimals: int = 0
    amount: str = ""
    ui_amount_string: str = ""

    def __post_init__(self) -> None:
        _check_int("decimals", self.decimals, U8_MAX)
        if self.ui_amount is not None:
            _set(self, "ui_amount", float(self.ui_amount))


@dataclass(frozen=True)
class TransactionTokenBalance:
    account_index: int
    mint: str
    ui_token_amount: UiTokenAmount
    owner: str = ""
    program_id: str = ""

    def __post_init__(self) -> None:
        _check_int("account_index", self.account_index, U8_MAX)


@dataclass(frozen=True)
class TransactionReturnData:
    program_id: bytes
    data: bytes = b""

    def __post_init__(self) -> None:
        _set(self, "program_id", _sized("program_id", self.program_id, PUBKEY_BYTES))
        _set(self, "data", bytes(self.data))


@dataclass(frozen=True)
class TransactionStatusMeta:
    """Execution result of a transaction; ``status`` is ``None`` on success."""

    status: Optional[TransactionError] = None
    fee: int = 0
    pre_balances: Tuple[int, ...] = ()
    post_balances: Tuple[int, ...] = ()
    inner_instructions: Optional[Tuple[InnerInstructions, ...]] = None
    log_messages: Optional[Tuple[str, ...]] = None
    pre_token_balances: Optional[Tuple[TransactionTokenBalance, ...]] = None
    post_token_balances: Optional[Tuple[TransactionTokenBalance, ...]] = None
    rewards: Optional[Tuple[Reward, ...]] = None
    loaded_addresses: LoadedAddresses = field(default_factory=LoadedAddresses)
    return_data: Optional[TransactionReturnData] = None
    compute_units_consumed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.status is not None and not isinstance(self.status, TransactionError):
            raise TypeError("status must be a TransactionError or None")
        _check_int("fee", self.fee, U64_MAX)
        for name in ("pre_balances", "post_balances"):
            values = tuple(getattr(self, name))
            for value in values:
                _check_int(name, value, U64_MAX)
            _set(self, name, values)
        for name in (
            "inner_instructions",
            "log_messages",
            "pre_token_balances",
            "post_token_balances",
            "rewards",
        ):
            _set(self, name, _optional_tuple(getattr(self, name)))
        _check_optional_int("compute_units_consumed", self.compute_units_consumed, U64_MAX)

    @property
    def succeeded(self) -> bool:
        return self.status is None


@dataclass(frozen=True)
class ReplicaTransactionInfo:
    signature: bytes
    is_vote: bool
    transaction: SanitizedTransaction
    transaction_status_meta: TransactionStatusMeta
    index: int

    def __post_init__(self) -> None:
        _set(self, "signature", _sized("signature", self.signature, SIGNATURE_BYTES))
        _set(self, "is_vote", bool(self.is_vote))
        _check_int("index", self.index, U64_MAX)