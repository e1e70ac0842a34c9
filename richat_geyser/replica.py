"""Records describing the updates a validator hands to the plugin."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Tuple, Union

U64_MAX = (1 << 64) - 1
I64_MIN = -(1 << 63)
I64_MAX = (1 << 63) - 1
U8_MAX = 0xFF


def _check_int(name: str, value: object, low: int, high: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not low <= value <= high:
        raise ValueError(f"{name}={value} is out of range [{low}, {high}]")


def _check_optional_int(name: str, value: object, low: int, high: int) -> None:
    if value is not None:
        _check_int(name, value, low, high)


class SlotStatus(Enum):
    """Status of a slot as reported by the validator (all but a dead slot)."""

    PROCESSED = "processed"
    ROOTED = "rooted"
    CONFIRMED = "confirmed"
    FIRST_SHRED_RECEIVED = "first_shred_received"
    COMPLETED = "completed"
    CREATED_BANK = "created_bank"


@dataclass(frozen=True)
class Dead:
    """A dead slot, carrying the error that killed it."""

    error: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.error, str):
            raise TypeError("dead slot error must be a string")


AnySlotStatus = Union[SlotStatus, Dead]


class RewardType(IntEnum):
    FEE = 1
    RENT = 2
    STAKING = 3
    VOTING = 4


@dataclass(frozen=True)
class Reward:
    pubkey: str
    lamports: int
    post_balance: int
    reward_type: Optional[RewardType] = None
    commission: Optional[int] = None

    def __post_init__(self) -> None:
        _check_int("lamports", self.lamports, I64_MIN, I64_MAX)
        _check_int("post_balance", self.post_balance, 0, U64_MAX)
        _check_optional_int("commission", self.commission, 0, U8_MAX)
        if self.reward_type is not None and not isinstance(self.reward_type, RewardType):
            object.__setattr__(self, "reward_type", RewardType(self.reward_type))


@dataclass(frozen=True)
class RewardsAndNumPartitions:
    rewards: Tuple[Reward, ...] = ()
    num_partitions: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "rewards", tuple(self.rewards))
        _check_optional_int("num_partitions", self.num_partitions, 0, U64_MAX)


@dataclass(frozen=True)
class ReplicaAccountInfo:
    """An account update; ``txn_signature`` is the signature of the writing transaction."""

    pubkey: bytes
    lamports: int
    owner: bytes
    executable: bool
    rent_epoch: int
    data: bytes
    write_version: int
    txn_signature: Optional[bytes] = None

    def __post_init__(self) -> None:
        _check_int("lamports", self.lamports, 0, U64_MAX)
        _check_int("rent_epoch", self.rent_epoch, 0, U64_MAX)
        _check_int("write_version", self.write_version, 0, U64_MAX)
        object.__setattr__(self, "pubkey", bytes(self.pubkey))
        object.__setattr__(self, "owner", bytes(self.owner))
        object.__setattr__(self, "data", bytes(self.data))
        object.__setattr__(self, "executable", bool(self.executable))
        if self.txn_signature is not None:
            object.__setattr__(self, "txn_signature", bytes(self.txn_signature))


@dataclass(frozen=True)
class ReplicaBlockInfo:
    parent_slot: int
    parent_blockhash: str
    slot: int
    blockhash: str
    rewards: RewardsAndNumPartitions
    block_time: Optional[int]
    block_height: Optional[int]
    executed_transaction_count: int
    entry_count: int

    def __post_init__(self) -> None:
        _check_int("parent_slot", self.parent_slot, 0, U64_MAX)
        _check_int("slot", self.slot, 0, U64_MAX)
        _check_optional_int("block_time", self.block_time, I64_MIN, I64_MAX)
        _check_optional_int("block_height", self.block_height, 0, U64_MAX)
        _check_int(
            "executed_transaction_count", self.executed_transaction_count, 0, U64_MAX
        )
        _check_int("entry_count", self.entry_count, 0, U64_MAX)


@dataclass(frozen=True)
class ReplicaEntryInfo:
    slot: int
    index: int
    num_hashes: int
    hash: bytes
    executed_transaction_count: int
    starting_transaction_index: int

    def __post_init__(self) -> None:
        _check_int("slot", self.slot, 0, U64_MAX)
        _check_int("index", self.index, 0, U64_MAX)
        _check_int("num_hashes", self.num_hashes, 0, U64_MAX)
        _check_int(
            "executed_transaction_count", self.executed_transaction_count, 0, U64_MAX
        )
        _check_int(
            "starting_transaction_index", self.starting_transaction_index, 0, U64_MAX
        )
        object.__setattr__(self, "hash", bytes(self.hash))