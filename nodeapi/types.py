"""Account, fee and node status types exchanged with a node."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

RefCount = int
Properties = dict[str, Any]

IS_NEW_LOGIC = 0x80000000_00000000_00000000_00000000
_U128_MAX = (1 << 128) - 1
_DECIMAL = re.compile(r"\+?[0-9]+")


def _saturating_sum(*values: int) -> int:
    return min(sum(values), _U128_MAX)


def _require(data: Mapping[str, Any], key: str) -> Any:
    if not isinstance(data, Mapping):
        raise ValueError(f"expected a JSON object, got {data!r}")
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    return data[key]


def _balance(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _U128_MAX:
        raise ValueError(f"invalid balance for `{name}`: {value!r}")
    return value


@dataclass
class ExtraFlags:
    """Account flags; the most significant bit marks the new ref-counting logic."""

    value: int = IS_NEW_LOGIC

    @classmethod
    def old_logic(cls) -> ExtraFlags:
        return cls(0)

    def set_new_logic(self) -> None:
        self.value |= IS_NEW_LOGIC

    def is_new_logic(self) -> bool:
        return (self.value & IS_NEW_LOGIC) == IS_NEW_LOGIC


@dataclass
class AccountData:
    """All balance information for an account."""

    free: int = 0
    reserved: int = 0
    frozen: int = 0
    flags: ExtraFlags = field(default_factory=ExtraFlags)


@dataclass
class AccountInfo:
    """Information of an account."""

    nonce: int = 0
    consumers: RefCount = 0
    providers: RefCount = 0
    sufficients: RefCount = 0
    data: Any = field(default_factory=AccountData)


@dataclass(frozen=True)
class InclusionFee:
    """The base fee plus the length and adjusted weight fees."""

    base_fee: int
    len_fee: int
    adjusted_weight_fee: int

    def inclusion_fee(self) -> int:
        """Sum of the three fees, saturating at the u128 maximum."""
        return _saturating_sum(self.base_fee, self.len_fee, self.adjusted_weight_fee)

    def to_json(self) -> dict[str, int]:
        return {
            "baseFee": self.base_fee,
            "lenFee": self.len_fee,
            "adjustedWeightFee": self.adjusted_weight_fee,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> InclusionFee:
        return cls(
            base_fee=_balance(_require(data, "baseFee"), "baseFee"),
            len_fee=_balance(_require(data, "lenFee"), "lenFee"),
            adjusted_weight_fee=_balance(_require(data, "adjustedWeightFee"), "adjustedWeightFee"),
        )


@dataclass(frozen=True)
class FeeDetails:
    """Optional inclusion fee plus a tip; the tip is not serialised."""

    inclusion_fee: InclusionFee | None = None
    tip: int = 0

    def final_fee(self) -> int:
        """Inclusion fee (or zero) plus the tip, saturating at the u128 maximum."""
        base = self.inclusion_fee.inclusion_fee() if self.inclusion_fee is not None else 0
        return _saturating_sum(base, self.tip)

    def to_json(self) -> dict[str, Any]:
        fee = self.inclusion_fee.to_json() if self.inclusion_fee is not None else None
        return {"inclusionFee": fee}

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> FeeDetails:
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a JSON object, got {data!r}")
        raw = data.get("inclusionFee")
        return cls(inclusion_fee=None if raw is None else InclusionFee.from_json(raw))


class DispatchClass(Enum):
    """A generalised group of dispatch types."""

    NORMAL = "normal"
    OPERATIONAL = "operational"
    MANDATORY = "mandatory"

    @classmethod
    def all(cls) -> tuple[DispatchClass, ...]:
        return (cls.NORMAL, cls.OPERATIONAL, cls.MANDATORY)

    @classmethod
    def non_mandatory(cls) -> tuple[DispatchClass, ...]:
        return (cls.NORMAL, cls.OPERATIONAL)


def _default_weight() -> dict[str, int]:
    return {"ref_time": 0, "proof_size": 0}


@dataclass
class RuntimeDispatchInfo:
    """Weight, class and partial fee of a dispatchable, as queried from the runtime."""

    weight: Any = field(default_factory=_default_weight)
    dispatch_class: DispatchClass = DispatchClass.NORMAL
    partial_fee: int = 0

    def to_json(self) -> dict[str, Any]:
        return {
            "weight": self.weight,
            "class": self.dispatch_class.value,
            "partialFee": str(self.partial_fee),
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> RuntimeDispatchInfo:
        weight = _require(data, "weight")
        raw_class = _require(data, "class")
        try:
            dispatch_class = DispatchClass(raw_class)
        except ValueError:
            raise ValueError(f"unknown variant `{raw_class}`") from None
        raw_fee = _require(data, "partialFee")
        if not isinstance(raw_fee, str):
            raise ValueError(f"invalid type for `partialFee`: expected a string, got {raw_fee!r}")
        if not _DECIMAL.fullmatch(raw_fee):
            raise ValueError("Parse from string failed")
        return cls(weight=weight, dispatch_class=dispatch_class, partial_fee=int(raw_fee))


_REWARD_KINDS = ("Staked", "Stash", "Controller", "Account", "None")


@dataclass(frozen=True)
class RewardDestination:
    """A destination account for payment; ``account`` is set only for ``Account``."""

    kind: str = "Staked"
    account: Any = None

    def __post_init__(self) -> None:
        if self.kind not in _REWARD_KINDS:
            raise ValueError(f"unknown reward destination: {self.kind!r}")
        if self.kind == "Account" and self.account is None:
            raise ValueError("an Account reward destination needs an account")
        if self.kind != "Account" and self.account is not None:
            raise ValueError(f"{self.kind} reward destination carries no account")


@dataclass(frozen=True)
class Health:
    """Node health as reported over RPC."""

    peers: int
    is_syncing: bool
    should_have_peers: bool

    def __str__(self) -> str:
        state = "syncing" if self.is_syncing else "idle"
        return f"{self.peers} peers ({state})"

    def to_json(self) -> dict[str, Any]:
        return {
            "peers": self.peers,
            "isSyncing": self.is_syncing,
            "shouldHavePeers": self.should_have_peers,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Health:
        peers = _require(data, "peers")
        is_syncing = _require(data, "isSyncing")
        should_have_peers = _require(data, "shouldHavePeers")
        if isinstance(peers, bool) or not isinstance(peers, int) or peers < 0:
            raise ValueError(f"invalid peer count: {peers!r}")
        if not isinstance(is_syncing, bool) or not isinstance(should_have_peers, bool):
            raise ValueError("health flags must be booleans")
        return cls(peers, is_syncing, should_have_peers)


_PLAIN_CHAIN_TYPES = ("Development", "Local", "Live")


@dataclass(frozen=True)
class ChainType:
    """The type of a chain; ``custom`` names it when ``kind`` is ``Custom``."""

    kind: str
    custom: str | None = None

    def __post_init__(self) -> None:
        if self.kind == "Custom":
            if not isinstance(self.custom, str):
                raise ValueError("a Custom chain type needs a name")
        elif self.kind in _PLAIN_CHAIN_TYPES:
            if self.custom is not None:
                raise ValueError(f"{self.kind} chain type carries no name")
        else:
            raise ValueError(f"unknown chain type: {self.kind!r}")

    def to_json(self) -> str | dict[str, str]:
        if self.kind == "Custom":
            return {"Custom": self.custom}
        return self.kind

    @classmethod
    def from_json(cls, data: Any) -> ChainType:
        if isinstance(data, str):
            if data not in _PLAIN_CHAIN_TYPES:
                raise ValueError(f"unknown variant `{data}`")
            return cls(data)
        if isinstance(data, Mapping) and len(data) == 1 and "Custom" in data:
            name = data["Custom"]
            if not isinstance(name, str):
                raise ValueError("Custom chain type needs a string")
            return cls("Custom", name)
        raise ValueError(f"invalid chain type: {data!r}")