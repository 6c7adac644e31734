"""Events emitted by the market and its pair

Field order matches the on-chain event signatures. INDEXED lists the
fields a consumer can filter on.
"""
import logging
from dataclasses import dataclass, fields
from typing import ClassVar, Iterator, List, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")


@dataclass(frozen=True)
class Event:
    INDEXED: ClassVar[Tuple[str, ...]] = ()

    @property
    def name(self) -> str:
        return type(self).__name__

    def topics(self) -> dict:
        return {f: getattr(self, f) for f in self.INDEXED}

    def data(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in self.INDEXED}


@dataclass(frozen=True)
class Deposit(Event):
    INDEXED: ClassVar[Tuple[str, ...]] = ("sender", "to")
    sender: str
    shares: int
    liquidity: int
    to: str


@dataclass(frozen=True)
class Withdraw(Event):
    INDEXED: ClassVar[Tuple[str, ...]] = ("sender", "to")
    sender: str
    shares: int
    liquidity: int
    to: str


@dataclass(frozen=True)
class Mint(Event):
    amount0_in: int
    amount1_in: int
    liquidity: int


@dataclass(frozen=True)
class Burn(Event):
    INDEXED: ClassVar[Tuple[str, ...]] = ("to",)
    amount0_out: int
    amount1_out: int
    liquidity: int
    to: str


@dataclass(frozen=True)
class Swap(Event):
    INDEXED: ClassVar[Tuple[str, ...]] = ("to",)
    amount0_out: int
    amount1_out: int
    amount0_in: int
    amount1_in: int
    to: str


@dataclass(frozen=True)
class Borrow(Event):
    INDEXED: ClassVar[Tuple[str, ...]] = ("sender", "to")
    sender: str
    collateral: int
    shares: int
    liquidity: int
    to: str


@dataclass(frozen=True)
class Repay(Event):
    INDEXED: ClassVar[Tuple[str, ...]] = ("sender", "to")
    sender: str
    collateral: int
    shares: int
    liquidity: int
    to: str


@dataclass(frozen=True)
class Collect(Event):
    INDEXED: ClassVar[Tuple[str, ...]] = ("owner", "to")
    owner: str
    to: str
    amount: int


@dataclass(frozen=True)
class AccrueInterest(Event):
    time_elapsed: int
    collateral: int
    liquidity: int


@dataclass(frozen=True)
class AccruePositionInterest(Event):
    INDEXED: ClassVar[Tuple[str, ...]] = ("owner",)
    owner: str
    reward_per_position: int


class EventLog:
    """Append-only record of emitted events"""

    def __init__(self) -> None:
        self._events: List[Event] = []

    def emit(self, event: Event) -> None:
        logger.debug("%s %s", event.name, event)
        self._events.append(event)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def truncate(self, length: int) -> None:
        """Drop events emitted after length, used when an operation is reverted"""
        del self._events[length:]

    def of_type(self, event_type: Type[E], **topics) -> List[E]:
        """Events of one type, optionally filtered on indexed fields"""
        for key in topics:
            if key not in event_type.INDEXED:
                raise ValueError(f"{event_type.__name__}.{key} is not indexed")
        return [
            e for e in self._events
            if isinstance(e, event_type) and all(getattr(e, k) == v for k, v in topics.items())
        ]

    def last(self) -> Event:
        return self._events[-1]
