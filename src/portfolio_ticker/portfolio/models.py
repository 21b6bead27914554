from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import NamedTuple


class ReturnStatus(enum.Enum):
    DEFINED = "DEFINED"
    ZERO_COST_BASIS = "ZERO_COST_BASIS"


@dataclass(frozen=True)
class NetReturn:
    status: ReturnStatus
    gain: float
    percent: float | None

    @property
    def is_defined(self) -> bool:
        return self.status is ReturnStatus.DEFINED


@dataclass(frozen=True)
class PurchaseLot:
    symbol: str
    shares: float
    cost_basis: float
    current_value: float
    price: float | None = None

    def __post_init__(self) -> None:
        if self.shares < 0:
            raise ValueError(f"{self.symbol}: negative share count {self.shares}")


@dataclass(frozen=True)
class Distribution:
    symbol: str
    amount: float


def net_gain(market_value: float, distributions: float, cost_basis: float) -> float:
    return market_value + distributions - cost_basis


def net_return(market_value: float, distributions: float, cost_basis: float) -> NetReturn:
    """Gain and fractional return, with a zero cost basis reported as undefined."""
    gain = net_gain(market_value, distributions, cost_basis)
    if cost_basis == 0:
        return NetReturn(ReturnStatus.ZERO_COST_BASIS, gain, None)
    return NetReturn(ReturnStatus.DEFINED, gain, gain / cost_basis)


@dataclass(frozen=True)
class SymbolAggregate:
    symbol: str
    shares: float = 0.0
    latest_price: float | None = None
    cost_basis: float = 0.0
    market_value: float = 0.0
    distributions: float = 0.0

    @property
    def net_gain(self) -> float:
        return net_gain(self.market_value, self.distributions, self.cost_basis)

    @property
    def net_return(self) -> NetReturn:
        return net_return(self.market_value, self.distributions, self.cost_basis)


@dataclass(frozen=True)
class PortfolioTotals:
    cost_basis: float = 0.0
    market_value: float = 0.0
    distributions: float = 0.0

    @property
    def net_gain(self) -> float:
        return net_gain(self.market_value, self.distributions, self.cost_basis)

    @property
    def net_return(self) -> NetReturn:
        return net_return(self.market_value, self.distributions, self.cost_basis)


class Aggregation(NamedTuple):
    holdings: dict[str, SymbolAggregate]
    totals: PortfolioTotals
