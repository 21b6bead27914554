from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from portfolio_ticker.portfolio.models import (
    Aggregation,
    Distribution,
    PortfolioTotals,
    PurchaseLot,
    SymbolAggregate,
)


def aggregate(
    lots: Iterable[PurchaseLot],
    distributions: Iterable[Distribution] = (),
) -> Aggregation:
    """Roll purchase lots and distributions up into per-symbol holdings.

    Holdings keep the order in which symbols were first seen (lots first,
    then distributions). Shares, cost and value are summed across lots; the
    latest price is taken from the last lot of each symbol. A distribution
    for a symbol that was never purchased still gets a holding.

    Every call builds a fresh mapping, so symbols that drop out of the ledger
    disappear from the next result.
    """
    holdings: dict[str, SymbolAggregate] = {}

    for lot in lots:
        current = holdings.get(lot.symbol) or SymbolAggregate(lot.symbol)
        holdings[lot.symbol] = replace(
            current,
            shares=current.shares + lot.shares,
            latest_price=lot.price,
            cost_basis=current.cost_basis + lot.cost_basis,
            market_value=current.market_value + lot.current_value,
        )

    for dist in distributions:
        current = holdings.get(dist.symbol) or SymbolAggregate(dist.symbol)
        holdings[dist.symbol] = replace(
            current, distributions=current.distributions + dist.amount
        )

    totals = PortfolioTotals(
        cost_basis=sum(h.cost_basis for h in holdings.values()),
        market_value=sum(h.market_value for h in holdings.values()),
        distributions=sum(h.distributions for h in holdings.values()),
    )
    return Aggregation(holdings, totals)
