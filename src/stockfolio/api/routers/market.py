"""Market data endpoints: history chart and exchange rate."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from stockfolio.api.deps import get_market_data_service
from stockfolio.api.schemas import ExchangeRateResponse
from stockfolio.config.settings import get_settings
from stockfolio.core.exceptions import NotFoundError
from stockfolio.services import MarketDataService
from stockfolio.services.history_chart import render_history_png
from stockfolio.services.holding_service import normalize_symbol

router = APIRouter(prefix="/market", tags=["market"])


@router.get("/history/{symbol}/chart", response_class=Response)
def history_chart(
    symbol: str,
    wait: Optional[float] = Query(None, ge=0, description="Seconds to wait for a fetch"),
    market: MarketDataService = Depends(get_market_data_service),
) -> Response:
    """30-day close chart as PNG, from cache or fetched on demand."""
    symbol = normalize_symbol(symbol)
    if wait is None:
        wait = get_settings().history_fetch_timeout_seconds
    series = market.history(symbol, wait=wait)
    if series is None or not series.points:
        error = market.history_error(symbol)
        if error is not None:
            raise error
        raise NotFoundError("History", symbol)
    return Response(content=render_history_png(series), media_type="image/png")


@router.get("/exchange-rate", response_model=ExchangeRateResponse)
def exchange_rate(
    market: MarketDataService = Depends(get_market_data_service),
) -> ExchangeRateResponse:
    """Last cached USD/TWD rate, fetched first if none was ever cached."""
    market.process_events()
    rate = market.exchange_rate()
    if rate is None:
        market.refresh([], force=True)
        rate = market.exchange_rate()
    if rate is None:
        if market.rate_error is not None:
            raise market.rate_error
        raise NotFoundError("Exchange rate", "USD/TWD")
    return ExchangeRateResponse.from_rate(rate, is_stale=market.cache.get_rate() is None)
