"""Portfolio, position and view endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from stockfolio.api.deps import get_holding_service, get_view_service
from stockfolio.api.schemas import (
    DetailResponse,
    ExchangeRateResponse,
    LiveStatusResponse,
    PortfolioCreate,
    PortfolioListResponse,
    PortfolioResponse,
    PortfolioSummaryResponse,
    PortfolioViewResponse,
    PositionCreate,
    PositionResponse,
    PositionRowResponse,
    PositionUpdate,
    PricePointResponse,
    SegmentSummaryResponse,
)
from stockfolio.domain.models import COMBINED_INDEX, MarketSegment, SortKey
from stockfolio.domain.views import DetailView, PortfolioView
from stockfolio.services import HoldingService, PortfolioViewService, merge_positions
from stockfolio.services.portfolio_view_service import COMBINED_NAME

router = APIRouter(prefix="/portfolios", tags=["portfolios"])


def _view_response(view: PortfolioView) -> PortfolioViewResponse:
    summary = view.summary
    rate = summary.exchange_rate
    return PortfolioViewResponse(
        index=view.index,
        name=view.name,
        combined=view.combined,
        sort=view.sort_key,
        reverse=view.reverse,
        tw_rows=[PositionRowResponse.model_validate(r) for r in view.rows.get(MarketSegment.TW, [])],
        us_rows=[PositionRowResponse.model_validate(r) for r in view.rows.get(MarketSegment.US, [])],
        segments=[SegmentSummaryResponse.model_validate(s) for s in view.segments.values()],
        summary=PortfolioSummaryResponse.model_validate(summary),
        exchange_rate=ExchangeRateResponse.from_rate(rate, summary.rate_is_stale) if rate else None,
        errors=view.errors,
        is_refreshing=view.is_refreshing,
        last_refresh_at=view.last_refresh_at,
    )


def _detail_response(detail: DetailView) -> DetailResponse:
    points = detail.history.points if detail.history is not None else ()
    return DetailResponse(
        row=PositionRowResponse.model_validate(detail.row),
        points=[PricePointResponse(date=p.date, close=p.close) for p in points],
        history_is_stale=detail.history_is_stale,
        loading=detail.loading,
        high=detail.high,
        low=detail.low,
        average=detail.average,
        period_change_pct=detail.period_change_pct,
        trend=detail.trend,
        error=detail.error,
    )


@router.get("", response_model=PortfolioListResponse)
def list_portfolios(
    holdings: HoldingService = Depends(get_holding_service),
) -> PortfolioListResponse:
    """List stored portfolios, preceded by the combined view at index 0."""
    portfolios = holdings.list_portfolios()
    entries = [
        PortfolioResponse(
            index=COMBINED_INDEX,
            name=COMBINED_NAME,
            combined=True,
            position_count=len(merge_positions(portfolios)),
        )
    ]
    entries.extend(
        PortfolioResponse(index=p.index, name=p.name, position_count=len(p.positions))
        for p in portfolios
    )
    return PortfolioListResponse(portfolios=entries, count=len(entries))


@router.post("", response_model=PortfolioResponse, status_code=201)
def create_portfolio(
    data: PortfolioCreate,
    holdings: HoldingService = Depends(get_holding_service),
) -> PortfolioResponse:
    """Create an empty portfolio."""
    portfolio = holdings.create_portfolio(data.name)
    return PortfolioResponse(index=portfolio.index, name=portfolio.name, position_count=0)


@router.get("/{index}/view", response_model=PortfolioViewResponse)
def get_view(
    index: int,
    sort: SortKey = Query(SortKey.SYMBOL, description="Sort column"),
    reverse: bool = Query(False, description="Descending order"),
    views: PortfolioViewService = Depends(get_view_service),
) -> PortfolioViewResponse:
    """Valued rows and totals from cached data. Never waits on the network."""
    return _view_response(views.get_view(index, sort, reverse))


@router.post("/{index}/refresh", response_model=PortfolioViewResponse)
def refresh(
    index: int,
    force: bool = Query(True, description="Refetch fresh entries too"),
    wait: bool = Query(True, description="Wait for the fetch before responding"),
    sort: SortKey = Query(SortKey.SYMBOL),
    reverse: bool = Query(False),
    views: PortfolioViewService = Depends(get_view_service),
) -> PortfolioViewResponse:
    """Refresh quotes for the view and the exchange rate."""
    views.refresh(index, force=force, wait=wait)
    return _view_response(views.get_view(index, sort, reverse))


def _live_response(views: PortfolioViewService) -> LiveStatusResponse:
    index = views.live_index
    return LiveStatusResponse(
        live=index is not None,
        index=index,
        interval_seconds=views.live_refresh_seconds,
    )


@router.get("/live", response_model=LiveStatusResponse)
def live_status(
    views: PortfolioViewService = Depends(get_view_service),
) -> LiveStatusResponse:
    """Which view, if any, is refreshed periodically."""
    return _live_response(views)


@router.post("/{index}/live", response_model=LiveStatusResponse)
def start_live(
    index: int,
    views: PortfolioViewService = Depends(get_view_service),
) -> LiveStatusResponse:
    """Refresh this view in the background every live_refresh_seconds."""
    views.start_live(index)
    return _live_response(views)


@router.delete("/live", response_model=LiveStatusResponse)
def stop_live(
    views: PortfolioViewService = Depends(get_view_service),
) -> LiveStatusResponse:
    """Turn live mode off. A refresh already in flight still completes."""
    views.stop_live()
    return _live_response(views)


@router.post("/{index}/positions", response_model=PositionResponse, status_code=201)
def add_position(
    index: int,
    data: PositionCreate,
    holdings: HoldingService = Depends(get_holding_service),
) -> PositionResponse:
    """Add a position. Unknown symbols are rejected immediately."""
    position = holdings.add_position(
        index,
        symbol=data.symbol,
        display_name=data.display_name,
        description=data.description,
        quantity=data.quantity,
        cost_basis=data.cost_basis,
    )
    return PositionResponse.model_validate(position)


@router.put("/{index}/positions/{symbol}", response_model=PositionResponse)
def edit_position(
    index: int,
    symbol: str,
    data: PositionUpdate,
    holdings: HoldingService = Depends(get_holding_service),
) -> PositionResponse:
    """Update quantity and cost basis of a position."""
    position = holdings.edit_position(index, symbol, data.quantity, data.cost_basis)
    return PositionResponse.model_validate(position)


@router.delete("/{index}/positions/{symbol}", status_code=204)
def delete_position(
    index: int,
    symbol: str,
    holdings: HoldingService = Depends(get_holding_service),
) -> Response:
    """Remove a position."""
    holdings.delete_position(index, symbol)
    return Response(status_code=204)


@router.get("/{index}/positions/{symbol}/detail", response_model=DetailResponse)
def open_detail(
    index: int,
    symbol: str,
    wait: Optional[float] = Query(None, ge=0, description="Seconds to wait for history"),
    views: PortfolioViewService = Depends(get_view_service),
) -> DetailResponse:
    """Detail view with 30-day history; `loading` is set while it is fetched."""
    return _detail_response(views.open_detail(index, symbol, wait=wait))


@router.delete("/detail", status_code=204)
def close_detail(
    views: PortfolioViewService = Depends(get_view_service),
) -> Response:
    """Leave the detail view. A pending history fetch still fills the cache."""
    views.close_detail()
    return Response(status_code=204)
