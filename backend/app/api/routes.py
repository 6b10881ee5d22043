import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.db.models import Asset
from app.db.session import get_session
from app.dependencies import get_quote_service
from app.quotes.service import QuoteService
from app.rate_limit import limiter, write_limit
from app.schemas.quote import Quote, SearchResult
from app.schemas.watchlist import RemovedResponse, WatchlistItemResponse, WatchlistRequest
from app.validation.tickers import sanitize_query, sanitize_ticker

logger = structlog.get_logger()

router = APIRouter()


def _require_ticker(raw: str) -> str:
    ticker = sanitize_ticker(raw)
    if not ticker:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Invalid ticker format."},
        )
    return ticker


def _merge_asset(asset: Asset, quote: Quote | None) -> WatchlistItemResponse:
    data = quote.model_dump() if quote else {"ticker": asset.ticker, "name": asset.name}
    return WatchlistItemResponse(
        **data,
        id=asset.id,
        type=asset.type,
        created_at=asset.created_at,
    )


@router.get("/health")
@limiter.exempt
def health() -> dict:
    return {"status": "ok"}


@router.get("/api/assets", response_model=list[WatchlistItemResponse])
async def list_assets(
    db: AsyncSession = Depends(get_session),
    service: QuoteService = Depends(get_quote_service),
) -> list[WatchlistItemResponse]:
    result = await db.execute(
        select(Asset).order_by(Asset.created_at.asc()).limit(settings.max_watchlist_items)
    )
    assets = result.scalars().all()
    if not assets:
        return []

    quotes = await service.get_quotes([asset.ticker for asset in assets])
    quotes_by_ticker = {quote.ticker: quote for quote in quotes}
    return [_merge_asset(asset, quotes_by_ticker.get(asset.ticker.upper())) for asset in assets]


@router.get("/api/assets/search/{query}", response_model=list[SearchResult])
async def search_assets(
    query: str, service: QuoteService = Depends(get_quote_service)
) -> list[SearchResult]:
    if not sanitize_query(query):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Invalid search query."},
        )
    return await service.search_tickers(query)


@router.get("/api/assets/{ticker}", response_model=Quote)
async def get_asset(
    ticker: str, service: QuoteService = Depends(get_quote_service)
) -> Quote:
    normalized = _require_ticker(ticker)
    quote = await service.get_quote(normalized)
    if quote is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found.")
    return quote


@router.post(
    "/api/assets",
    response_model=WatchlistItemResponse,
    status_code=status.HTTP_201_CREATED,
)
@write_limit
async def add_asset(
    request: Request,
    payload: WatchlistRequest,
    db: AsyncSession = Depends(get_session),
    service: QuoteService = Depends(get_quote_service),
) -> WatchlistItemResponse:
    ticker = _require_ticker(payload.ticker)

    count = await db.scalar(select(func.count()).select_from(Asset))
    if (count or 0) >= settings.max_watchlist_items:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": f"Maximum of {settings.max_watchlist_items} assets allowed."},
        )

    existing = await db.execute(select(Asset).where(Asset.ticker == ticker))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "Asset already in watchlist."},
        )

    quote = await service.get_quote(ticker)
    if quote is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found on market."
        )

    asset = Asset(ticker=ticker, name=quote.name, type=payload.type)
    db.add(asset)
    await db.commit()
    await db.refresh(asset)
    logger.info("watchlist_added", ticker=ticker, asset_type=payload.type)
    return _merge_asset(asset, quote)


@router.delete("/api/assets/{ticker}", response_model=RemovedResponse)
@write_limit
async def remove_asset(
    request: Request, ticker: str, db: AsyncSession = Depends(get_session)
) -> RemovedResponse:
    normalized = _require_ticker(ticker)
    result = await db.execute(select(Asset).where(Asset.ticker == normalized))
    asset = result.scalar_one_or_none()
    if asset is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found in watchlist."
        )

    await db.delete(asset)
    await db.commit()
    logger.info("watchlist_removed", ticker=normalized)
    return RemovedResponse(message="Asset removed from watchlist")
