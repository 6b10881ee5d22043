from __future__ import annotations

import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.quote import Quote

AssetType = Literal["stock", "crypto", "commodity", "etf"]


class WatchlistRequest(BaseModel):
    ticker: str = Field(min_length=1, max_length=20)
    type: AssetType = "stock"


class WatchlistItemResponse(Quote):
    id: int
    type: str
    created_at: datetime.datetime | None = None
    price: float | None = None


class RemovedResponse(BaseModel):
    message: str
