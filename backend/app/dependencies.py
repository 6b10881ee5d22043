from functools import lru_cache

from app.quotes.service import QuoteService


@lru_cache(maxsize=1)
def get_quote_service() -> QuoteService:
    """Process-wide service, so every request shares one result cache."""
    return QuoteService.from_settings()
