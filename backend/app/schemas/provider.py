from typing import Literal

from pydantic import BaseModel

FetchStatus = Literal[
    "ok",
    "timeout",
    "rate_limited",
    "upstream_error",
    "transport_error",
    "invalid_payload",
]


class FetchResult(BaseModel):
    status: FetchStatus
    payload: dict | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"
