from dataclasses import dataclass
from typing import Annotated

from fastapi import Path, Query

from vidcat.core.config import settings
from vidcat.schemas import MAX_ID

# Path ids above the INTEGER column range are rejected with 400
EntityId = Annotated[int, Path(gt=0, le=MAX_ID)]


@dataclass
class Pagination:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def get_pagination(
    page: int = Query(1, ge=1, le=MAX_ID),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
) -> Pagination:
    return Pagination(page=page, limit=limit)
