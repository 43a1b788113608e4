from typing import Generic, TypeVar

from formbuilder.schemas.layout import CamelModel

T = TypeVar("T")


class PaginationMeta(CamelModel):
    total: int
    limit: int
    offset: int
    has_more: bool

    @property
    def page(self) -> int:
        """1-indexed page for the current offset"""
        if self.limit == 0:
            return 1
        return (self.offset // self.limit) + 1


class PaginatedResponse(CamelModel, Generic[T]):
    items: list[T]
    pagination: PaginationMeta


def build_page(items: list[CamelModel], *, total: int, limit: int, offset: int) -> dict:
    return PaginatedResponse(
        items=[i.model_dump(mode="json", by_alias=True) for i in items],
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(items) < total,
        ),
    ).model_dump(mode="json", by_alias=True)
