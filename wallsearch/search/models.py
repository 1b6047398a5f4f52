"""Wire models for the search endpoint."""

from typing import List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class WallpaperSummary(BaseModel):
    """One search hit. Immutable once fetched; unknown fields are kept."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    id: Union[int, str]
    title: str = ""
    thumbnail_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("thumbnailUrl", "thumbnail_url")
    )
    full_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("fullUrl", "full_url", "image_url")
    )
    width: Optional[int] = None
    height: Optional[int] = None
    is_premium: bool = Field(
        default=False, validation_alias=AliasChoices("isPremium", "is_premium")
    )


class ResultPage(BaseModel):
    """One page of results as returned under `data` by the search endpoint."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    items: List[WallpaperSummary] = Field(
        default_factory=list, validation_alias=AliasChoices("wallpapers", "items")
    )
    total_count: int = Field(default=0, validation_alias=AliasChoices("totalCount", "total_count"))
    total_pages: int = Field(default=0, validation_alias=AliasChoices("totalPages", "total_pages"))
    current_page: int = Field(default=1, validation_alias=AliasChoices("currentPage", "current_page"))

    @classmethod
    def empty(cls, page: int = 1) -> "ResultPage":
        return cls(items=[], total_count=0, total_pages=0, current_page=page)

    @property
    def is_empty(self) -> bool:
        return not self.items


class Category(BaseModel):
    """Active category row, used to populate the category filter."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: Union[int, str]
    name: str
    slug: str = ""
    sort_order: int = 0
