from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class FilterStateModel(BaseModel):
    category: str = "all"
    threshold: Union[float, str] = "all"
    range_min: Optional[float] = None
    range_max: Optional[float] = None
    sort_by: Optional[str] = None
    top_n: Optional[int] = None
    measure: Optional[str] = None


class ViewTransformModel(BaseModel):
    k: float = Field(default=1.0, gt=0)
    x: float = 0.0
    y: float = 0.0


class RenderRequest(BaseModel):
    filters: FilterStateModel = Field(default_factory=FilterStateModel)
    view: ViewTransformModel = Field(default_factory=ViewTransformModel)
    previous: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)


class PageSummary(BaseModel):
    name: str
    title: str
    chart: str


class PagesResponse(BaseModel):
    pages: List[PageSummary]
