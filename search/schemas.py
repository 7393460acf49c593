"""Pydantic models for the Serper search API response."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OrganicItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    link: str
    snippet: str = ""
    position: Optional[int] = None


class NewsItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str
    link: str
    snippet: str = ""
    date: Optional[str] = None


class SearchInformation(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    total_results: Optional[int] = Field(None, alias="totalResults")
    time_taken: Optional[float] = Field(None, alias="timeTaken")


class SerperResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    organic: Optional[List[OrganicItem]] = None
    news: Optional[List[NewsItem]] = None
    search_information: Optional[SearchInformation] = Field(None, alias="searchInformation")

    @model_validator(mode="after")
    def require_result_list(self):
        # A "search" response carries organic[], a "news" response carries news[]
        if self.organic is None and self.news is None:
            raise ValueError("response contains neither 'organic' nor 'news'")
        return self
