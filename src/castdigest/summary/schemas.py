"""Pydantic models for structured summary content."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


class QuickSummaryContent(BaseModel):
    """Quick summary: a short card-sized digest."""

    model_config = ConfigDict(extra="allow")

    hook_headline: str
    executive_brief: str
    golden_nugget: str
    perfect_for: str
    tags: list[str]


class CoreConcept(BaseModel):
    model_config = ConfigDict(extra="allow")

    concept: str
    explanation: str
    quote_reference: Optional[str] = None


class ChronologicalSection(BaseModel):
    model_config = ConfigDict(extra="allow")

    timestamp_description: str
    content: str


class ActionItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str


class DeepSummaryContent(BaseModel):
    """Deep summary: overview, concepts, timeline and takeaways."""

    model_config = ConfigDict(extra="allow")

    comprehensive_overview: str
    core_concepts: list[CoreConcept]
    chronological_breakdown: list[ChronologicalSection]
    contrarian_views: list[str]
    actionable_takeaways: list[Union[str, ActionItem]]
