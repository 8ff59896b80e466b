"""
Database Models for SideBuilds

This module contains the enums and Pydantic request models shared by the API routers.
Response models live next to the endpoints that return them.
"""

from datetime import date
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class ProjectStage(str, Enum):
    """Project lifecycle stage"""
    IDEA = "idea"
    DESIGN = "design"
    MVP = "mvp"
    LAUNCHED = "launched"
    ARCHIVED = "archived"


class ProjectStatus(str, Enum):
    """Project status values"""
    ACTIVE = "active"
    ARCHIVED = "archived"


class ListingStatus(str, Enum):
    """Marketplace listing status values"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SOLD = "sold"


class AnalysisType(str, Enum):
    """AI analysis templates"""
    MARKET_ANALYSIS = "market_analysis"
    PROJECT_PLANNING = "project_planning"
    MARKETING_STRATEGY = "marketing_strategy"
    GENERAL = "general"


class TimeRange(str, Enum):
    """Metrics dashboard windows"""
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"

    @property
    def days(self) -> int:
        return int(self.value[:-1])


class PriceRange(str, Enum):
    """Marketplace price filter buckets"""
    ALL = "all"
    UNDER_100 = "under100"
    FROM_100_TO_500 = "100to500"
    FROM_500_TO_1000 = "500to1000"
    OVER_1000 = "over1000"


# =============================================================================
# API REQUEST MODELS
# =============================================================================


def _not_blank(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class ProjectCreate(BaseModel):
    """Request model for creating a project"""
    name: NonBlankStr = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    stage: ProjectStage = ProjectStage.IDEA
    is_public: bool = False
    domain_name: Optional[str] = None
    repo_url: Optional[str] = None
    live_url: Optional[str] = None
    image_url: Optional[str] = None


class ProjectUpdate(BaseModel):
    """Request model for updating a project"""
    name: Optional[NonBlankStr] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    stage: Optional[ProjectStage] = None
    status: Optional[ProjectStatus] = None
    is_public: Optional[bool] = None
    domain_name: Optional[str] = None
    repo_url: Optional[str] = None
    live_url: Optional[str] = None
    image_url: Optional[str] = None


class MetricCreate(BaseModel):
    """Request model for recording a day of project metrics"""
    metric_date: Optional[date] = None
    revenue: float = Field(default=0, ge=0)
    users: int = Field(default=0, ge=0)
    traffic: int = Field(default=0, ge=0)


class ListingCreate(BaseModel):
    """Request model for listing a project on the marketplace"""
    project_id: str = Field(..., min_length=1)
    title: NonBlankStr = Field(..., min_length=1, max_length=200)
    description: NonBlankStr = Field(..., min_length=1)
    asking_price: float = Field(..., gt=0)
    included_assets: Optional[str] = None
    tech_stack: Optional[str] = None
    reason_for_selling: Optional[str] = None
    monthly_revenue: Optional[float] = Field(None, ge=0)
    monthly_users: Optional[int] = Field(None, ge=0)


class ListingUpdate(BaseModel):
    """Request model for updating a marketplace listing"""
    title: Optional[NonBlankStr] = Field(None, min_length=1, max_length=200)
    description: Optional[NonBlankStr] = Field(None, min_length=1)
    asking_price: Optional[float] = Field(None, gt=0)
    status: Optional[ListingStatus] = None
    included_assets: Optional[str] = None
    tech_stack: Optional[str] = None
    reason_for_selling: Optional[str] = None
    monthly_revenue: Optional[float] = Field(None, ge=0)
    monthly_users: Optional[int] = Field(None, ge=0)


class ProfileUpdate(BaseModel):
    """Request model for the settings page profile form"""
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    website: Optional[str] = None
    github_url: Optional[str] = None
    twitter_url: Optional[str] = None


class ActivityLogRequest(BaseModel):
    """Request model for logging a day of work"""
    activity_type: str = "daily_work"
    description: str = "Daily project work completed"


class AnalyzeProjectRequest(BaseModel):
    """Request model for an AI project analysis"""
    project_data: dict[str, Any]
    analysis_type: str = AnalysisType.GENERAL.value


class StreakSuggestionsRequest(BaseModel):
    """Request model for AI streak coaching"""
    streak_data: dict[str, Any]
    projects: list[dict[str, Any]] = []

