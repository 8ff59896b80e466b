"""AI assistant API - project analysis and streak coaching."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sidebuilds.auth import AuthorizedUser
from sidebuilds.libs.ai_assistant import AIAssistant, AIServiceError
from sidebuilds.libs.models import AnalyzeProjectRequest, StreakSuggestionsRequest

logger = logging.getLogger(__name__)

router = APIRouter()


class AnalysisResponse(BaseModel):
    analysis: str


class SuggestionsResponse(BaseModel):
    suggestions: str


def get_assistant() -> AIAssistant:
    return AIAssistant()


@router.post("/ai/analyze-project", response_model=AnalysisResponse)
async def analyze_project(
    request: AnalyzeProjectRequest,
    user: AuthorizedUser,
    assistant: AIAssistant = Depends(get_assistant),
):
    """
    Run one of the analysis templates over a project.

    analysis_type is market_analysis, project_planning or marketing_strategy;
    anything else gets general feedback.
    """
    try:
        analysis = await assistant.analyze_project(request.project_data, request.analysis_type)
    except AIServiceError as e:
        logger.error(f"AI analysis failed for user {user.sub}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail="Failed to generate analysis")
    return AnalysisResponse(analysis=analysis)


@router.post("/ai/streak-suggestions", response_model=SuggestionsResponse)
async def streak_suggestions(
    request: StreakSuggestionsRequest,
    user: AuthorizedUser,
    assistant: AIAssistant = Depends(get_assistant),
):
    """Personalized productivity suggestions from the user's streak and projects."""
    try:
        suggestions = await assistant.streak_suggestions(request.streak_data, request.projects)
    except AIServiceError as e:
        logger.error(f"Streak suggestions failed for user {user.sub}: {e.message}")
        raise HTTPException(status_code=e.status_code, detail="Failed to generate suggestions")
    return SuggestionsResponse(suggestions=suggestions)
