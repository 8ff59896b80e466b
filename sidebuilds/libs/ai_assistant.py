"""
AI assistant for SideBuilds

Fixed prompt templates for project analysis and streak coaching, sent as
single-turn chat completions through the OpenAI SDK.

Requires OPENAI_API_KEY; OPENAI_MODEL overrides the default model.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from sidebuilds.libs.models import AnalysisType

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
MAX_TOKENS = 1500
TEMPERATURE = 0.7


class AIServiceError(Exception):
    """Raised when the completion API call fails"""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


def build_analysis_prompt(project_data: Dict[str, Any], analysis_type: str) -> str:
    """Fill one of the fixed analysis templates with the project's fields.

    Unknown analysis types fall back to general feedback.
    """
    name = project_data.get("name", "")
    description = project_data.get("description", "")
    stage = project_data.get("stage", "")

    if analysis_type == AnalysisType.MARKET_ANALYSIS.value:
        return f"""Analyze the market potential for this side project:
Name: {name}
Description: {description}
Stage: {stage}

Please provide:
1. Market size estimation
2. Competitor analysis
3. Potential monetization strategies
4. Target audience analysis
5. Growth opportunities"""

    if analysis_type == AnalysisType.PROJECT_PLANNING.value:
        return f"""Create a development roadmap for this side project:
Name: {name}
Description: {description}
Current Stage: {stage}

Please provide:
1. Recommended next steps
2. Technology stack suggestions
3. Timeline estimation
4. Key features to develop
5. Potential challenges and solutions"""

    if analysis_type == AnalysisType.MARKETING_STRATEGY.value:
        return f"""Develop a marketing strategy for this side project:
Name: {name}
Description: {description}
Website: {project_data.get("live_url") or "Not launched yet"}

Please provide:
1. Marketing channel recommendations
2. Content strategy
3. Launch plan suggestions
4. Community building strategies
5. Budget allocation recommendations"""

    return f"""Provide general feedback and suggestions for this side project:
Name: {name}
Description: {description}
Stage: {stage}"""


def build_streak_prompt(streak_data: Dict[str, Any], projects: List[Dict[str, Any]]) -> str:
    current = streak_data.get("current_streak", streak_data.get("currentStreak", 0))
    longest = streak_data.get("longest_streak", streak_data.get("longestStreak", 0))
    return f"""Based on this user's streak data and projects, provide personalized suggestions:
Current streak: {current} days
Longest streak: {longest} days
Active projects: {len(projects)}

Please provide:
1. Productivity tips based on their consistency
2. Project prioritization suggestions
3. Time management recommendations
4. Motivation strategies for maintaining their streak"""


class AIAssistant:
    """Sends analysis prompts to the completion API."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        # AsyncOpenAI is built on first call, inside complete()
        self.client = client
        self.model = model or os.environ.get("OPENAI_MODEL", DEFAULT_MODEL)

    async def complete(self, prompt: str) -> str:
        """Run a single-turn completion and return the text."""
        try:
            if self.client is None:
                self.client = AsyncOpenAI(api_key=os.environ.get("OPENAI_API_KEY"))
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": "You are an experienced indie hacker and product advisor. Give concrete, actionable advice.",
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
        except OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise AIServiceError("Failed to generate analysis") from e

        content = response.choices[0].message.content
        if not content:
            raise AIServiceError("Failed to generate analysis")
        return content.strip()

    async def analyze_project(self, project_data: Dict[str, Any], analysis_type: str) -> str:
        return await self.complete(build_analysis_prompt(project_data, analysis_type))

    async def streak_suggestions(self, streak_data: Dict[str, Any], projects: List[Dict[str, Any]]) -> str:
        return await self.complete(build_streak_prompt(streak_data, projects))
