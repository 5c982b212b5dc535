"""
Pydantic models for LangChain structured output parsing.
"""

from pydantic import BaseModel, Field
from typing import List


class QuizInsightsOutput(BaseModel):
    """Structure for quiz insights JSON output."""
    summary: str = Field(description="Overall performance summary (2-3 sentences)")
    strengths: List[str] = Field(default_factory=list, description="Key strengths (max 3)")
    areas_for_improvement: List[str] = Field(default_factory=list, description="Areas for improvement (max 3)")
    recommendations: List[str] = Field(default_factory=list, description="Specific recommendations (max 3)")

    class Config:
        json_schema_extra = {
            "example": {
                "summary": "Learners handled the recall questions well but struggled with applied scenarios.",
                "strengths": ["High success rate on definitions"],
                "areas_for_improvement": ["Question 3 distractor 'B' attracts most wrong answers"],
                "recommendations": ["Review worked examples before the next module"]
            }
        }
