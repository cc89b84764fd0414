from functools import lru_cache
from typing import Optional, Union

import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel

from schemas import ExtractedJobRequirements
from settings import get_settings

logger = structlog.get_logger(__name__)

# --- Application Info for OpenRouter ---
APP_NAME = "Talent Match"

# --- Model Configuration ---
MODEL_CONFIG = {
    "job_analysis": {
        "temperature": 0.2,
        "top_p": 1,
        "max_tokens": 900,
    },
}
COMMON_OPTS = {"seed": 123}


class AnalyzerUnavailable(RuntimeError):
    """No API key configured for the job description analyzer."""


@lru_cache()
def get_client() -> AsyncOpenAI:
    """OpenAI client pointed at OpenRouter. Built on first use."""
    settings = get_settings()
    if not settings.openrouter_api_key:
        raise AnalyzerUnavailable("OPENROUTER_API_KEY is not configured")

    return AsyncOpenAI(
        base_url="https://openrouter.ai/api/v1",
        api_key=settings.openrouter_api_key,
        default_headers={
            "HTTP-Referer": settings.app_base_url,
            "X-Title": APP_NAME,
        },
    )


async def call_llm(
    system_prompt: str,
    user_prompt: str,
    model_config: dict,
    response_model: Optional[type[BaseModel]] = None,
) -> Union[str, BaseModel]:
    """Call LLM for a specific task."""

    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]

    response = await get_client().chat.completions.parse(
        messages=messages,
        model=get_settings().analyzer_model,
        response_format=response_model,
        **model_config,
        **COMMON_OPTS,
    )
    return response.choices[0].message.parsed


async def call_llm_for_job_analysis(
    jd_text: str,
    title: str,
    location: Optional[str] = None,
    remote_allowed: bool = False,
) -> ExtractedJobRequirements:
    """Extract structured hiring requirements from a job description."""

    system_prompt = """You are an experienced recruiter analyst. Extract structured signals from the job description.

Return JSON with:
- mustHaveSkills: string[]
- niceToHaveSkills: string[]
- roleKeywords: string[]
- yearsExpMin: number | null
- yearsExpMax: number | null
- languages: string[]
- responsibilities: string[]
- redFlags: string[]
- summary: string
- requiredDegreeLevel: string | null (Diploma/Bachelor/Master/PhD)
- preferredDegreeLevels: string[]
- requiredFieldsOfStudy: string[]
- preferredFieldsOfStudy: string[]
- weights: object (skillWeight, experienceWeight, keywordWeight, educationWeight, locationWeight)

Keep arrays concise (max 12 items each)."""

    user_prompt = f"""Job Title: {title}
Location: {location or 'Not specified'}
Remote Allowed: {'Yes' if remote_allowed else 'No'}
Job Description:
{jd_text}"""

    response = await call_llm(
        system_prompt=system_prompt,
        user_prompt=user_prompt,
        model_config=MODEL_CONFIG["job_analysis"],
        response_model=ExtractedJobRequirements,
    )
    logger.info("Job description analyzed", title=title)
    return response
