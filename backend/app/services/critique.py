# backend/app/services/critique.py
import base64
import json
import re
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from ..config import settings
from ..errors import ExternalAdapterError
from ..utils.logging import ai_logger

REQUIRED_FINDING_FIELDS = ('x', 'y', 'category', 'severity', 'title', 'description')

ROLE_GUIDANCE: Dict[str, str] = {
    'designer': (
        "- Focus on technical design principles, typography, spacing, and professional best practices\n"
        "- Identify areas for improvement in visual hierarchy and user experience\n"
        "- Suggest specific design solutions and alternatives"
    ),
    'developer': (
        "- Focus on implementation concerns: component consistency, states, responsive behaviour\n"
        "- Flag accessibility issues that need code changes (contrast, focus order, semantics)\n"
        "- Point out ambiguous specs such as unclear spacing or missing interaction states"
    ),
    'pm': (
        "- Focus on message clarity, user goals, and business objectives\n"
        "- Assess whether the design meets project requirements and target audience needs\n"
        "- Provide feedback in business-friendly language"
    ),
    'reviewer': (
        "- Evaluate overall impact, accessibility, and user experience\n"
        "- Consider consistency with common UX patterns\n"
        "- Focus on high-level observations and suggestions"
    ),
}

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class Finding(BaseModel):
    x: float
    y: float
    width: Optional[float] = None
    height: Optional[float] = None
    category: str
    severity: str
    title: str
    description: str
    suggestion: Optional[str] = None
    target_role: Optional[str] = None


class CritiqueResult(BaseModel):
    success: bool
    findings: List[Finding] = Field(default_factory=list)
    overall_score: Optional[float] = None
    summary: Optional[str] = None
    error: Optional[str] = None
    raw: Optional[Dict[str, Any]] = None
    model: Optional[str] = None


def build_prompt(role: str = 'designer', focus_areas: Optional[List[str]] = None,
                 project_type: str = 'general') -> str:
    """Render the analysis prompt for the given reviewer role"""
    guidance = ROLE_GUIDANCE.get((role or '').lower(), ROLE_GUIDANCE['designer'])
    focus = f"Special attention to: {', '.join(focus_areas)}\n" if focus_areas else ""

    return f"""You are an expert design critic analyzing a {project_type} design.
Provide coordinate-anchored feedback in the following JSON format:

{{
  "overallAnalysis": {{
    "summary": "Brief overall assessment",
    "score": 85,
    "strengths": ["list", "of", "strengths"],
    "improvements": ["list", "of", "improvements"]
  }},
  "coordinateFeedback": [
    {{
      "x": 150,
      "y": 200,
      "width": 100,
      "height": 50,
      "category": "layout|typography|color|spacing|accessibility|branding|usability|navigation",
      "severity": "high|medium|low",
      "title": "Issue or suggestion title",
      "description": "Detailed explanation",
      "suggestion": "Specific improvement suggestion",
      "targetRole": "designer|developer|pm|reviewer|all"
    }}
  ]
}}

Analysis focus for {role} role:
{guidance}

{focus}Provide specific pixel coordinates for each feedback point. Be precise and actionable.
Return only valid JSON without any markdown formatting or code blocks."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_critique_response(text: str) -> Dict[str, Any]:
    """Decode and validate the model's JSON answer. Raises ExternalAdapterError."""
    clean = _FENCE_RE.sub('', (text or '').strip())
    try:
        analysis = json.loads(clean)
    except json.JSONDecodeError as e:
        raise ExternalAdapterError("Failed to parse AI response", details=str(e))

    if not isinstance(analysis, dict) or not isinstance(analysis.get('overallAnalysis'), dict):
        raise ExternalAdapterError("Missing overallAnalysis in response")

    items = analysis.get('coordinateFeedback')
    if not isinstance(items, list):
        raise ExternalAdapterError("coordinateFeedback must be an array")

    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ExternalAdapterError(f"Feedback item {index} is not an object")
        for field in REQUIRED_FINDING_FIELDS:
            if field not in item:
                raise ExternalAdapterError(f"Missing {field} in feedback item {index}")
        if not _is_number(item['x']) or not _is_number(item['y']):
            raise ExternalAdapterError(f"Invalid coordinates in feedback item {index}")

    return analysis


def to_result(analysis: Dict[str, Any], model: Optional[str] = None) -> CritiqueResult:
    overall = analysis['overallAnalysis']
    findings = []
    for item in analysis['coordinateFeedback']:
        findings.append(Finding(
            x=item['x'],
            y=item['y'],
            width=item['width'] if _is_number(item.get('width')) else None,
            height=item['height'] if _is_number(item.get('height')) else None,
            category=str(item['category']),
            severity=str(item['severity']),
            title=str(item['title']),
            description=str(item['description']),
            suggestion=str(item['suggestion']) if item.get('suggestion') else None,
            target_role=str(item.get('targetRole') or item.get('target_role') or '') or None,
        ))

    score = overall.get('score')
    return CritiqueResult(
        success=True,
        findings=findings,
        overall_score=score if _is_number(score) else None,
        summary=overall.get('summary'),
        raw=analysis,
        model=model,
    )


def fallback_result(error: str, model: Optional[str] = None) -> CritiqueResult:
    return CritiqueResult(
        success=False,
        findings=[],
        overall_score=None,
        summary="Analysis failed due to technical issues. Please try again.",
        error=error,
        model=model,
    )


class CritiqueService:
    """Gemini-backed design critique. `analyze` never raises."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.model = model
        self.transport = transport

    @property
    def model_name(self) -> str:
        return self.model or settings.GEMINI_MODEL

    def _endpoint(self) -> str:
        return f"{settings.GEMINI_API_URL.rstrip('/')}/{self.model_name}:generateContent"

    async def _generate(self, prompt: str, image_bytes: bytes, mime_type: str, api_key: str) -> str:
        body = {
            "contents": [{
                "role": "user",
                "parts": [
                    {"text": prompt},
                    {"inline_data": {
                        "mime_type": mime_type,
                        "data": base64.b64encode(image_bytes).decode("ascii"),
                    }},
                ],
            }],
            "generationConfig": {"temperature": 0.2},
        }

        async with httpx.AsyncClient(transport=self.transport, timeout=settings.GEMINI_TIMEOUT_SECONDS) as client:
            response = await client.post(
                self._endpoint(),
                headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
                json=body,
            )

        if response.status_code >= 400:
            raise ExternalAdapterError(
                f"Gemini error ({response.status_code})",
                details=response.text[:300]
            )

        data = response.json()
        candidates = data.get("candidates") if isinstance(data.get("candidates"), list) else []
        if not candidates:
            raise ExternalAdapterError("Gemini returned no candidates")

        content = candidates[0].get("content") if isinstance(candidates[0], dict) else {}
        parts = content.get("parts") if isinstance(content, dict) else []
        texts = [str(part.get("text") or "") for part in parts if isinstance(part, dict)]
        return "\n".join(chunk for chunk in texts if chunk).strip()

    async def analyze(self, image_bytes: bytes, mime_type: str, options: Optional[Dict[str, Any]] = None) -> CritiqueResult:
        options = options or {}
        start_time = time.perf_counter()
        ai_logger.info("Starting design critique", extra={
            "model": self.model_name,
            "image_bytes": len(image_bytes),
            "mime_type": mime_type,
            "role": options.get("role"),
        })

        api_key = self.api_key or settings.GEMINI_API_KEY
        if not api_key:
            ai_logger.error("GEMINI_API_KEY is not configured")
            return fallback_result("GEMINI_API_KEY is not configured", self.model_name)

        prompt = build_prompt(
            role=options.get("role") or "designer",
            focus_areas=options.get("focus_areas") or [],
            project_type=options.get("project_type") or "general",
        )

        try:
            text = await self._generate(prompt, image_bytes, mime_type, api_key)
            result = to_result(parse_critique_response(text), self.model_name)
        except ExternalAdapterError as e:
            ai_logger.error("Design critique failed", extra={
                "error": e.message,
                "details": e.details
            })
            return fallback_result(e.message, self.model_name)
        except httpx.HTTPError as e:
            ai_logger.error("Gemini request failed", extra={
                "error_type": type(e).__name__,
                "error": str(e)
            })
            return fallback_result(f"Gemini request failed: {e}", self.model_name)
        except ValueError as e:
            # Non-JSON HTTP body or finding values pydantic rejects
            ai_logger.error("Unusable Gemini response", extra={"error": str(e)})
            return fallback_result("Failed to parse AI response", self.model_name)

        ai_logger.info("Design critique completed", extra={
            "finding_count": len(result.findings),
            "overall_score": result.overall_score,
            "processing_time_ms": round((time.perf_counter() - start_time) * 1000, 2)
        })
        return result


critique_service = CritiqueService()
