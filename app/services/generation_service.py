import json
import logging
import re
from typing import List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from app.core.config import Settings
from app.core.exceptions import GenerationFormatError, GenerationUnavailable, Phase
from app.models.enums import RiskCategory, Severity
from app.schemas.generation import DiagramResult, HazardList, IdentifiedHazard

logger = logging.getLogger(__name__)

DIAGRAM_WIDTH = 1000
DIAGRAM_HEIGHT = 800

SVG_PATTERN = re.compile(r"<svg[^>]*>[\s\S]*?</svg>")
TEXT_LABEL_PATTERN = re.compile(r"<text[^>]*>([^<]+)</text>")

DIAGRAM_SYSTEM_PROMPT = f"""You are an expert in creating floor plans from textual descriptions.
Your task is to generate a clean, minimalist SVG floor plan based on the user's description of a workspace.

IMPORTANT RULES:
1. Return ONLY valid SVG code wrapped in svg tags
2. Use viewBox="0 0 {DIAGRAM_WIDTH} {DIAGRAM_HEIGHT}" for consistency
3. Use simple shapes: rectangles for rooms/walls, circles for furniture, lines for corridors
4. Use stroke="#333" and fill="none" for walls
5. Use stroke="#999" and fill="none" for internal elements
6. Add text labels for key areas (e.g., "Server room", "Corridor", "Workstations")
7. Make the layout clear and easy to understand
8. Do NOT include any text outside the SVG tags
9. The SVG should represent a top-down view of the space"""

DIAGRAM_USER_PROMPT = """Create an SVG floor plan for this workspace description:

{description}

Generate a clean, minimalist floor plan that accurately represents the layout described. Use rectangles for desks/workstations, circles for equipment, and lines for corridors or pathways."""

HAZARD_SYSTEM_PROMPT = """You are an occupational health and safety expert specializing in risk assessment.
Analyze workspace descriptions and identify potential occupational risks.

Risk categories to consider:
- accidental: Accidental hazards (falls, collisions, slips)
- chemical: Chemical hazards (toxic substances, fumes)
- ergonomic: Ergonomic hazards (poor posture, repetitive strain)
- physical: Physical hazards (noise, vibration, radiation)
- biological: Biological hazards (pathogens, contamination)

Severity levels:
- low: Minor risk, unlikely to cause serious harm
- medium: Moderate risk, could cause temporary harm
- high: Significant risk, could cause serious harm
- critical: Severe risk, could cause permanent damage or death

Return a JSON object with a "hazards" array of identified risks."""

HAZARD_USER_PROMPT = """Analyze this workspace description and identify occupational risks:

{description}

Return a JSON object {{"hazards": [...]}} whose items contain: category (one of: accidental, chemical, ergonomic, physical, biological), severity (low/medium/high/critical), label (short name), description (detailed explanation), and suggested_count (estimated number of risk points for this category)."""

# OpenAI structured output 스키마 (strict 모드는 최상위가 object 여야 함)
HAZARD_RESPONSE_FORMAT = {
    "type": "json_schema",
    "json_schema": {
        "name": "hazard_list",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "hazards": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "category": {"type": "string", "enum": [c.value for c in RiskCategory]},
                            "severity": {"type": "string", "enum": [s.value for s in Severity]},
                            "label": {"type": "string"},
                            "description": {"type": "string"},
                            "suggested_count": {"type": "integer", "minimum": 1, "maximum": 10},
                        },
                        "required": ["category", "severity", "label", "description", "suggested_count"],
                        "additionalProperties": False,
                    },
                },
            },
            "required": ["hazards"],
            "additionalProperties": False,
        },
    },
}


def build_chat_model(settings: Settings) -> Optional[BaseChatModel]:
    """API 키가 없으면 None (AI 엔드포인트는 GenerationUnavailable로 실패)"""
    if not settings.llm_configured:
        logger.warning("OPENAI_API_KEY is not set; generation endpoints are disabled")
        return None
    return ChatOpenAI(
        model=settings.openai_model,
        temperature=settings.openai_temperature,
        api_key=settings.openai_api_key,
    )


def extract_svg(content: str) -> Optional[str]:
    match = SVG_PATTERN.search(content or "")
    return match.group(0) if match else None


def extract_diagram_elements(svg: str) -> List[str]:
    """SVG의 <text> 라벨 목록 (위치 힌트용)"""
    return [label.strip() for label in TEXT_LABEL_PATTERN.findall(svg) if label.strip()]


def _message_text(response) -> str:
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, str):
        return content
    # 멀티파트 응답은 text 파트만 이어붙임
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        return "".join(parts)
    return ""


class GenerationService:
    """
    외부 텍스트 생성 모델(LLM) 경계.
    두 호출 모두 동기 요청/응답이며 자동 재시도하지 않습니다.
    """

    def __init__(self, llm: Optional[BaseChatModel]):
        self.llm = llm

    def _invoke(self, messages, phase: Phase, **kwargs) -> str:
        if self.llm is None:
            raise GenerationUnavailable("Generation service is not configured", phase=phase)
        try:
            runnable = self.llm.bind(**kwargs) if kwargs else self.llm
            response = runnable.invoke(messages)
        except Exception as e:
            logger.error(f"LLM 호출 실패 ({phase.value}): {e}")
            raise GenerationUnavailable(f"Generation service call failed: {e}", phase=phase) from e
        return _message_text(response)

    def generate_diagram(self, description: str) -> DiagramResult:
        messages = [
            SystemMessage(content=DIAGRAM_SYSTEM_PROMPT),
            HumanMessage(content=DIAGRAM_USER_PROMPT.format(description=description)),
        ]
        content = self._invoke(messages, Phase.DIAGRAM_GENERATION)

        svg = extract_svg(content)
        if not svg:
            raise GenerationFormatError(
                "Failed to generate valid SVG floor plan", phase=Phase.DIAGRAM_GENERATION
            )

        return DiagramResult(
            diagram=svg,
            width=DIAGRAM_WIDTH,
            height=DIAGRAM_HEIGHT,
            elements=extract_diagram_elements(svg),
        )

    def identify_hazards(self, description: str) -> List[IdentifiedHazard]:
        messages = [
            SystemMessage(content=HAZARD_SYSTEM_PROMPT),
            HumanMessage(content=HAZARD_USER_PROMPT.format(description=description)),
        ]
        content = self._invoke(
            messages, Phase.HAZARD_IDENTIFICATION, response_format=HAZARD_RESPONSE_FORMAT
        )

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise GenerationFormatError(
                f"Hazard list is not valid JSON: {e}", phase=Phase.HAZARD_IDENTIFICATION
            ) from e

        try:
            return HazardList.model_validate(payload).hazards
        except ValidationError as e:
            raise GenerationFormatError(
                f"Hazard list failed schema validation: {e.error_count()} error(s)",
                phase=Phase.HAZARD_IDENTIFICATION,
            ) from e
