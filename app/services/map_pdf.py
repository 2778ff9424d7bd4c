import io
import logging
import re
from typing import List

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from reportlab.lib.colors import HexColor
from reportlab.lib.utils import simpleSplit
from reportlab.graphics import renderPDF
from svglib.svglib import svg2rlg

from app.models.enums import CATEGORY_LABELS, SEVERITY_LABELS
from app.schemas.risk import RiskOut
from app.schemas.risk_map import RiskMapDetail
from app.services.generation_service import extract_diagram_elements
from app.services.layout import DEFAULT_COLOR

logger = logging.getLogger(__name__)

FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
MARGIN = 50
NEUTRAL_GRAY = "#999999"

# PDF/래스터 백엔드가 지원하지 않는 CSS 색 함수
UNSUPPORTED_COLOR_PATTERN = re.compile(
    r"\b(?:oklch|oklab|lch|lab|color-mix|color)\((?:[^()]|\([^()]*\))*\)", re.IGNORECASE
)


def sanitize_diagram_for_export(svg: str) -> str:
    """내보내기 전에 지원하지 않는 색 표기(oklch(...) 등)를 회색으로 치환"""
    return UNSUPPORTED_COLOR_PATTERN.sub(NEUTRAL_GRAY, svg or "")


def _safe_color(value: str) -> HexColor:
    try:
        return HexColor(value)
    except (ValueError, TypeError):
        return HexColor(DEFAULT_COLOR)


def _draw_footer(c, page_number: int, title: str) -> None:
    c.setFont(FONT, 9)
    c.setFillColorRGB(0.5, 0.5, 0.5)
    c.drawCentredString(A4[0] / 2, 30, f"{title} - Page {page_number}")
    c.setFillColorRGB(0, 0, 0)


def load_diagram_drawing(svg: str):
    """정리된 SVG를 reportlab Drawing으로 변환. 읽을 수 없으면 None"""
    if not svg or not svg.strip():
        return None
    drawing = svg2rlg(io.BytesIO(sanitize_diagram_for_export(svg).encode("utf-8")))
    if drawing is None or not drawing.width or not drawing.height:
        logger.warning("평면도 SVG를 읽지 못해 마커만 내보냅니다")
        return None
    return drawing


def _draw_diagram(c, drawing, left: float, bottom: float, frame_w: float, frame_h: float) -> None:
    c.saveState()
    c.translate(left, bottom)
    c.scale(frame_w / drawing.width, frame_h / drawing.height)
    renderPDF.draw(drawing, c, 0, 0)
    c.restoreState()


def _draw_canvas(c, detail: RiskMapDetail, top: float, bottom: float) -> None:
    """캔버스 비율을 유지한 채 평면도와 마커를 페이지에 축소해서 그림"""
    risk_map = detail.map
    avail_w = A4[0] - MARGIN * 2
    avail_h = top - bottom
    scale = min(avail_w / risk_map.width, avail_h / risk_map.height)
    frame_w = risk_map.width * scale
    frame_h = risk_map.height * scale
    left = (A4[0] - frame_w) / 2
    frame_top = top

    drawing = load_diagram_drawing(risk_map.diagram)
    if drawing is not None:
        _draw_diagram(c, drawing, left, frame_top - frame_h, frame_w, frame_h)

    c.setStrokeColorRGB(0.2, 0.2, 0.2)
    c.rect(left, frame_top - frame_h, frame_w, frame_h, stroke=1, fill=0)

    for risk in detail.risks:
        # 캔버스 좌표는 좌상단 원점, PDF는 좌하단 원점
        cx = left + risk.x * scale
        cy = frame_top - risk.y * scale
        c.saveState()
        c.setFillColor(_safe_color(risk.color))
        c.setFillAlpha(0.6)
        c.circle(cx, cy, max(risk.radius * scale, 2), stroke=0, fill=1)
        c.restoreState()
        c.setFont(FONT, 7)
        c.drawCentredString(cx, cy - 2, risk.label[:24])


def _legend_lines(risk: RiskOut) -> List[str]:
    header = (
        f"{risk.label}  |  {CATEGORY_LABELS.get(risk.category, risk.category)}"
        f"  |  {SEVERITY_LABELS.get(risk.severity, risk.severity)}"
    )
    lines = [header]
    if risk.description:
        lines.extend(simpleSplit(risk.description, FONT, 10, A4[0] - MARGIN * 2 - 30))
    return lines


def render_map_pdf(detail: RiskMapDetail, footer_title: str = "Risk Map") -> bytes:
    """
    맵 PDF 생성: 1페이지 제목/날짜/설명/마커 배치도, 2페이지 위험요소 범례
    """
    risk_map = detail.map
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    page_num = 1
    y = A4[1] - 60

    _draw_footer(c, page_num, footer_title)

    c.setFont(BOLD_FONT, 18)
    c.drawString(MARGIN, y, risk_map.title)
    y -= 22

    c.setFont(FONT, 10)
    c.setFillColorRGB(0.4, 0.4, 0.4)
    c.drawString(MARGIN, y, f"Date: {risk_map.created_at.strftime('%Y-%m-%d')}")
    c.setFillColorRGB(0, 0, 0)
    y -= 18

    for line in simpleSplit(risk_map.description, FONT, 10, A4[0] - MARGIN * 2)[:8]:
        c.drawString(MARGIN, y, line)
        y -= 14
    y -= 10

    elements = extract_diagram_elements(sanitize_diagram_for_export(risk_map.diagram))
    caption_y = 70
    _draw_canvas(c, detail, top=y, bottom=caption_y + 20)
    if elements:
        c.setFont(FONT, 8)
        caption = "Areas: " + ", ".join(elements)
        c.drawString(MARGIN, caption_y, simpleSplit(caption, FONT, 8, A4[0] - MARGIN * 2)[0])

    if detail.risks:
        c.showPage()
        page_num += 1
        _draw_footer(c, page_num, footer_title)
        y = A4[1] - 60

        c.setFont(BOLD_FONT, 14)
        c.drawString(MARGIN, y, "Risk Legend")
        y -= 24

        for risk in detail.risks:
            lines = _legend_lines(risk)
            if y - len(lines) * 14 < 60:
                c.showPage()
                page_num += 1
                _draw_footer(c, page_num, footer_title)
                y = A4[1] - 60

            c.setFillColor(_safe_color(risk.color))
            c.circle(MARGIN + 6, y + 3, 5, stroke=0, fill=1)
            c.setFillColorRGB(0, 0, 0)

            c.setFont(BOLD_FONT, 11)
            c.drawString(MARGIN + 20, y, lines[0])
            y -= 14
            c.setFont(FONT, 10)
            for line in lines[1:]:
                c.drawString(MARGIN + 20, y, line)
                y -= 13
            y -= 8

    c.save()
    logger.info(f"맵 PDF 생성 완료: map_id={risk_map.id}, {page_num} page(s)")
    return buffer.getvalue()
