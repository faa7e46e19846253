# backend/app/services/export.py
import io
import json
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Sequence
from xml.sax.saxutils import escape

from docx import Document as DocxDocument
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, PageBreak

from ..models import Comment, Feedback, Image, Project
from ..models.mixins import utcnow
from ..schemas.comment import Comment as CommentSchema
from ..schemas.feedback import Feedback as FeedbackSchema
from ..utils.logging import service_logger


def _value(member: Any) -> str:
    return getattr(member, "value", member)


def feedback_statistics(feedback: Sequence[Feedback]) -> Dict[str, Any]:
    """Counts of feedback items by category, severity and status"""
    return {
        "total": len(feedback),
        "categories": dict(Counter(_value(f.category) for f in feedback)),
        "severities": dict(Counter(_value(f.severity) for f in feedback)),
        "statuses": dict(Counter(_value(f.status) for f in feedback)),
    }


class ExportService:
    """Renders an image's feedback report as JSON, PDF or DOCX"""

    @staticmethod
    def build_payload(
            image: Image,
            project: Optional[Project],
            feedback: Sequence[Feedback],
            comments_by_feedback: Mapping[int, List[Comment]]
    ) -> Dict[str, Any]:
        items = []
        total_comments = 0
        for item in feedback:
            comments = comments_by_feedback.get(item.id, [])
            total_comments += len(comments)
            data = FeedbackSchema.model_validate(item).model_dump(mode="json")
            data["comments"] = [CommentSchema.model_validate(c).model_dump(mode="json") for c in comments]
            items.append(data)

        stats = feedback_statistics(feedback)
        return {
            "export": {"timestamp": utcnow().isoformat(), "format": "json"},
            "image": {
                "id": image.id,
                "filename": image.original_name,
                "uploaded_at": image.created_at.isoformat() if image.created_at else None,
                "dimensions": {"width": image.width, "height": image.height},
            },
            "project": {
                "id": project.id,
                "name": project.name,
                "description": project.description,
            } if project else None,
            "analysis": image.analysis_result,
            "feedback": items,
            "statistics": {
                "total_feedback": stats["total"],
                "total_comments": total_comments,
                "by_category": stats["categories"],
                "by_severity": stats["severities"],
                "by_status": stats["statuses"],
            },
        }

    @staticmethod
    def render_json(payload: Dict[str, Any]) -> bytes:
        return json.dumps(payload, indent=2, default=str).encode("utf-8")

    @staticmethod
    def render_pdf(payload: Dict[str, Any]) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=72,
            leftMargin=72,
            topMargin=72,
            bottomMargin=72
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            'ReportTitle',
            parent=styles['Heading1'],
            fontSize=20,
            alignment=1,
            spaceAfter=24
        )
        small = ParagraphStyle('Small', parent=styles['Normal'], fontSize=9, textColor=colors.grey)
        indented = ParagraphStyle('Indented', parent=styles['Normal'], leftIndent=20)

        content = [Paragraph("Design Feedback Report", title_style)]
        content.append(Paragraph(f"Image: {escape(payload['image']['filename'])}", styles['Normal']))
        if payload["project"]:
            content.append(Paragraph(f"Project: {escape(payload['project']['name'])}", styles['Normal']))
        content.append(Paragraph(f"Generated: {payload['export']['timestamp'][:10]}", styles['Normal']))
        content.append(Paragraph(f"Total Feedback Items: {len(payload['feedback'])}", styles['Normal']))
        content.append(Spacer(1, 18))

        analysis = payload.get("analysis") or {}
        if analysis.get("summary"):
            content.append(Paragraph("AI Analysis Summary", styles['Heading2']))
            content.append(Paragraph(escape(analysis["summary"]), styles['Normal']))
            content.append(Spacer(1, 12))

        content.append(Paragraph("Feedback Items", styles['Heading2']))
        for index, item in enumerate(payload["feedback"], start=1):
            content.append(Paragraph(f"{index}. {escape(item['title'])}", styles['Heading3']))
            content.append(Paragraph(
                f"Category: {item['category']} | Severity: {item['severity']} | Status: {item['status']}",
                small
            ))
            content.append(Paragraph(escape(item['description']), styles['Normal']))
            coords = item["coordinates"]
            content.append(Paragraph(
                f"Location: ({coords['x']:g}, {coords['y']:g}) {coords['width']:g}x{coords['height']:g}",
                small
            ))

            if item["recommendations"]:
                content.append(Paragraph("Recommendations:", styles['Normal']))
                for rec in item["recommendations"]:
                    content.append(Paragraph(f"&bull; {escape(rec)}", indented))

            if item["comments"]:
                content.append(Paragraph("Comments:", styles['Normal']))
                for comment in item["comments"]:
                    content.append(Paragraph(
                        f"&bull; {escape(comment['author']['name'])}: {escape(comment['content'])}",
                        indented
                    ))
            content.append(Spacer(1, 12))

        stats = payload["statistics"]
        content.append(PageBreak())
        content.append(Paragraph("Statistics", styles['Heading2']))
        for heading, key in (("By Category", "by_category"), ("By Severity", "by_severity"), ("By Status", "by_status")):
            content.append(Paragraph(heading, styles['Heading3']))
            for name, count in stats[key].items():
                content.append(Paragraph(f"{escape(str(name))}: {count}", indented))

        doc.build(content)
        return buffer.getvalue()

    @staticmethod
    def render_docx(payload: Dict[str, Any]) -> bytes:
        doc = DocxDocument()
        doc.add_heading("Design Feedback Report", 0)
        doc.add_paragraph(f"Image: {payload['image']['filename']}")
        if payload["project"]:
            doc.add_paragraph(f"Project: {payload['project']['name']}")
        doc.add_paragraph(f"Total Feedback Items: {len(payload['feedback'])}")

        analysis = payload.get("analysis") or {}
        if analysis.get("summary"):
            doc.add_heading("AI Analysis Summary", level=1)
            doc.add_paragraph(analysis["summary"])

        doc.add_heading("Feedback Items", level=1)
        for index, item in enumerate(payload["feedback"], start=1):
            doc.add_heading(f"{index}. {item['title']}", level=2)
            doc.add_paragraph(
                f"Category: {item['category']} | Severity: {item['severity']} | Status: {item['status']}"
            )
            doc.add_paragraph(item["description"])
            for rec in item["recommendations"]:
                doc.add_paragraph(rec, style="List Bullet")
            for comment in item["comments"]:
                doc.add_paragraph(f"{comment['author']['name']}: {comment['content']}", style="List Bullet")

        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()

    def render(self, payload: Dict[str, Any], format: str) -> bytes:
        payload["export"]["format"] = format
        service_logger.info("Rendering feedback export", extra={
            "image_id": payload["image"]["id"],
            "format": format,
            "feedback_count": len(payload["feedback"])
        })
        if format == "pdf":
            return self.render_pdf(payload)
        if format == "docx":
            return self.render_docx(payload)
        return self.render_json(payload)


export_service = ExportService()
