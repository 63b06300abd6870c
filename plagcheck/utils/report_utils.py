import io
from datetime import datetime
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from plagcheck.schemas.plagiarism_schemas import PlagiarismReport
from plagcheck.services.aggregator import format_percentage
from plagcheck.utils.text_utils import sanitize_input

REPORT_TITLE = "Plagiarism Check Report"


def _text(value: str) -> str:
    # Paragraph parses a small XML dialect; user text must not be read as markup.
    return escape(sanitize_input(value)).replace("\n", "<br/>")


def generate_pdf_report(report: PlagiarismReport, generated_at: Optional[datetime] = None) -> bytes:
    """Render a report as PDF: summary, matched sections, then the original text."""
    generated_at = generated_at or datetime.now()
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=REPORT_TITLE,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontName="Times-Roman",
        fontSize=16,
        alignment=1,
    )
    centered = ParagraphStyle("Centered", parent=styles["Normal"], fontName="Times-Roman", alignment=1)
    body = ParagraphStyle("Body", parent=styles["Normal"], fontName="Times-Roman", fontSize=12, leading=15)
    quote = ParagraphStyle("Quote", parent=body, fontName="Times-Italic")
    original = ParagraphStyle("Original", parent=body, fontSize=10, leading=13, spaceAfter=5)

    story = [
        Paragraph(REPORT_TITLE, title_style),
        Paragraph(f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}", centered),
        Spacer(1, 0.25 * inch),
        Paragraph("Summary", styles["Heading2"]),
        Paragraph(f"Plagiarism Percentage: {format_percentage(report.plagiarismPercentage)}", body),
        Spacer(1, 0.2 * inch),
    ]

    if report.results:
        story.append(Paragraph("Matched Sections", styles["Heading2"]))
        for i, match in enumerate(report.results, 1):
            story.append(Paragraph(f"Text {i} (Similarity: {match.similarity * 100:.2f}%):", body))
            story.append(Paragraph(f"\"{_text(match.chunk)}\"", quote))
            story.append(Paragraph(f"Source: {_text(match.source)}", body))
            story.append(Spacer(1, 0.15 * inch))
    else:
        story.append(Paragraph("No plagiarism detected.", body))

    story.append(Spacer(1, 0.2 * inch))
    story.append(Paragraph("Original Text", styles["Heading2"]))
    story.append(Paragraph(_text(report.text), original))

    doc.build(story)
    return buffer.getvalue()
