"""PDF report generation using ReportLab."""

import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle
)
from reportlab.lib.enums import TA_CENTER

import config
from tracking.analytics import timeline_to_segments, generate_summary_text
from tracking.session import FocusSession

logger = logging.getLogger(__name__)

MAX_TABLE_ROWS = 8


def _styles() -> Dict[str, ParagraphStyle]:
    styles = getSampleStyleSheet()
    return {
        "normal": styles['Normal'],
        "title": ParagraphStyle(
            'CustomTitle',
            parent=styles['Heading1'],
            fontSize=24,
            textColor=colors.HexColor('#2C3E50'),
            spaceAfter=30,
            alignment=TA_CENTER
        ),
        "heading": ParagraphStyle(
            'CustomHeading',
            parent=styles['Heading2'],
            fontSize=16,
            textColor=colors.HexColor('#34495E'),
            spaceAfter=12,
            spaceBefore=12
        ),
        "footer": ParagraphStyle(
            'Footer',
            parent=styles['Normal'],
            fontSize=9,
            textColor=colors.grey,
            alignment=TA_CENTER
        ),
    }


def _table(rows: List[List[str]], col_widths: List[float], header_color: str, body_color: str) -> Table:
    """Two-tone table with a bold coloured header row."""
    table = Table(rows, colWidths=col_widths)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(header_color)),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 12),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('BACKGROUND', (0, 1), (-1, -1), colors.HexColor(body_color)),
        ('GRID', (0, 0), (-1, -1), 1, colors.HexColor('#BDC3C7')),
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 1), (-1, -1), 11),
        ('TOPPADDING', (0, 1), (-1, -1), 8),
        ('BOTTOMPADDING', (0, 1), (-1, -1), 8),
    ]))
    return table


def _format_clock(total_seconds: float) -> str:
    s = max(0, int(round(total_seconds)))
    return f"{s // 60}:{s % 60:02d}"


def _build(filepath: Path, story: List[Any]) -> Path:
    doc = SimpleDocTemplate(
        str(filepath),
        pagesize=letter,
        rightMargin=72,
        leftMargin=72,
        topMargin=72,
        bottomMargin=72
    )
    try:
        doc.build(story)
        logger.info(f"PDF report generated: {filepath}")
        return filepath
    except Exception as e:
        logger.error(f"Error generating PDF: {e}")
        raise


def generate_session_report(
    session: FocusSession,
    insight: Optional[Dict[str, Any]] = None,
    output_dir: Optional[Path] = None
) -> Path:
    """
    Generate a PDF report for a completed focus session.
    
    Args:
        session: Completed session
        insight: Result of SessionInsightGenerator.generate_insight()
        output_dir: Output directory (defaults to config.REPORTS_DIR)
    
    Returns:
        Path to the generated PDF file
    """
    output_dir = Path(output_dir or config.REPORTS_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    filepath = output_dir / f"session_{session.id or 'local'}.pdf"
    
    styles = _styles()
    story = []
    
    story.append(Paragraph("Focus Session Report", styles["title"]))
    story.append(Spacer(1, 0.2 * inch))
    
    date_str = session.start_time.strftime("%B %d, %Y")
    time_str = session.start_time.strftime("%I:%M %p")
    metadata = f"<b>Session Date:</b> {date_str}<br/><b>Start Time:</b> {time_str}"
    if session.goal:
        metadata += f"<br/><b>Goal:</b> {escape(session.goal)}"
    if session.tags:
        metadata += f"<br/><b>Tags:</b> {escape(', '.join(session.tags))}"
    story.append(Paragraph(metadata, styles["normal"]))
    story.append(Spacer(1, 0.3 * inch))
    
    # Statistics section
    story.append(Paragraph("Session Statistics", styles["heading"]))
    stats_data = [
        ['Metric', 'Value'],
        ['Planned Duration', f"{session.target_duration / 60:.1f} minutes"],
        ['Actual Duration', f"{session.duration / 60:.1f} minutes"],
        ['Focus Score', f"{session.focus_percentage:.1f}%"],
        ['Distractions', str(session.distraction_count)],
        ['Camera Tracking', "On" if session.camera_enabled else "Off"],
    ]
    story.append(_table(stats_data, [3 * inch, 2.5 * inch], '#3498DB', '#ECF0F1'))
    story.append(Spacer(1, 0.3 * inch))
    
    # Timeline section
    story.append(Paragraph("Focus Timeline", styles["heading"]))
    segments, _ = timeline_to_segments(session.timeline)
    if segments:
        timeline_data = [['Time', 'State', 'Duration']]
        for segment in segments[:MAX_TABLE_ROWS]:
            end = segment["time"] + segment["duration"]
            timeline_data.append([
                f"{_format_clock(segment['time'])} - {_format_clock(end)}",
                "Focused" if segment["focused"] else "Distracted",
                f"{segment['duration'] / 60:.1f} min"
            ])
        if len(segments) > MAX_TABLE_ROWS:
            timeline_data.append(['...', f'{len(segments) - MAX_TABLE_ROWS} more segments', '...'])
        story.append(_table(timeline_data, [2.2 * inch, 2 * inch, 1.3 * inch], '#2ECC71', '#E8F8F5'))
    else:
        story.append(Paragraph("No timeline recorded.", styles["normal"]))
    story.append(Spacer(1, 0.3 * inch))
    
    # Distractions section
    if session.distractions:
        story.append(Paragraph("Distractions", styles["heading"]))
        distraction_data = [['Time', 'Type', 'Severity']]
        for event in session.distractions[:MAX_TABLE_ROWS]:
            distraction_data.append([
                event.timestamp.strftime("%I:%M %p"),
                event.type.capitalize(),
                str(event.severity)
            ])
        if len(session.distractions) > MAX_TABLE_ROWS:
            distraction_data.append(['...', f'{len(session.distractions) - MAX_TABLE_ROWS} more', '...'])
        story.append(_table(distraction_data, [2.2 * inch, 2 * inch, 1.3 * inch], '#E67E22', '#FDF2E9'))
        story.append(Spacer(1, 0.3 * inch))
    
    # Insight section
    story.append(Paragraph("Coaching Insight", styles["heading"]))
    if insight and insight.get("insight"):
        story.append(Paragraph(escape(insight["insight"]), styles["normal"]))
    else:
        summary = escape(generate_summary_text(session)).replace("\n", "<br/>")
        story.append(Paragraph(summary, styles["normal"]))
    
    story.append(Spacer(1, 0.5 * inch))
    story.append(Paragraph("Generated by FocusFlow | Keep up the great work!", styles["footer"]))
    
    return _build(filepath, story)


def generate_weekly_report_pdf(
    report: Dict[str, Any],
    user_id: str,
    output_dir: Optional[Path] = None
) -> Path:
    """
    Generate a PDF from a weekly report.
    
    Args:
        report: Output of weekly_report.build_weekly_report()
        user_id: Report owner, used in the filename
        output_dir: Output directory (defaults to config.REPORTS_DIR)
    
    Returns:
        Path to the generated PDF file
    """
    output_dir = Path(output_dir or config.REPORTS_DIR)
    output_dir.mkdir(parents=True, exist_ok=True)
    
    end_date = report["period"]["end"][:10]
    filepath = output_dir / f"weekly_{user_id}_{end_date}.pdf"
    
    styles = _styles()
    story = []
    
    story.append(Paragraph("Weekly Focus Report", styles["title"]))
    period = report["period"]
    story.append(Paragraph(
        f"<b>Period:</b> {period['start'][:10]} to {period['end'][:10]}",
        styles["normal"]
    ))
    story.append(Spacer(1, 0.3 * inch))
    
    summary = report["summary"]
    story.append(Paragraph("Summary", styles["heading"]))
    summary_data = [
        ['Metric', 'Value'],
        ['Sessions', str(summary["total_sessions"])],
        ['Focus Time', f"{summary['total_minutes']} minutes"],
        ['Average Focus', f"{summary['average_focus']}%"],
        ['Completion Rate', f"{summary['completion_rate']}%"],
    ]
    story.append(_table(summary_data, [3 * inch, 2.5 * inch], '#3498DB', '#ECF0F1'))
    story.append(Spacer(1, 0.3 * inch))
    
    improvements = report["improvements"]
    highlights = report["highlights"]
    story.append(Paragraph("Progress and Highlights", styles["heading"]))
    highlight_data = [
        ['Metric', 'Value'],
        ['Focus Change', f"{improvements['focus_change']:+d} points vs last week"],
        ['Trend', improvements["productivity_trend"].capitalize()],
        ['Best Day', highlights["best_day"] or "-"],
        ['Longest Session', f"{highlights['longest_session']:.1f} minutes"],
        ['Most Productive Time', highlights["most_productive_time"] or "-"],
    ]
    story.append(_table(highlight_data, [3 * inch, 2.5 * inch], '#2ECC71', '#E8F8F5'))
    story.append(Spacer(1, 0.3 * inch))
    
    story.append(Paragraph("Recommendations", styles["heading"]))
    for i, recommendation in enumerate(report["recommendations"], 1):
        story.append(Paragraph(f"<b>{i}.</b> {escape(recommendation)}", styles["normal"]))
        story.append(Spacer(1, 0.1 * inch))
    
    story.append(Spacer(1, 0.5 * inch))
    story.append(Paragraph("Generated by FocusFlow", styles["footer"]))
    
    return _build(filepath, story)
