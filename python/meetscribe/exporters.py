from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .models import MeetingAnalysis, Transcript

NO_CONCEPTS = "*No specific technical concepts were identified.*"
NO_ACTION_ITEMS = "*No specific tasks were identified.*"


def output_paths(source: Path, output_dir: Path | None = None) -> dict[str, Path]:
    directory = output_dir or source.parent
    stem = source.stem
    return {
        "json": directory / f"{stem}_analysis.json",
        "markdown": directory / f"{stem}_analysis.md",
        "transcript": directory / f"{stem}_transcript.txt",
        "docx": directory / f"{stem}_analysis.docx",
    }


def export_json(analysis: MeetingAnalysis, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(analysis.to_dict(), ensure_ascii=False, indent=2) + "\n",
        encoding="utf-8",
    )


def _markdown_lines(analysis: MeetingAnalysis) -> list[str]:
    lines = ["# Meeting Analysis", "", "## Summary", "", analysis.summary, ""]

    lines += ["## Key Points", ""]
    lines += [f"- {point}" for point in analysis.key_points]
    lines.append("")

    lines += ["## Technical Concepts Discussed", ""]
    if not analysis.technical_concepts:
        lines += [NO_CONCEPTS, ""]
    for concept in analysis.technical_concepts:
        lines += [f"### {concept.term}", "", f"**Context:** {concept.context}", ""]
        if concept.mentioned_technologies:
            lines.append("**Related technologies:**")
            lines += [f"- {tech}" for tech in concept.mentioned_technologies]
            lines.append("")

    lines += ["## Tasks and Action Items", ""]
    if not analysis.action_items:
        lines += [NO_ACTION_ITEMS, ""]
    for item in analysis.action_items:
        lines += [
            f"### {item.title}",
            "",
            f"- **Owner:** {item.owner}",
            f"- **Due date:** {item.due_date}",
            f"- **Priority:** {item.priority}",
        ]
        if item.source_times:
            lines.append(f"- **Context:** {', '.join(item.source_times)}")
        lines.append("")

    return lines


def export_markdown(analysis: MeetingAnalysis, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text("\n".join(_markdown_lines(analysis)), encoding="utf-8")


def export_transcript_txt(transcript: Transcript | str, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(str(transcript), encoding="utf-8")


def export_docx(analysis: MeetingAnalysis, output_path: Path) -> None:
    try:
        from docx import Document
        from docx.shared import Mm, Pt
    except ImportError as exc:  # pragma: no cover - env dependent
        raise RuntimeError("python-docx is missing. Install the project dependencies") from exc

    def _format_paragraph(paragraph: Any) -> None:
        paragraph.paragraph_format.space_after = Pt(0)
        paragraph.paragraph_format.space_before = Pt(0)
        paragraph.paragraph_format.line_spacing = 1.0

    def _labeled(label: str, value: str) -> None:
        paragraph = doc.add_paragraph(style="List Bullet")
        _format_paragraph(paragraph)
        paragraph.add_run(f"{label}: ").bold = True
        paragraph.add_run(value)

    doc = Document()
    section = doc.sections[0]
    section.page_width = Mm(210)
    section.page_height = Mm(297)
    section.left_margin = Mm(20)
    section.right_margin = Mm(20)

    style = doc.styles["Normal"]
    style.font.size = Pt(11)

    doc.add_heading("Meeting Analysis", level=0)
    doc.add_heading("Summary", level=1)
    doc.add_paragraph(analysis.summary)

    doc.add_heading("Key Points", level=1)
    for point in analysis.key_points:
        _format_paragraph(doc.add_paragraph(point, style="List Bullet"))

    doc.add_heading("Technical Concepts Discussed", level=1)
    if not analysis.technical_concepts:
        doc.add_paragraph(NO_CONCEPTS.strip("*")).runs[0].italic = True
    for concept in analysis.technical_concepts:
        doc.add_heading(concept.term, level=2)
        _labeled("Context", concept.context)
        if concept.mentioned_technologies:
            _labeled("Related technologies", ", ".join(concept.mentioned_technologies))

    doc.add_heading("Tasks and Action Items", level=1)
    if not analysis.action_items:
        doc.add_paragraph(NO_ACTION_ITEMS.strip("*")).runs[0].italic = True
    for item in analysis.action_items:
        doc.add_heading(item.title, level=2)
        _labeled("Owner", item.owner)
        _labeled("Due date", item.due_date)
        _labeled("Priority", item.priority)
        if item.source_times:
            _labeled("Context", ", ".join(item.source_times))

    output_path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(output_path)
