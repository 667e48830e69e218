from __future__ import annotations

import json
import logging
from typing import Any

from openai import OpenAI

from .errors import AnalysisError
from .models import MeetingAnalysis, Transcript

logger = logging.getLogger(__name__)

ANALYSIS_MODEL = "gpt-4o-mini"

SYSTEM_PROMPT = """You are an assistant that analyzes meeting transcripts and produces structured summaries in {language}.

Reply ONLY with a valid JSON object (no markdown, no code fences) with this structure:
{{
  "summary": "Concise summary of the meeting",
  "key_points": ["Key point 1", "Key point 2"],
  "technical_concepts": [
    {{
      "term": "Name of the technical concept or technology",
      "context": "Short explanation of the context in which it came up in the meeting",
      "mentioned_technologies": ["Technology 1", "Technology 2"]
    }}
  ],
  "action_items": [
    {{
      "title": "Description of the task",
      "owner": "Person responsible (or 'Not specified')",
      "due_date": "Deadline (or 'Not specified')",
      "priority": "High/Medium/Low",
      "source_times": ["Context or moment of the meeting where it was mentioned"]
    }}
  ]
}}

For technical_concepts:
- Extract ALL technical concepts, technologies, frameworks, protocols, APIs, services and architectures.
- Include specific names of services, databases and development tools.
- Group related technologies where it makes sense.
- Give context that helps someone new to the project research these concepts.

Make sure the JSON is valid and do not add any other text."""

USER_PROMPT = "Analyze the following meeting transcript and produce a structured summary:\n\n{transcript}"


def build_messages(transcript: str, language: str = "English") -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT.format(language=language)},
        {"role": "user", "content": USER_PROMPT.format(transcript=transcript)},
    ]


def _message_content(response: Any) -> str:
    choices = getattr(response, "choices", None)
    if choices is None and isinstance(response, dict):
        choices = response.get("choices")
    if not choices:
        raise AnalysisError("The model returned no choices")

    first = choices[0]
    message = first.get("message") if isinstance(first, dict) else getattr(first, "message", None)
    if isinstance(message, dict):
        content = message.get("content")
    else:
        content = getattr(message, "content", None)
    content = str(content or "").strip()
    if not content:
        raise AnalysisError("The model returned an empty analysis")
    return content


def parse_analysis(content: str) -> MeetingAnalysis:
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        raise AnalysisError(f"Could not parse the analysis as JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise AnalysisError(f"Expected a JSON object, got {type(payload).__name__}")
    return MeetingAnalysis.from_dict(payload)


def analyze_transcript(
    transcript: Transcript | str,
    *,
    client: OpenAI,
    model: str = ANALYSIS_MODEL,
    language: str = "English",
) -> MeetingAnalysis:
    text = str(transcript)
    logger.info("Analyzing transcript (%d characters) with %s", len(text), model)
    response = client.chat.completions.create(
        model=model,
        messages=build_messages(text, language),
        response_format={"type": "json_object"},
    )
    analysis = parse_analysis(_message_content(response))
    logger.info(
        "Analysis complete: %d key points, %d concepts, %d action items",
        len(analysis.key_points),
        len(analysis.technical_concepts),
        len(analysis.action_items),
    )
    return analysis
