"""
Project Commentary

Builds the segment summary handed to an external text-generation service and
calls it through a plain callable. Any failure of the service degrades to a
fixed fallback message; it never interrupts import or audit.
"""
import json
import logging
from typing import Callable, Dict, List, Optional, Sequence

from ..config.models import Segment


logger = logging.getLogger(__name__)

FALLBACK_COMMENTARY = "Sorry, the project data could not be analysed at the moment."

PROMPT_TEMPLATE = (
    "As an experienced infrastructure engineer, analyse the following data for a "
    "water and sewage network project and give a short report covering:\n"
    "1. Overall completion status.\n"
    "2. Likely obstacles based on the status.\n"
    "3. Recommendations to improve execution rates.\n"
    "\n"
    "Data: {data}"
)

CommentaryGenerator = Callable[[str], Optional[str]]


def summarize_segments(segments: Sequence[Segment]) -> List[Dict]:
    """Name, type, status, progress and length of each segment."""
    return [
        {
            'name': s.name,
            'type': s.network_type.value,
            'status': s.status.value,
            'progress': s.completion_percentage,
            'length': s.length_meters,
        }
        for s in segments
    ]


def build_commentary_payload(segments: Sequence[Segment]) -> str:
    """Serialised segment summary as JSON text."""
    return json.dumps(summarize_segments(segments), ensure_ascii=False)


def build_prompt(segments: Sequence[Segment]) -> str:
    """Full prompt text for the generator."""
    return PROMPT_TEMPLATE.format(data=build_commentary_payload(segments))


def request_commentary(segments: Sequence[Segment],
                       generator: Optional[CommentaryGenerator] = None,
                       fallback: str = FALLBACK_COMMENTARY) -> str:
    """
    Ask a text generator for project commentary.

    Args:
        segments: Segments to summarise
        generator: Callable taking the prompt and returning text
        fallback: Returned when no generator is set, it fails or it returns nothing

    Returns:
        Commentary text
    """
    if generator is None:
        return fallback

    try:
        text = generator(build_prompt(segments))
    except Exception as e:
        logger.error(f"Commentary service error: {e}")
        return fallback

    if not text or not str(text).strip():
        logger.warning("Commentary service returned no text")
        return fallback
    return str(text)
