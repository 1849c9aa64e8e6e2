"""
Services Package

Clients for external collaborators.
"""
from .commentary import (
    FALLBACK_COMMENTARY,
    build_commentary_payload,
    build_prompt,
    request_commentary,
    summarize_segments,
)

__all__ = [
    'FALLBACK_COMMENTARY',
    'build_commentary_payload',
    'build_prompt',
    'request_commentary',
    'summarize_segments',
]
