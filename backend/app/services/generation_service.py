"""
AI generation features gated by credits: content refinement and quizzes.

These functions only build prompts and parse completions; the credit
consumption happens in the router BEFORE any of them is called.
"""
import json
import logging
import re
from typing import Any, Dict, List

from app.ai.base import LLMProvider
from app.services.exceptions import GenerationError

logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


def refine_content(provider: LLMProvider, content: str, instruction: str, language: str = "fr") -> str:
    """Rewrite `content` following the user's instruction."""
    system_prompt = (
        "You are a copywriting assistant for solo entrepreneurs. "
        "Rewrite the text following the user's instruction. Keep the author's voice "
        f"and answer in the language '{language}'. Return only the rewritten text."
    )
    user_prompt = f"Instruction:\n{instruction}\n\nText:\n{content}"
    try:
        refined = provider.complete(system_prompt, user_prompt, max_tokens=2000)
    except Exception as e:
        raise GenerationError(f"Refinement failed: {e}") from e
    if not refined:
        raise GenerationError("Refinement returned an empty text")
    return refined


def parse_quiz(raw: str) -> Dict[str, Any]:
    """
    Extract the quiz JSON object from a completion.

    Raises:
        GenerationError: No JSON object or no questions
    """
    match = _JSON_BLOCK.search(raw or "")
    if not match:
        raise GenerationError("Quiz completion contained no JSON object")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise GenerationError(f"Quiz completion is not valid JSON: {e}") from e

    questions: List[Dict[str, Any]] = data.get("questions") or []
    if not isinstance(questions, list) or not questions:
        raise GenerationError("Quiz completion has no questions")
    return {
        "title": data.get("title") or "",
        "introduction": data.get("introduction") or "",
        "questions": questions,
        "results": data.get("results") or [],
    }


def generate_quiz(
    provider: LLMProvider,
    objective: str,
    target: str,
    nb_questions: int = 7,
    language: str = "fr",
) -> Dict[str, Any]:
    """Generate a lead-magnet quiz as structured JSON."""
    system_prompt = (
        "You create lead-generation quizzes. Answer with a single JSON object: "
        '{"title": str, "introduction": str, '
        '"questions": [{"question": str, "options": [{"text": str, "result_index": int}]}], '
        '"results": [{"title": str, "description": str}]}. '
        f"Write in the language '{language}'."
    )
    user_prompt = (
        f"Quiz objective: {objective}\n"
        f"Target audience: {target}\n"
        f"Number of questions: {nb_questions}"
    )
    try:
        raw = provider.complete(system_prompt, user_prompt, max_tokens=3000)
    except Exception as e:
        raise GenerationError(f"Quiz generation failed: {e}") from e
    return parse_quiz(raw)
