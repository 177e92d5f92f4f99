from __future__ import annotations

import enum
import re
from typing import Optional

import structlog

from smartnotes.services.errors import EmptyCompletionError
from smartnotes.services.prompts import (
    MIND_MAP_SYSTEM_PROMPT,
    TEXT_TREE_SYSTEM_PROMPT,
    mind_map_prompt,
    text_tree_prompt,
)
from smartnotes.services.providers import DEFAULT_MODEL

logger = structlog.get_logger(__name__)

MIND_MAP_TEMPERATURE = 0.3
MAX_SOURCE_CHARS = 15000
ROOT_KEYWORD = "mindmap"

LEADING_FENCE_RE = re.compile(r"^```(?:mermaid)?[^\n]*\n?")
TRAILING_FENCE_RE = re.compile(r"\n?```\s*$")


class MindMapFormat(str, enum.Enum):
    MERMAID = "MERMAID"
    TEXT = "TEXT"


def strip_fences(content: str) -> str:
    content = LEADING_FENCE_RE.sub("", content.strip())
    content = TRAILING_FENCE_RE.sub("", content)
    return content.strip()


def normalize_mind_map(content: str, fmt: MindMapFormat) -> str:
    content = strip_fences(content)
    if content and fmt == MindMapFormat.MERMAID and not content.startswith(ROOT_KEYWORD):
        content = f"{ROOT_KEYWORD}\n{content}"
    return content


async def generate_mind_map(
    invoker,
    source_text: str,
    model_id: str = DEFAULT_MODEL,
    credential: Optional[str] = None,
    focus: Optional[str] = None,
    fmt: MindMapFormat = MindMapFormat.MERMAID,
) -> str:
    """Mermaid mind map or plain text tree for the source; raw text, no JSON."""
    fmt = MindMapFormat(fmt)
    excerpt = (source_text or "")[:MAX_SOURCE_CHARS]
    if fmt == MindMapFormat.TEXT:
        system_prompt, prompt = TEXT_TREE_SYSTEM_PROMPT, text_tree_prompt(excerpt, focus)
    else:
        system_prompt, prompt = MIND_MAP_SYSTEM_PROMPT, mind_map_prompt(excerpt, focus)

    completion = await invoker.invoke(
        model_id, system_prompt, prompt,
        credential=credential, temperature=MIND_MAP_TEMPERATURE,
        json_output=False, use_model_budget=False,
    )
    content = normalize_mind_map(completion.text, fmt)
    if not content or (fmt == MindMapFormat.MERMAID and content == ROOT_KEYWORD):
        raise EmptyCompletionError(f"Mind map from {model_id} was empty after cleanup")
    logger.info("mind_map_generated", model_id=model_id, format=fmt.value, chars=len(content))
    return content
