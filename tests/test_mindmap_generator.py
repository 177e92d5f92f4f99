"""
Unit tests for mind map generation
"""
import asyncio

import pytest

from smartnotes.services.errors import EmptyCompletionError
from smartnotes.services.mindmap_generator import (
    MAX_SOURCE_CHARS,
    MindMapFormat,
    generate_mind_map,
    normalize_mind_map,
    strip_fences,
)

MERMAID = "mindmap\n  root((Mauryas))\n    Ashoka\n      Kalinga"


class TestCleanup:
    def test_mermaid_fence_removed(self):
        assert strip_fences("```mermaid\n" + MERMAID + "\n```") == MERMAID

    def test_plain_fence_removed(self):
        assert strip_fences("```\nroot\n```  ") == "root"

    def test_root_keyword_added(self):
        assert normalize_mind_map("  root((Mauryas))", MindMapFormat.MERMAID) == "mindmap\nroot((Mauryas))"

    def test_text_tree_left_alone(self):
        tree = "Mauryas\n├── Ashoka\n└── Bindusara"
        assert normalize_mind_map(tree, MindMapFormat.TEXT) == tree


class TestGenerateMindMap:
    def test_mermaid_generation(self, stub_invoker):
        invoker = stub_invoker(["```mermaid\n" + MERMAID + "\n```"])
        content = asyncio.run(generate_mind_map(invoker, "Maurya source", focus="Ashoka"))

        assert content == MERMAID
        call = invoker.calls[0]
        assert call["json_output"] is False
        assert call["use_model_budget"] is False
        assert call["temperature"] == 0.3
        assert "Centre the map on: Ashoka" in call["user_prompt"]

    def test_text_format(self, stub_invoker):
        invoker = stub_invoker(["Mauryas\n└── Ashoka"])
        content = asyncio.run(generate_mind_map(invoker, "Maurya source", fmt=MindMapFormat.TEXT))
        assert content == "Mauryas\n└── Ashoka"
        assert "text tree" in invoker.calls[0]["user_prompt"]

    def test_source_truncated(self, stub_invoker):
        invoker = stub_invoker([MERMAID])
        asyncio.run(generate_mind_map(invoker, "z" * (MAX_SOURCE_CHARS + 500)))
        prompt = invoker.calls[0]["user_prompt"]
        assert "z" * MAX_SOURCE_CHARS in prompt
        assert "z" * (MAX_SOURCE_CHARS + 1) not in prompt

    @pytest.mark.parametrize("reply", ["```mermaid\n```", "mindmap"])
    def test_nothing_left_raises(self, stub_invoker, reply):
        with pytest.raises(EmptyCompletionError):
            asyncio.run(generate_mind_map(stub_invoker([reply]), "Maurya source"))
