"""
Prompt templates for notes, MCQs and mind maps.
"""
from typing import Optional

NOTES_SYSTEM_PROMPT = (
    "You are an expert educator. You MUST use a natural mix of Hindi (Devanagari script) and English "
    "(Hinglish). Technical terms/dates stay in English, but narrative must be in Hindi. Example: "
    "'Evergreen Forests में साल भर पेड़ हरे-भरे रहते हैं क्योंकि ये अपनी leaves एक साथ नहीं झाड़ते।' "
    "Return ONLY valid JSON."
)

MCQ_SYSTEM_PROMPT = (
    "You are a professional exam paper creator. Questions/options must be in Pure English. "
    "Explanations MUST be in Hinglish (Hindi Devanagari + English). Example Explanation: "
    "'यह concept simple है: Preamble संविधान की identity card है।' Return ONLY valid JSON."
)

MIND_MAP_SYSTEM_PROMPT = "You are a specialized Mind Map generator using Mermaid.js syntax."
TEXT_TREE_SYSTEM_PROMPT = "You are a specialized text structure generator."

JSON_RULES = """JSON RULES (ABSOLUTE):
- Return ONLY valid JSON.
- Use double quotes only.
- Escape inner quotes with \\"
- No trailing commas.
- No extra text."""

NOTE_JSON_FORMAT = """{
  "notes": [
    {
      "topic": "Main topic",
      "subtopic": "Specific event/person",
      "content": "20-30 words Hinglish content",
      "examRelevance": "SSC" | "UPSC" | "BOTH",
      "importance": 1-5,
      "memoryTechnique": {
        "type": "Mnemonic" | "Acronym" | "Story" | "Visual" | "Rhyme" | "Association",
        "technique": "Memory aid",
        "explanation": "Hinglish explanation"
      },
      "examTips": "Optional exam tip",
      "commonMistakes": "Optional common mistake"
    }
  ],
  "summary": {
    "totalConcepts": 0,
    "keyTopics": []
  }
}"""


def ssc_fact_chrono_prompt(text: str, focus: str = "the topic") -> str:
    """Fact-dense, chronological notes for the SSC track."""
    return f"""
You are an Expert Educator generating EXHAUSTIVE smart notes on {focus} strictly from the SOURCE MATERIAL.

CRITICAL RULES:
1. STRICT CONTEXT: Use ONLY provided data. Add missing SSC-critical facts ONLY if essential.
2. WORD LIMIT: Each "content" MUST be exactly 20-30 words.
3. ZERO DATA LOSS: Capture EVERY fact, date, name, number, and nuance.
4. SEQUENCE: Maintain strict chronological order. Dates before events, causes before effects.
5. GRANULARITY: One fact per note. Combine related facts ONLY if within word limit.

CONTENT STYLE:
- Hinglish mandatory: English for terms/dates, Hindi (Devanagari) for explanation.
- Bold **Rulers, Years, Reforms, Battles, Books, Buildings**.
- No filler. Every word must aid revision.

{JSON_RULES}

JSON FORMAT:
{NOTE_JSON_FORMAT}

SOURCE MATERIAL:
\"\"\"
{text}
\"\"\"
"""


def upsc_keyword_engine_prompt(text: str, focus: str = "the topic") -> str:
    """Keyword-expansion notes for the UPSC track: each keyword opened up analytically."""
    return f"""
You are a UPSC Keyword Engine. Read the SOURCE MATERIAL on {focus} and turn it into analytical smart notes.

METHOD:
1. EXTRACT every keyword: institutions, articles, acts, committees, concepts, places, persons.
2. EXPAND each keyword into one note: what it is, why it matters, and how it links to other keywords.
3. ANALYSE: add the cause-effect chain, constitutional or economic significance, and current relevance.
4. TRAPS: in "commonMistakes" record the confusion UPSC exploits (similar names, wrong years, wrong ministry).
5. WORD LIMIT: Each "content" MUST be 30-50 words.

CONTENT STYLE:
- Hinglish mandatory: English for terms/dates, Hindi (Devanagari) for explanation.
- Prefer "examRelevance": "UPSC" or "BOTH".

{JSON_RULES}

JSON FORMAT:
{NOTE_JSON_FORMAT}

SOURCE MATERIAL:
\"\"\"
{text}
\"\"\"
"""


def enhance_notes_prompt(text: str, focus: str, style: str = "SSC") -> str:
    """Focused notes: only what the SOURCE says about the requested focus, enriched for the style."""
    return f"""
You are an Expert Educator enhancing smart notes for {style} aspirants.

FOCUS: {focus}

RULES:
1. Cover ONLY content in the SOURCE MATERIAL related to the FOCUS. Skip unrelated material.
2. Go deeper than a summary: add memory techniques, exam tips and common mistakes to every note.
3. Each "content" MUST be 20-40 words, Hinglish (English terms, Hindi narrative).
4. Rate "importance" 1-5 by how often {style} exams test the fact.

{JSON_RULES}

JSON FORMAT:
{NOTE_JSON_FORMAT}

SOURCE MATERIAL:
\"\"\"
{text}
\"\"\"
"""


def mcq_from_notes_prompt(notes: str, style: str, level: str, count: int = 20,
                          focus: Optional[str] = None, exam_type: str = "SSC") -> str:
    focus_rule = f"\n7. FOCUS: Prioritise notes about {focus}." if focus else ""
    return f"""
You are a Senior Exam Paper Setter for {style} exams ({level}), {exam_type} pattern.

CRITICAL RULES:
1. SOURCE: Use ONLY provided notes. No outside data.
2. STRUCTURE: Every MCQ must have "question", "options" (exactly 4), and "answer".
3. VALIDITY: "answer" MUST match one option exactly, character for character. No nulls.
4. LANGUAGE: Questions/Options: English. Explanations: Hinglish.
5. FULL COVERAGE: You MUST generate at least one MCQ for EVERY single note provided. Do not skip any note.
6. VOLUME: Generate approximately {count} questions to ensure exhaustive coverage of all concepts.{focus_rule}

JSON RULES:
- Return ONLY a valid JSON object.
- Root key: "questions".
- Use double quotes only.
- Escape inner quotes with \\"
- No preamble/post-text.

JSON FORMAT:
{{
  "questions": [
    {{
      "question": "Question text",
      "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
      "answer": "Option 1",
      "explanation": "Hinglish explanation + memory technique",
      "level": "{level}",
      "sourceNote": "Concept source",
      "examRelevance": "SSC" | "UPSC" | "BOTH",
      "importance": 1-5
    }}
  ]
}}

SMART NOTES:
\"\"\"
{notes}
\"\"\"
"""


def upsc_mcq_prompt(notes: str, focus: str = "the topic", count: int = 20, exam_type: str = "UPSC") -> str:
    return f"""
You are a UPSC Prelims paper setter building an analytical, trap-aware question set on {focus}.

RULES:
1. SOURCE: Use ONLY the provided notes.
2. PATTERN: Mix statement-based ("Consider the following statements..."), match-the-pair and
   assertion-reason questions. Each must still have exactly 4 options.
3. VALIDITY: "answer" MUST equal one option exactly, character for character.
4. TRAPS: Distractors must exploit real confusions (similar names, adjacent years, wrong institution).
5. VOLUME: Generate approximately {count} questions for the {exam_type} pattern.
6. TRAP CONCEPTS: Separately list the misconceptions your distractors exploit.
7. LANGUAGE: Questions/Options: English. Explanations: Hinglish.

JSON RULES:
- Return ONLY a valid JSON object with root keys "questions" and "trapConcepts".
- Use double quotes only. Escape inner quotes with \\". No preamble/post-text.

JSON FORMAT:
{{
  "questions": [
    {{
      "question": "Consider the following statements: ...",
      "options": ["1 only", "2 only", "Both 1 and 2", "Neither 1 nor 2"],
      "answer": "Both 1 and 2",
      "explanation": "Hinglish explanation",
      "level": "Hard",
      "sourceNote": "Concept source",
      "examRelevance": "UPSC",
      "importance": 1-5
    }}
  ],
  "trapConcepts": [
    {{
      "concept": "What students confuse",
      "trap": "How the question exploits it",
      "clarification": "Hinglish clarification"
    }}
  ]
}}

SMART NOTES:
\"\"\"
{notes}
\"\"\"
"""


def mind_map_prompt(text: str, focus: Optional[str] = None) -> str:
    focus_line = f"Centre the map on: {focus}\n" if focus else ""
    return f"""
Create a Mermaid.js mind map of the SOURCE MATERIAL.
{focus_line}
RULES:
1. Output ONLY Mermaid mindmap syntax. First line must be exactly: mindmap
2. One root node in double parentheses: root((Title)).
3. Use indentation (2 spaces per level) for hierarchy, at most 4 levels deep.
4. Node labels: 2-6 words. No quotes, brackets, colons or parentheses inside labels.
5. No markdown fences, no explanations.

SOURCE MATERIAL:
\"\"\"
{text}
\"\"\"
"""


def text_tree_prompt(text: str, focus: Optional[str] = None) -> str:
    focus_line = f"Centre the tree on: {focus}\n" if focus else ""
    return f"""
Create a hierarchical text tree of the SOURCE MATERIAL.
{focus_line}
RULES:
1. First line: the main title.
2. Children use tree characters: "├── ", "└── " and "│   " for continuation.
3. At most 4 levels deep. Each node 2-8 words.
4. Output ONLY the tree. No markdown fences, no explanations.

SOURCE MATERIAL:
\"\"\"
{text}
\"\"\"
"""
