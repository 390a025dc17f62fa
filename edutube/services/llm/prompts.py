from __future__ import annotations

# ----------------------------
# Per-topic chains
# ----------------------------

SUMMARIZE_SYSTEM = """You are a helpful assistant that creates structured, accurate summaries of educational content.
You work from video indexer outputs (lecture indexes) that include segments and timestamps,
detected key concepts, graphics/diagrams, and OCR/captions."""

SUMMARIZE_INSTRUCTION_TEMPLATE = """The input below is a lecture video index produced by a video indexer,
containing segments with timestamps, detected key concepts, captions/OCR, and mentions of graphics or diagrams.

Create a structured study summary. Aim for a {length} length and use a {tone} tone.
Cover: an overview, key concepts with one-sentence definitions (mark each concept name in **bold**),
important graphics and what they illustrate, notable formulas or step-by-step procedures,
and any cautions/misconceptions.
Where helpful, reference timestamps in (mm:ss)."""

LECTURE_INDEX_TEMPLATE = """Lecture Index:
{context}
"""

FLASHCARDS_SYSTEM = """You are a helpful assistant that creates high-quality flashcards from structured study summaries.
Each flashcard must be unambiguous, answerable from the summary, and focused on a single idea.
Prefer cloze deletions or short-answer questions for key definitions and formulas."""

FLASHCARDS_USER_TEMPLATE = """Using the structured summary below, create {count} flashcards focused on the topic: '{topic}'.

Follow these rules:
- Use {style} phrasing.
- Include "topic" for each card and set "difficulty" (easy|medium|hard) roughly based on cognitive effort.
- If a card is tied to a specific moment, include a "timestamp" in MM:SS from the summary when possible.
- Output ONLY a JSON array of objects with this shape:
  [{{"question": "...", "answer": "...", "topic": "...", "difficulty": "medium", "timestamp": "03:15"}}]
- Do not include explanations outside JSON.

Structured Summary:
{summary}
"""

QUIZ_SYSTEM = """You are an expert educational content author who writes clear, fair quiz questions.
Questions must be answerable strictly from the provided structured summary,
focus on the requested topic, and be unambiguous."""

QUIZ_USER_TEMPLATE = """From the structured summary below, generate {count} quiz questions focused on the topic: '{topic}'.
Distribute question types among: {mix}.

Guidelines:
- Ensure factual correctness and clear wording.
- Calibrate "difficulty" (easy|medium|hard).
- Where helpful, attach a "timestamp" in MM:SS from the summary.
- multiple_choice: exactly 4 plausible choices with ids "a", "b", "c", "d" and exactly one correct answer ("answer" is the choice id).
- short_answer / true_false: "answer" is the literal answer text ("true"/"false" for true_false).
{explanations}
Output ONLY a JSON array of objects with this shape:
[{{"type": "multiple_choice", "prompt": "...", "choices": [{{"id": "a", "text": "..."}}, {{"id": "b", "text": "..."}}, {{"id": "c", "text": "..."}}, {{"id": "d", "text": "..."}}], "answer": "a", "explanation": "...", "topic": "...", "difficulty": "medium", "timestamp": "05:42"}}]
Do not include explanations outside JSON.

Structured Summary:
{summary}
"""

# ----------------------------
# Unified (single call)
# ----------------------------

UNIFIED_SYSTEM = """You are an expert educational AI that creates comprehensive study materials.
Always respond with valid JSON only. Never use placeholder text: every field must contain real content
drawn from the lecture."""

UNIFIED_USER_TEMPLATE = """From the lecture content below, generate ALL of the following in a SINGLE response:

1. Summary: a {length} summary (2-4 paragraphs) with a {tone} tone, highlighting main concepts and key points.
2. Topics: exactly {topics_count} key topics/concepts from the content (short, distinct labels).
3. Flashcards: for EACH topic, exactly {flashcards_per_topic} flashcards covering important concepts, definitions, and facts.
4. Quiz: for EACH topic, exactly {quiz_per_topic} multiple-choice questions with exactly 4 choices (ids a, b, c, d) and one correct answer.

Critical requirements:
- Respond ONLY with valid JSON in the exact format below.
- Every flashcard and quiz item's "topic" must be copied verbatim from "topics".
- Make questions answerable from the provided content.
- Timestamps are optional; when present use MM:SS (e.g. "04:05").

Required JSON format:
{{
  "summary": "...",
  "topics": ["...", "..."],
  "flashcards": [
    {{"question": "...", "answer": "...", "topic": "...", "difficulty": "easy|medium|hard", "timestamp": "12:34"}}
  ],
  "quiz": [
    {{
      "type": "multiple_choice",
      "prompt": "...",
      "choices": [{{"id": "a", "text": "..."}}, {{"id": "b", "text": "..."}}, {{"id": "c", "text": "..."}}, {{"id": "d", "text": "..."}}],
      "answer": "a",
      "explanation": "...",
      "topic": "...",
      "difficulty": "medium",
      "timestamp": "15:42"
    }}
  ]
}}

Lecture content:
{context}

Generate exactly {total_flashcards} flashcards total ({flashcards_per_topic} per topic) and {total_quiz} quiz questions total ({quiz_per_topic} per topic).
"""

# ----------------------------
# Direct transcript (single call)
# ----------------------------

DIRECT_SYSTEM = "Generate educational content from this video transcript in JSON format."

DIRECT_USER_TEMPLATE = """Generate educational content from this video content with timestamps in JSON format:

Video Duration: {duration}

Content:
{content}

Return ONLY valid JSON with this exact structure:
{{
  "summary": "A comprehensive summary with proper formatting and paragraph breaks",
  "quiz": [
    {{
      "question": "Multiple choice question text",
      "options": ["...", "...", "...", "..."],
      "correctAnswer": 2,
      "concept": "Main topic/concept being tested",
      "timestamp": "03:45"
    }}
  ],
  "flashcards": [
    {{
      "question": "Question for flashcard front",
      "answer": "Answer for flashcard back"
    }}
  ]
}}

Requirements:
- Generate {quiz_count} quiz questions minimum
- Generate {flashcard_count} flashcards minimum
- All quiz questions must be MCQ with exactly 4 distinct options; correctAnswer is the 0-based index (0-3) of the correct option
- Include timestamps that correspond to video moments (use MM:SS format, two digits each)
- Timestamps must be within video duration ({duration})
- Summary must be properly formatted for display and at least a few sentences long
- Never use placeholder text such as "sample", "example", "[topic]" or "..."
"""
