from __future__ import annotations

import json
import logging
import re
import uuid

from interview_assistant.ai.providers import CompletionProvider
from interview_assistant.errors import EvaluationUnavailable
from interview_assistant.interview.models import TIME_LIMITS, Difficulty, Evaluation, Question
from interview_assistant.interview.scorer import clamp_score
from interview_assistant.interview.summary import SummaryItem

logger = logging.getLogger("interview_assistant.ai.remote")

QUESTION_SYSTEM_PROMPT = (
    "You are an expert technical interviewer specializing in Full Stack Development. "
    "Generate thoughtful, practical interview questions that assess real-world knowledge."
)
EVALUATION_SYSTEM_PROMPT = (
    "You are an expert technical interviewer evaluating Full Stack Developer candidates. "
    "Provide fair, constructive evaluations. Output JSON only."
)
SUMMARY_SYSTEM_PROMPT = (
    "You are a senior technical hiring manager writing interview summaries for Full Stack Developer "
    "candidates. Provide professional, balanced, and actionable feedback."
)

DIFFICULTY_HINTS = {
    Difficulty.EASY: "beginner-friendly conceptual questions that test basic understanding",
    Difficulty.MEDIUM: "intermediate questions that require deeper knowledge and practical experience",
    Difficulty.HARD: "advanced questions that test system design thinking and complex problem-solving",
}


def extract_json(text: str):
    text = (text or "").strip()
    if not text:
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    fenced = re.search(r"```(?:json)?\s*([\[{][\s\S]*?[\]}])\s*```", text, re.IGNORECASE)
    if fenced:
        try:
            return json.loads(fenced.group(1))
        except json.JSONDecodeError:
            pass

    for opener, closer in (("[", "]"), ("{", "}")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(text[start:end + 1])
            except json.JSONDecodeError:
                continue
    return None


def _string_list(value, limit: int = 3) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item or "").strip()][:limit]


class RemoteInterviewAI:
    """Hosted-model question generation, scoring and summaries. Every failure raises EvaluationUnavailable."""

    def __init__(self, provider: CompletionProvider):
        self.provider = provider

    @property
    def name(self) -> str:
        return str(getattr(self.provider, "name", "remote"))

    async def generate_questions(
        self,
        difficulty: Difficulty,
        count: int = 2,
        candidate_name: str | None = None,
    ) -> list[Question]:
        time_limit = TIME_LIMITS[difficulty]
        name_line = f"- Candidate name: {candidate_name}" if candidate_name else ""
        prompt = f"""
Generate {count} {difficulty.value} level interview questions for a Full Stack Developer position.

Requirements:
- Questions should be {DIFFICULTY_HINTS[difficulty]}
- Questions should be theoretical/conceptual, not coding exercises
- Each question should test a different area of knowledge
{name_line}

Return ONLY a JSON array with this exact format:
[
  {{
    "id": "unique-id-1",
    "text": "Question text here?",
    "difficulty": "{difficulty.value}",
    "category": "Category Name",
    "time_limit": {time_limit},
    "expected_keywords": ["keyword1", "keyword2", "keyword3"]
  }}
]
"""
        raw = await self.provider.complete(QUESTION_SYSTEM_PROMPT, prompt, temperature=0.8, max_tokens=1000)
        parsed = extract_json(raw)
        if not isinstance(parsed, list):
            raise EvaluationUnavailable("question payload was not a JSON array")

        questions: list[Question] = []
        batch = uuid.uuid4().hex[:8]
        for index, item in enumerate(parsed):
            if not isinstance(item, dict) or not str(item.get("text") or "").strip():
                continue
            questions.append(
                Question(
                    id=f"{difficulty.value}-ai-{batch}-{index}",
                    text=str(item["text"]).strip(),
                    difficulty=difficulty,
                    category=str(item.get("category") or "General").strip(),
                    time_limit=time_limit,
                    expected_keywords=tuple(_string_list(item.get("expected_keywords"), limit=10)),
                )
            )

        if len(questions) < count:
            raise EvaluationUnavailable(f"expected {count} {difficulty.value} questions, got {len(questions)}")
        return questions[:count]

    async def evaluate(self, question: Question, answer: str, time_spent: int) -> Evaluation:
        prompt = f"""
Evaluate this interview answer for a Full Stack Developer position.

Question ({question.difficulty.value} level): {question.text}
Category: {question.category}
Time Limit: {question.time_limit}s
Time Spent: {time_spent}s

Candidate's Answer: "{answer}"

Return ONLY a JSON object with this exact format:
{{
  "score": 85,
  "feedback": "Detailed feedback about the answer quality, technical accuracy, and completeness.",
  "strengths": ["strength1", "strength2", "strength3"],
  "improvements": ["improvement1", "improvement2", "improvement3"]
}}

Scoring criteria:
- Technical accuracy (40%)
- Completeness and depth (30%)
- Communication clarity (20%)
- Time management (10%)

Score range: 0-100 (where 70+ is good, 85+ is excellent)
"""
        raw = await self.provider.complete(EVALUATION_SYSTEM_PROMPT, prompt, temperature=0.3, max_tokens=800)
        parsed = extract_json(raw)
        if not isinstance(parsed, dict) or parsed.get("score") is None:
            logger.debug("unparsable evaluation from %s: %.200s", self.name, raw)
            raise EvaluationUnavailable("evaluation payload missing score")

        score = clamp_score(parsed.get("score"), default=-1)
        if score < 0:
            raise EvaluationUnavailable("evaluation score was not numeric")

        return Evaluation(
            score=score,
            feedback=str(parsed.get("feedback") or "").strip() or "Evaluation generated.",
            strengths=_string_list(parsed.get("strengths")),
            improvements=_string_list(parsed.get("improvements")),
            source=self.name,
        )

    async def summarize(self, candidate_name: str, items: list[SummaryItem]) -> str:
        interview_data = [
            {
                "question_number": index,
                "difficulty": item.question.difficulty.value,
                "category": item.question.category,
                "question": item.question.text,
                "answer": item.answer[:200] + ("..." if len(item.answer) > 200 else ""),
                "score": item.evaluation.score,
                "strengths": item.evaluation.strengths,
                "improvements": item.evaluation.improvements,
            }
            for index, item in enumerate(items, start=1)
        ]
        prompt = f"""
Generate a comprehensive interview summary for {candidate_name}.

Interview Results:
{json.dumps(interview_data, indent=2)}

Please provide a professional interview summary that includes:
1. Overall performance assessment
2. Key strengths demonstrated
3. Areas for improvement
4. Hiring recommendation
5. Technical competency evaluation
"""
        raw = await self.provider.complete(SUMMARY_SYSTEM_PROMPT, prompt, temperature=0.4, max_tokens=1200)
        summary = str(raw or "").strip()
        if not summary:
            raise EvaluationUnavailable("empty summary")
        return summary
