from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .completion_client import CompletionClient
from .errors import InvalidRequest, MalformedResponse
from .schemas import ExplanationData, FollowUpAnswer

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
DEFAULT_INTERESTS_TEXT = "general knowledge"

EXPLAINER_SYSTEM_PROMPT = (
	"You are a brilliant educator who creates personalized, engaging explanations. "
	"Always respond with valid JSON only, no markdown formatting."
)
TUTOR_SYSTEM_PROMPT = "You are an encouraging tutor who loves helping curious learners understand complex topics."

_LEARNING_STYLE_HINTS: Dict[str, str] = {
	"story": "Weave the explanation into a short narrative where you can.",
	"visual": "Lean on vivid imagery, diagrams and spatial descriptions.",
	"step-by-step": "Keep every part tightly sequenced and explicit.",
	"humor": "Keep it playful and use light humor in the examples.",
	"real-world": "Tie each idea to practical, everyday applications.",
}

_FENCE_OPEN = re.compile(r"```json\n?")
_FENCE = re.compile(r"```\n?")


def interests_text(interests: Optional[List[str]]) -> str:
	cleaned = [str(i).strip() for i in (interests or []) if str(i).strip()]
	return ", ".join(cleaned) if cleaned else DEFAULT_INTERESTS_TEXT


def build_explanation_prompt(topic: str, interests: Optional[List[str]], learning_style: Optional[str] = None) -> str:
	it = interests_text(interests)
	style_hint = _LEARNING_STYLE_HINTS.get(learning_style or "")
	style_line = f"\nPreferred learning style: {learning_style}. {style_hint}\n" if style_hint else ""
	return (
		f"You are an expert educator creating personalized learning content. The learner is interested in: {it}.\n"
		f"{style_line}\n"
		f"Topic to explain: \"{topic}\"\n\n"
		"Create a comprehensive, engaging explanation with the following sections:\n\n"
		"1. SIMPLE EXPLANATION (2-3 sentences): Clear, concise overview anyone can understand.\n\n"
		f"2. PERSONALIZED ANALOGY: Connect this topic to the learner's interests ({it}) in a natural, accurate way that genuinely illuminates the concept.\n\n"
		"3. STEP-BY-STEP BREAKDOWN: Break down the concept into 4-5 digestible steps.\n\n"
		"4. VISUAL MENTAL MODEL: Describe a clear mental image or diagram that represents this concept (what to visualize).\n\n"
		"5. DEEPER DIVE: More detailed explanation for those wanting to understand the nuances and complexities (2-3 paragraphs).\n\n"
		"6. REAL-WORLD APPLICATIONS: List 3-4 concrete examples of how this applies in everyday life or professional settings.\n\n"
		"7. PRACTICE QUESTIONS: Create 3 thought-provoking questions that help reinforce understanding.\n\n"
		"8. MINI QUIZ: Create 3 multiple-choice questions with 4 options each. Mark the correct answer.\n\n"
		"Format your response as a valid JSON object with this exact structure:\n"
		"{\n"
		"  \"simple\": \"...\",\n"
		"  \"analogy\": \"...\",\n"
		"  \"stepByStep\": [\"step 1\", \"step 2\", ...],\n"
		"  \"visualModel\": \"...\",\n"
		"  \"deeperDive\": \"...\",\n"
		"  \"realWorld\": [\"example 1\", \"example 2\", ...],\n"
		"  \"practiceQuestions\": [\"question 1\", \"question 2\", \"question 3\"],\n"
		"  \"quiz\": [\n"
		"    {\n"
		"      \"question\": \"...\",\n"
		"      \"options\": [\"A. ...\", \"B. ...\", \"C. ...\", \"D. ...\"],\n"
		"      \"correctAnswer\": 0\n"
		"    },\n"
		"    ...\n"
		"  ]\n"
		"}\n\n"
		"Use a clear, engaging tone appropriate for curious learners of all ages."
	)


def build_followup_prompt(question: str, context: Optional[str], interests: Optional[List[str]]) -> str:
	it = interests_text(interests)
	context_text = f"\n\nContext from previous explanation: {context}" if context else ""
	return (
		f"You are a helpful tutor answering a follow-up question. The learner is interested in: {it}.{context_text}\n\n"
		f"Follow-up question: \"{question}\"\n\n"
		"Provide a clear, personalized answer that:\n"
		"- Directly addresses their question\n"
		"- Uses examples related to their interests when relevant\n"
		"- Is encouraging and builds curiosity\n"
		"- Is 2-4 paragraphs long\n\n"
		"Answer naturally and conversationally. Do not use any special formatting or JSON."
	)


def strip_code_fences(text: str) -> str:
	return _FENCE.sub("", _FENCE_OPEN.sub("", text or "")).strip()


def parse_explanation(content: str) -> ExplanationData:
	"""Parse raw model output into an ExplanationData, or raise MalformedResponse."""
	cleaned = strip_code_fences(content)
	try:
		data: Any = json.loads(cleaned)
		return ExplanationData.model_validate(data)
	except (json.JSONDecodeError, ValidationError) as err:
		logger.error("JSON parse error: %s Content: %s", err, content)
		raise MalformedResponse("Failed to parse AI response as JSON") from err


async def generate_explanation(
	client: CompletionClient,
	topic: Optional[str],
	interests: Optional[List[str]],
	learning_style: Optional[str] = None,
) -> ExplanationData:
	topic = (topic or "").strip()
	if not topic:
		raise InvalidRequest("Topic is required")
	prompt = build_explanation_prompt(topic, interests, learning_style)
	content = await client.complete(
		[
			{"role": "system", "content": EXPLAINER_SYSTEM_PROMPT},
			{"role": "user", "content": prompt},
		],
		temperature=TEMPERATURE,
	)
	return parse_explanation(content)


async def answer_followup(
	client: CompletionClient,
	question: Optional[str],
	context: Optional[str],
	interests: Optional[List[str]],
) -> FollowUpAnswer:
	question = (question or "").strip()
	if not question:
		raise InvalidRequest("Question is required")
	prompt = build_followup_prompt(question, (context or "").strip(), interests)
	content = await client.complete(
		[
			{"role": "system", "content": TUTOR_SYSTEM_PROMPT},
			{"role": "user", "content": prompt},
		],
		temperature=TEMPERATURE,
	)
	return FollowUpAnswer(content=content)
