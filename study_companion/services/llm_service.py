import html
import logging
import uuid
from typing import Any, Dict, List, Optional

import bleach
from langchain_core.prompts import PromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI

from study_companion.config import Settings
from study_companion.services.quiz_recovery import extract_questions

logger = logging.getLogger(__name__)

NOTE_FORMATS = {
    "bulletPoints": "bullet points",
    "paragraph": "paragraph text",
    "flashcards": "flashcard questions and answers",
}
DEFAULT_NOTE_FORMAT = "a concept map with connections"


class GenerationError(Exception):
    """Raised when the model call fails; carries the upstream message"""


def sanitize_prompt_input(text: Any, max_length: int = 1000) -> str:
    """Strip markup from user input before it is placed in a prompt.

    bleach escapes bare ``&`` and ``<``; the prompt wants the plain characters back.
    """
    if text is None:
        return ""
    text = str(text)[:max_length]
    cleaned = bleach.clean(text, tags=[], attributes={}, strip=True)
    return html.unescape(cleaned).strip()


STUDY_PLAN_PROMPT = PromptTemplate(
    template="""Create a personalized study plan for the subject: {subject}.
    Topics to include: {topics}.
    The exam is scheduled for {exam_date_time}.
    Structure the response with daily study goals, topic prioritization, and recommended study times.""",
    input_variables=["subject", "topics", "exam_date_time"],
)

NOTES_PROMPT = PromptTemplate(
    template="""Generate comprehensive study notes about "{topic}" with {detail_level} detail level.
    Format the notes as {note_format}.
    Include key concepts, definitions, examples, and important points to remember.
    Make the notes easy to understand and remember.
    Use HTML formatting for structure (headings, lists, etc.)""",
    input_variables=["topic", "detail_level", "note_format"],
)

EXPLANATION_PROMPT = PromptTemplate(
    template="""Explain the concept of "{topic}" using real-world analogies and examples.
    Start with a compelling everyday analogy that makes the concept easier to understand.
    Then explain how this concept works in the real world with 3-4 practical applications or examples.
    Use HTML formatting for structure (headings, lists, etc.).
    Make the explanation engaging, memorable, and easy to understand for a student.""",
    input_variables=["topic"],
)

QUIZ_PROMPT = PromptTemplate(
    template="""Generate a {difficulty} level quiz on the topic "{topic}" with {num_questions} multiple-choice questions.
    Each question should have 4 options with exactly one correct answer.
    The response should be structured as a JSON array of objects, where each object has the following fields:
    - question: the question text
    - options: an array of 4 answer choices
    - correctOption: the index (0-3) of the correct answer

    For example:
    {{
      "questions": [
        {{
          "question": "What is X?",
          "options": ["A", "B", "C", "D"],
          "correctOption": 2
        }},
        ...
      ]
    }}""",
    input_variables=["difficulty", "topic", "num_questions"],
)


class LLMService:
    """Generates study content with a Gemini chat model"""

    def __init__(self, api_key: str, model: str = "models/gemini-flash-latest",
                 temperature: float = 0.7, max_output_tokens: int = 2048, llm: Any = None):
        if not api_key:
            raise ValueError("GEMINI_API_KEY or GOOGLE_API_KEY is required")

        self.model = model
        self.llm = llm or ChatGoogleGenerativeAI(
            model=model,
            google_api_key=api_key,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["LLMService"]:
        """Build the service, or return None when no API key is configured"""
        if not settings.gemini_api_key:
            logger.warning("Gemini API key is not configured; generation endpoints will return 503")
            return None
        logger.info(f"Initializing Gemini model {settings.gemini_model}")
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            temperature=settings.gemini_temperature,
            max_output_tokens=settings.gemini_max_output_tokens,
        )

    def _invoke_llm(self, prompt_text: str) -> str:
        logger.info(f"Sending prompt to Gemini API: {prompt_text[:100]}...")
        try:
            response = self.llm.invoke(prompt_text)
        except Exception as e:
            logger.error(f"Detailed Gemini API error: {e}")
            raise GenerationError(f"Gemini API error: {e}") from e

        if isinstance(response, str):
            return response
        content = getattr(response, "content", None)
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            pieces = []
            for item in content:
                if isinstance(item, dict) and item.get("type") == "text":
                    pieces.append(item.get("text", ""))
                elif isinstance(item, str):
                    pieces.append(item)
            return "".join(pieces)
        return str(response)

    def generate_study_plan(self, subject: str, topics: List[str], exam_date_time: str) -> str:
        prompt_text = STUDY_PLAN_PROMPT.format(
            subject=sanitize_prompt_input(subject),
            topics=", ".join(sanitize_prompt_input(t) for t in topics),
            exam_date_time=sanitize_prompt_input(exam_date_time),
        )
        plan = self._invoke_llm(prompt_text)
        logger.info("Successfully received study plan from Gemini API")
        return plan

    def generate_notes(self, topic: str, detail_level: str, note_format: str) -> str:
        prompt_text = NOTES_PROMPT.format(
            topic=sanitize_prompt_input(topic),
            detail_level=sanitize_prompt_input(detail_level),
            note_format=NOTE_FORMATS.get(note_format, DEFAULT_NOTE_FORMAT),
        )
        content = self._invoke_llm(prompt_text)
        logger.info("Successfully received notes from Gemini API")
        return content

    def generate_explanation(self, topic: str) -> str:
        prompt_text = EXPLANATION_PROMPT.format(topic=sanitize_prompt_input(topic))
        content = self._invoke_llm(prompt_text)
        logger.info("Successfully received explanation from Gemini API")
        return content

    def generate_quiz(self, topic: str, difficulty: str, num_questions: int) -> List[Dict[str, Any]]:
        """
        Generate quiz questions for a topic.

        The raw model text goes through quiz recovery, so this only raises
        when the model call itself fails. Every question gets a fresh id;
        model-supplied ids may be missing, non-string or duplicated.
        """
        prompt_text = QUIZ_PROMPT.format(
            difficulty=sanitize_prompt_input(difficulty),
            topic=sanitize_prompt_input(topic),
            num_questions=num_questions,
        )
        text = self._invoke_llm(prompt_text)
        logger.info("Successfully received quiz data from Gemini API")

        questions = extract_questions(text)
        for question in questions:
            if isinstance(question, dict):
                question["id"] = str(uuid.uuid4())
        return questions
