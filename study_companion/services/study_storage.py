import json
import logging
from typing import List, Optional

from study_companion.models.schemas import Note, QuizResult, StudyPlan, TopicProgress

logger = logging.getLogger(__name__)

STORAGE_KEYS = {
    "STUDY_PLAN": "smartstudy_plan",
    "TOPICS_PROGRESS": "smartstudy_topics_progress",
    "NOTES": "smartstudy_notes",
    "QUIZ_RESULTS": "smartstudy_quiz_results",
}


class StudyStorage:
    """Key-based persistence of the learner's plan, progress, notes and quiz results.

    Each key holds one JSON document, written whole on every change.
    """

    def __init__(self, backend):
        self.backend = backend

    def _read(self, key: str):
        raw = self.backend.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def _write(self, key: str, value) -> None:
        self.backend.set(key, json.dumps(value))

    # Study plan

    def save_study_plan(self, plan: StudyPlan) -> List[TopicProgress]:
        """Store the plan and reset topic progress to zero for each of its topics"""
        self._write(STORAGE_KEYS["STUDY_PLAN"], plan.model_dump(by_alias=True))
        topics = [TopicProgress(name=topic, progress=0) for topic in plan.topics]
        self.save_topics_progress(topics)
        logger.info(f"Saved study plan for {plan.subject} with {len(topics)} topics")
        return topics

    def get_study_plan(self) -> Optional[StudyPlan]:
        data = self._read(STORAGE_KEYS["STUDY_PLAN"])
        return StudyPlan.model_validate(data) if data else None

    # Topic progress

    def save_topics_progress(self, topics: List[TopicProgress]) -> None:
        self._write(STORAGE_KEYS["TOPICS_PROGRESS"], [t.model_dump(by_alias=True) for t in topics])

    def get_topics_progress(self) -> List[TopicProgress]:
        data = self._read(STORAGE_KEYS["TOPICS_PROGRESS"]) or []
        return [TopicProgress.model_validate(t) for t in data]

    def update_topic_progress(self, topic_id: str, new_progress: int) -> Optional[TopicProgress]:
        """Set progress for one topic; returns the updated entry, or None for an unknown id"""
        topics = self.get_topics_progress()
        updated = None
        for topic in topics:
            if topic.id == topic_id:
                topic.progress = new_progress
                updated = topic
        self.save_topics_progress(topics)
        return updated

    # Notes

    def save_note(self, note: Note) -> Note:
        notes = self.get_saved_notes()
        notes.append(note)
        self._write(STORAGE_KEYS["NOTES"], [n.model_dump(by_alias=True) for n in notes])
        return note

    def get_saved_notes(self) -> List[Note]:
        data = self._read(STORAGE_KEYS["NOTES"]) or []
        return [Note.model_validate(n) for n in data]

    def delete_note(self, note_id: str) -> bool:
        notes = self.get_saved_notes()
        remaining = [n for n in notes if n.id != note_id]
        self._write(STORAGE_KEYS["NOTES"], [n.model_dump(by_alias=True) for n in remaining])
        return len(remaining) != len(notes)

    # Quiz results

    def save_quiz_result(self, result: QuizResult) -> QuizResult:
        results = self.get_quiz_results()
        results.append(result)
        self._write(STORAGE_KEYS["QUIZ_RESULTS"], [r.model_dump(by_alias=True) for r in results])
        return result

    def get_quiz_results(self) -> List[QuizResult]:
        data = self._read(STORAGE_KEYS["QUIZ_RESULTS"]) or []
        return [QuizResult.model_validate(r) for r in data]

    def record_quiz_score(self, topic: str, score: int) -> bool:
        """
        Store a quiz result and raise the topic's progress to the score.

        Progress only moves up: a score at or below the current progress
        leaves it unchanged.

        Returns:
            True if the topic's progress was updated
        """
        self.save_quiz_result(QuizResult(topic=topic, score=score))

        selected = next((t for t in self.get_topics_progress() if t.name == topic), None)
        if selected is None or score <= selected.progress:
            return False

        self.update_topic_progress(selected.id, score)
        logger.info(f"Progress for {topic} updated to {score}%")
        return True

    def clear_all_data(self) -> None:
        self.backend.delete(*STORAGE_KEYS.values())
        logger.info("Cleared all study data")
