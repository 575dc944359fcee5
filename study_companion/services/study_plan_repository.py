import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import sessionmaker

from study_companion.models import StudyPlanRecord

logger = logging.getLogger(__name__)


class StudyPlanRepository:
    """Archive of generated study plans, looked up by subject."""

    def __init__(self, engine):
        self.SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

    def _serialize(self, record: StudyPlanRecord) -> Dict[str, Any]:
        created_at = record.created_at or datetime.now(timezone.utc)
        return {
            "id": record.id,
            "subject": record.subject,
            "topics": record.topics or [],
            "examDateTime": record.exam_date_time,
            "content": record.content,
            "createdAt": created_at.isoformat(),
        }

    def save_study_plan(
        self,
        subject: str,
        topics: List[str],
        exam_date_time: str,
        content: str,
    ) -> Dict[str, Any]:
        session = self.SessionLocal()
        try:
            record = StudyPlanRecord(
                subject=subject,
                topics=list(topics),
                exam_date_time=exam_date_time,
                content=content,
                created_at=datetime.now(timezone.utc),
            )
            session.add(record)
            session.commit()
            logger.info(f"Archived study plan {record.id} for {subject}")
            return self._serialize(record)
        except Exception as e:
            session.rollback()
            logger.error(f"Failed to save study plan for {subject}: {e}")
            raise
        finally:
            session.close()

    def get_study_plan(self, subject: str) -> Optional[Dict[str, Any]]:
        """Most recent plan archived for ``subject``"""
        session = self.SessionLocal()
        try:
            record = (
                session.query(StudyPlanRecord)
                .filter(StudyPlanRecord.subject == subject)
                .order_by(desc(StudyPlanRecord.created_at), desc(StudyPlanRecord.id))
                .first()
            )
            return self._serialize(record) if record else None
        except Exception as e:
            logger.error(f"Failed to fetch study plan for {subject}: {e}")
            raise
        finally:
            session.close()
