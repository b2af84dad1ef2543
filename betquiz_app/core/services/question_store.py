"""Optional relational persistence for bulk-imported questions."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
import logging

from sqlalchemy import DateTime, Integer, String, Text, create_engine, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from betquiz_app.core.errors import PersistenceError
from betquiz_app.core.models import QuestionRow

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class StoredQuestion(Base):
    __tablename__ = "questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    position: Mapped[int] = mapped_column(Integer)
    question: Mapped[str] = mapped_column(Text)
    question_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_a: Mapped[str] = mapped_column(Text)
    option_a_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_b: Mapped[str] = mapped_column(Text)
    option_b_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_c: Mapped[str] = mapped_column(Text)
    option_c_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    option_d: Mapped[str] = mapped_column(Text)
    option_d_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    correct_answer: Mapped[str] = mapped_column(String(16))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class QuestionStore:
    """Writes imported question rows, one transaction per import."""

    def __init__(self, database_url: str) -> None:
        self._engine = create_engine(database_url, pool_pre_ping=True)
        self._sessions = sessionmaker(bind=self._engine, expire_on_commit=False)
        Base.metadata.create_all(self._engine)

    def insert_questions(self, rows: Sequence[QuestionRow]) -> list[int]:
        """Insert every row or none of them; returns the new primary keys."""
        try:
            with self._sessions.begin() as session:
                records = [self._to_record(position, row) for position, row in enumerate(rows, start=1)]
                session.add_all(records)
                session.flush()
                inserted = [record.id for record in records]
        except SQLAlchemyError as exc:
            logger.exception("Question insert failed; transaction rolled back")
            raise PersistenceError(f"DB insert failed: {exc}") from exc
        logger.info("Persisted %d imported questions", len(inserted))
        return inserted

    def count(self) -> int:
        with Session(self._engine) as session:
            return session.scalar(select(func.count()).select_from(StoredQuestion)) or 0

    def ping(self) -> None:
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    def dispose(self) -> None:
        self._engine.dispose()

    @staticmethod
    def _to_record(position: int, row: QuestionRow) -> StoredQuestion:
        return StoredQuestion(
            position=position,
            question=row.question,
            question_image=row.question_image,
            option_a=row.option_a,
            option_a_image=row.option_a_image,
            option_b=row.option_b,
            option_b_image=row.option_b_image,
            option_c=row.option_c,
            option_c_image=row.option_c_image,
            option_d=row.option_d,
            option_d_image=row.option_d_image,
            correct_answer=",".join(row.correct_answers),
        )
