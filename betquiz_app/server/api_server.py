"""FastAPI server that exposes the teacher and student endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
import uvicorn

from betquiz_app.constants.network_constants import API_PREFIX, DEFAULT_HOST, DEFAULT_PORT
from betquiz_app.core.assessment_manager import AssessmentManager
from betquiz_app.core.errors import BetQuizError, InvalidInputError, QuestionImportError
from betquiz_app.core.models import QuestionRow
from betquiz_app.core.question_importer import TEMPLATE_CSV, load_zip, parse_csv, split_correct_answers, validate_records
from betquiz_app.core.services.assessment_registry import AssessmentDraft
from betquiz_app.core.services.question_store import QuestionStore
from betquiz_app.core.services.settlement import Submission
from betquiz_app.server import serializers

logger = logging.getLogger(__name__)


class QuestionPayload(BaseModel):
    """One question row as sent by the create form or returned by a preview."""

    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_answers: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("correct_answers", "correct_answer"),
    )
    multiple_correct: bool = False
    question_image: str | None = None
    option_a_image: str | None = None
    option_b_image: str | None = None
    option_c_image: str | None = None
    option_d_image: str | None = None

    @field_validator("correct_answers", mode="before")
    @classmethod
    def _split_answers(cls, value: object) -> object:
        if isinstance(value, str):
            return split_correct_answers(value)
        return value

    def to_row(self) -> QuestionRow:
        return QuestionRow(
            question=self.question,
            option_a=self.option_a,
            option_b=self.option_b,
            option_c=self.option_c,
            option_d=self.option_d,
            correct_answers=tuple(self.correct_answers),
            multiple_correct=self.multiple_correct,
            question_image=self.question_image,
            option_a_image=self.option_a_image,
            option_b_image=self.option_b_image,
            option_c_image=self.option_c_image,
            option_d_image=self.option_d_image,
        )


class _CamelPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreatePayload(_CamelPayload):
    """Payload schema for publishing an assessment."""

    name: str | None = None
    questions: list[QuestionPayload] = Field(default_factory=list)
    initial_coins: int | None = None
    win_multiplier: float | None = None
    timer_seconds: int | None = None
    total_duration: int | None = None
    student_code: str | None = None
    teacher_code: str | None = None


class JoinPayload(_CamelPayload):
    """Payload schema for the student join flow."""

    code: str = ""
    student_name: str = ""


class SubmitPayload(_CamelPayload):
    """Payload schema for a bet, skip or timeout."""

    bets: dict[str, object] = Field(default_factory=dict)
    skipped: bool = False
    no_answer: bool = False
    time_taken: float | None = 0


def _get_manager_dependency(manager: AssessmentManager):
    def dependency() -> AssessmentManager:
        return manager

    return dependency


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BetQuizError)
    async def handle_domain_error(request: Request, exc: BetQuizError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}"
            for error in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_api_app(
    manager: AssessmentManager,
    question_store: QuestionStore | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Create a FastAPI application wired to the provided assessment manager."""
    app = FastAPI(title="BetQuiz API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _install_error_handlers(app)
    manager_dep = _get_manager_dependency(manager)
    router = APIRouter(prefix=API_PREFIX)

    @router.get("/health")
    def health(manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        return {"status": "ok", "activeAssessments": manager.active_assessment_count()}

    @router.get("/template", response_class=PlainTextResponse)
    def download_template() -> PlainTextResponse:
        return PlainTextResponse(
            TEMPLATE_CSV,
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="questions_template.csv"'},
        )

    @router.post("/questions/preview")
    def preview_questions(file: UploadFile | None = File(default=None)) -> dict[str, object]:
        if file is None:
            raise InvalidInputError("No file uploaded")
        try:
            text = file.file.read().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise QuestionImportError("Failed to parse CSV file: not UTF-8 encoded") from exc
        records = parse_csv(text)
        return serializers.validation_report(validate_records(records))

    @router.post("/questions/upload_zip")
    def upload_zip(file: UploadFile | None = File(default=None)) -> dict[str, object]:
        if file is None:
            raise InvalidInputError("No file uploaded")
        try:
            rows = load_zip(file.file.read())
        except QuestionImportError as exc:
            logger.warning("ZIP upload rejected: %s", exc)
            raise
        body: dict[str, object] = {
            "success": True,
            "questions": [serializers.question_row(i, row) for i, row in enumerate(rows, start=1)],
        }
        if question_store is not None:
            body["inserted"] = question_store.insert_questions(rows)
        return body

    @router.get("/db/health")
    def database_health() -> JSONResponse:
        if question_store is None:
            return JSONResponse(status_code=503, content={"ok": False, "error": "no_database_configured"})
        question_store.ping()
        return JSONResponse(content={"ok": True})

    @router.post("/assessment/create")
    def create_assessment(
        payload: CreatePayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        assessment = manager.create_assessment(
            AssessmentDraft(
                questions=[q.to_row() for q in payload.questions],
                name=payload.name,
                initial_coins=payload.initial_coins,
                win_multiplier=payload.win_multiplier,
                timer_seconds=payload.timer_seconds,
                total_duration=payload.total_duration,
                student_code=payload.student_code,
                teacher_code=payload.teacher_code,
            )
        )
        return serializers.assessment_created(assessment)

    @router.post("/assessment/join")
    def join_assessment(
        payload: JoinPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        if not payload.code.strip() or not payload.student_name.strip():
            raise InvalidInputError("Code and name are required")
        return serializers.joined(manager.join_assessment(payload.code, payload.student_name))

    @router.get("/assessment/check/{code}")
    def check_code(code: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        return serializers.code_check(manager.check_code(code))

    @router.get("/assessment/{code}/student/{student_id}/question")
    def get_question(
        code: str,
        student_id: str,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return serializers.question_view(manager.get_current_question(code, student_id))

    @router.post("/assessment/{code}/student/{student_id}/submit")
    def submit_answer(
        code: str,
        student_id: str,
        payload: SubmitPayload,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        submission = Submission.parse(
            bets=payload.bets,
            skipped=payload.skipped,
            no_answer=payload.no_answer,
            time_taken=payload.time_taken,
        )
        return serializers.settlement(manager.submit_answer(code, student_id, submission))

    @router.get("/assessment/{code}/student/{student_id}/report")
    def student_report(
        code: str,
        student_id: str,
        manager: AssessmentManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return serializers.student_report(manager.student_report(code, student_id))

    @router.get("/assessment/{code}/teacher/report")
    def teacher_report(code: str, manager: AssessmentManager = Depends(manager_dep)) -> dict[str, object]:
        return serializers.teacher_report(manager.teacher_report(code))

    app.include_router(router)
    return app


def run_api_server(
    app: FastAPI,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> None:
    """Serve the application in the foreground until interrupted."""
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    uvicorn.Server(config).run()
