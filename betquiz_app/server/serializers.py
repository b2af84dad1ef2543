"""Conversion of core results into the camelCase JSON bodies clients expect."""

from __future__ import annotations

from betquiz_app.core.assessment_manager import CodeCheck, JoinResult, QuestionView
from betquiz_app.core.markdown_renderer import renderer
from betquiz_app.core.models import Assessment, BetResult, CompletionReason, Question, QuestionRow, Response
from betquiz_app.core.question_importer import ValidationReport
from betquiz_app.core.scoring import Persona, round_half_up
from betquiz_app.core.services.report_builder import (
    QuestionAnalysis,
    StudentReport,
    StudentStats,
    TeacherReport,
)
from betquiz_app.core.services.settlement import SettlementResult

Payload = dict[str, object]


def assessment_created(assessment: Assessment) -> Payload:
    return {
        "success": True,
        "studentCode": assessment.student_code,
        "teacherCode": assessment.teacher_code,
        "assessmentName": assessment.name,
        "questionCount": assessment.question_count,
        "initialCoins": assessment.initial_coins,
        "winMultiplier": assessment.win_multiplier,
        "timerSeconds": assessment.timer_seconds,
        "totalDuration": assessment.total_duration,
    }


def joined(result: JoinResult) -> Payload:
    assessment = result.assessment
    return {
        "success": True,
        "studentId": result.student_id,
        "assessmentName": assessment.name,
        "questionCount": assessment.question_count,
        "initialCoins": assessment.initial_coins,
        "winMultiplier": assessment.win_multiplier,
        "totalDuration": assessment.total_duration,
        "remainingTime": result.remaining_time,
        "currentQuestion": result.current_question,
        "currentCoins": result.current_coins,
    }


def code_check(check: CodeCheck) -> Payload:
    return {
        "success": True,
        "isTeacher": check.is_teacher,
        "assessmentName": check.assessment_name,
        "questionCount": check.question_count,
    }


def question(item: Question, include_answers: bool = False) -> Payload:
    payload: Payload = {
        "id": item.id,
        "text": item.text,
        "html": renderer.render_fragment(item.text),
        "image": item.image,
        "options": [{"id": o.id, "text": o.text, "image": o.image} for o in item.options],
        "multipleCorrect": item.multiple_correct,
    }
    if include_answers:
        payload["correctAnswers"] = sorted(item.correct_answers)
    return payload


def question_view(view: QuestionView) -> Payload:
    if view.complete:
        payload: Payload = {"complete": True}
        # Running out of questions is reported without a reason.
        if view.reason is not None and view.reason is not CompletionReason.FINISHED:
            payload["reason"] = view.reason.value
            payload["currentCoins"] = view.current_coins
        return payload
    return {
        "questionNumber": view.question_number,
        "totalQuestions": view.total_questions,
        "question": question(view.question),
        "currentCoins": view.current_coins,
        "remainingTime": view.remaining_time,
    }


def bet_result(result: BetResult) -> Payload:
    if result.correct:
        return {"amount": result.amount, "correct": True, "payout": result.payout, "profit": result.profit}
    return {"amount": result.amount, "correct": False, "lost": result.lost}


def response(item: Response) -> Payload:
    payload: Payload = {
        "questionId": item.question_id,
        "questionText": item.question_text,
        "timeTaken": item.time_taken,
        "correctAnswers": list(item.correct_answers),
        "skipped": item.skipped,
        "noAnswer": item.no_answer,
        "coinsAfter": item.coins_after,
        "correct": item.correct,
        "confidenceLevel": item.confidence_level.value,
    }
    if item.penalty is not None:
        payload["penalty"] = item.penalty
    if item.is_bet:
        payload.update(
            {
                "bets": dict(item.bets or {}),
                "betResults": {k: bet_result(v) for k, v in (item.bet_results or {}).items()},
                "coinsReturned": item.coins_returned,
                "coinsLost": item.coins_lost,
                "netChange": item.net_change,
                "confidencePercent": item.confidence_percent,
            }
        )
    return payload


def settlement(result: SettlementResult) -> Payload:
    if result.time_up:
        results: Payload = {
            "timeUp": True,
            "isLastQuestion": True,
            "newTotal": result.new_total,
            "remainingTime": 0,
        }
    else:
        results = response(result.response) if result.response is not None else {}
        results.update(
            {
                "newTotal": result.new_total,
                "isLastQuestion": result.is_last_question,
                "remainingTime": result.remaining_time,
            }
        )
    return {"success": True, "results": results}


def persona(item: Persona) -> Payload:
    return {"name": item.name, "emoji": item.emoji, "message": item.message}


def _stats_summary(stats: StudentStats) -> Payload:
    return {
        "answered": stats.answered,
        "correct": stats.correct,
        "wrong": stats.wrong,
        "skipped": stats.skipped,
        "noAnswer": stats.no_answer,
        "accuracy": round_half_up(stats.accuracy),
        "avgConfidence": round_half_up(stats.avg_confidence),
        "knowledgeScore": stats.knowledge_score,
        "persona": persona(stats.persona),
        "responses": [response(r) for r in stats.responses],
    }


def student_report(report: StudentReport) -> Payload:
    stats = report.stats
    body: Payload = {
        "studentName": report.student_name,
        "assessmentName": report.assessment_name,
        "date": report.date.isoformat(),
        "finalCoins": report.final_coins,
        "initialCoins": report.initial_coins,
        "rank": report.rank,
        "totalStudents": report.total_students,
        "totalQuestions": report.total_questions,
        "avgTime": round_half_up(stats.avg_time),
        "wrongQuestions": report.wrong_questions,
        "winMultiplier": report.win_multiplier,
        "totalDuration": report.total_duration,
    }
    body.update(_stats_summary(stats))
    return {"success": True, "report": body}


def _student_row(stats: StudentStats) -> Payload:
    row: Payload = {
        "id": stats.id,
        "name": stats.name,
        "coins": stats.coins,
        "completed": stats.completed,
        "questionsAnswered": stats.questions_answered,
    }
    row.update(_stats_summary(stats))
    return row


def _question_analysis(item: QuestionAnalysis) -> Payload:
    return {
        "questionNumber": item.question_number,
        "questionText": item.question_text,
        "correctAnswers": list(item.correct_answers),
        "attempted": item.attempted,
        "correct": item.correct,
        "skipped": item.skipped,
        "accuracy": item.accuracy,
        "commonWrongAnswers": dict(item.common_wrong_answers),
        "misconceptionAlert": item.misconception_alert,
    }


def teacher_report(report: TeacherReport) -> Payload:
    class_stats = report.class_stats
    return {
        "success": True,
        "report": {
            "assessmentName": report.assessment_name,
            "date": report.date.isoformat(),
            "settings": {
                "initialCoins": report.initial_coins,
                "winMultiplier": report.win_multiplier,
                "totalDuration": report.total_duration,
            },
            "classStats": {
                "totalStudents": class_stats.total_students,
                "completedStudents": class_stats.completed_students,
                "avgCoins": class_stats.avg_coins,
                "avgAccuracy": class_stats.avg_accuracy,
                "avgKnowledgeScore": class_stats.avg_knowledge_score,
            },
            "studentStats": [_student_row(s) for s in report.student_stats],
            "questionAnalysis": [_question_analysis(q) for q in report.question_analysis],
            "studentsNeedingHelp": report.students_needing_help,
            "questions": [question(q, include_answers=True) for q in report.questions],
        },
    }


def validation_report(report: ValidationReport) -> Payload:
    return {
        "success": True,
        "totalRows": report.total_rows,
        "validQuestions": report.valid,
        "errors": [{"row": e.row, "errors": list(e.errors)} for e in report.errors],
        "parsedQuestions": [
            {
                "row": parsed.row,
                "question": parsed.question.question,
                "option_a": parsed.question.option_a,
                "option_b": parsed.question.option_b,
                "option_c": parsed.question.option_c,
                "option_d": parsed.question.option_d,
                "correct_answers": list(parsed.question.correct_answers),
                "multiple_correct": parsed.question.multiple_correct,
            }
            for parsed in report.parsed_questions
        ],
    }


def question_row(position: int, row: QuestionRow) -> Payload:
    return {
        "position": position,
        "question": row.question,
        "question_image": row.question_image,
        "option_a": row.option_a,
        "option_a_image": row.option_a_image,
        "option_b": row.option_b,
        "option_b_image": row.option_b_image,
        "option_c": row.option_c,
        "option_c_image": row.option_c_image,
        "option_d": row.option_d,
        "option_d_image": row.option_d_image,
        "correct_answers": list(row.correct_answers),
        "multiple_correct": row.multiple_correct,
    }
