"""Importing question sets from CSV files, Excel workbooks and ZIP bundles.

CSV format (header row required; one question per row):

    question,question_image,option_a,option_a_image,option_b,option_b_image,
    option_c,option_c_image,option_d,option_d_image,correct_answer,multiple_correct

``correct_answer`` (or ``correct_answers``) is a comma-separated list of option
letters, for example ``B`` or ``A,C``. ``multiple_correct`` is ``yes`` or ``no``.
Image columns are optional and only meaningful inside a ZIP bundle.

ZIP bundles contain ``questions.xlsx`` (or ``questions.csv``) at the archive
root and an ``images/`` folder. The workbook uses the CSV columns on its first
sheet. Image cells name a file in that folder; the file is embedded in the
question as a base64 data URI, re-encoded with Pillow first when it exceeds 2MB.
"""

from __future__ import annotations

import base64
import csv
from dataclasses import dataclass, field
import io
import logging
from pathlib import PurePosixPath
import zipfile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from PIL import Image, ImageOps, UnidentifiedImageError

from betquiz_app.constants.import_constants import (
    ALLOWED_IMAGE_EXTENSIONS,
    JPEG_QUALITY_STEPS,
    MAX_IMAGE_BYTES,
    MAX_IMAGE_SIZE,
    MAX_ZIP_BYTES,
    PNG_COMPRESS_LEVELS,
    ZIP_CSV_FILE,
    ZIP_IMAGES_DIR,
    ZIP_WORKBOOK_FILE,
)
from betquiz_app.core.errors import QuestionImportError
from betquiz_app.core.models import OPTION_IDS, QuestionRow

logger = logging.getLogger(__name__)

TEMPLATE_CSV = (
    "question,question_image,option_a,option_a_image,option_b,option_b_image,"
    "option_c,option_c_image,option_d,option_d_image,correct_answer,multiple_correct\n"
    '"What is the capital of France?","images/q1.jpg","London","images/q1_a.jpg","Paris",'
    '"images/q1_b.jpg","Berlin","","Madrid","","B","no"\n'
    '"Which are primary colors?","","Red","","Green","","Blue","","Yellow","","A,C","yes"\n'
    '"What is 5 + 7?","","10","","11","","12","","13","","C","no"\n'
)

_REQUIRED_COLUMNS = ("question", "option_a", "option_b", "option_c", "option_d", "multiple_correct")
_CORRECT_COLUMNS = ("correct_answer", "correct_answers")
_IMAGE_COLUMNS = (
    "question_image",
    "option_a_image",
    "option_b_image",
    "option_c_image",
    "option_d_image",
)


@dataclass(slots=True, frozen=True)
class RowError:
    row: int
    errors: list[str]


@dataclass(slots=True, frozen=True)
class ParsedQuestion:
    row: int
    question: QuestionRow


@dataclass(slots=True)
class ValidationReport:
    total_rows: int = 0
    errors: list[RowError] = field(default_factory=list)
    parsed_questions: list[ParsedQuestion] = field(default_factory=list)

    @property
    def valid(self) -> int:
        return len(self.parsed_questions)


def parse_csv(text: str) -> list[dict[str, str]]:
    """Parse CSV text into trimmed records keyed by lower-cased header names."""
    cleaned = text.lstrip("\ufeff")
    reader = csv.DictReader(io.StringIO(cleaned))
    if reader.fieldnames is None:
        raise QuestionImportError("CSV file is empty or has no data rows")

    records: list[dict[str, str]] = []
    for raw in reader:
        record = {
            (key or "").strip().lower(): (value or "").strip()
            for key, value in raw.items()
            if key is not None and not isinstance(value, list)
        }
        if any(record.values()):
            records.append(record)
    if not records:
        raise QuestionImportError("CSV file is empty or has no data rows")
    return records


def split_correct_answers(raw: str) -> list[str]:
    return [answer.strip().upper() for answer in raw.split(",") if answer.strip()]


def validate_records(records: list[dict[str, str]]) -> ValidationReport:
    """Check every record, collecting per-row errors instead of stopping at the first."""
    report = ValidationReport(total_rows=len(records))
    for index, record in enumerate(records):
        row_number = index + 2
        row_errors: list[str] = []

        for column in _REQUIRED_COLUMNS:
            if not record.get(column, "").strip():
                row_errors.append(f'Missing "{column}"')

        raw_correct = _correct_cell(record)
        answers = split_correct_answers(raw_correct)
        if not answers:
            row_errors.append('Missing "correct_answer"')
        invalid = [answer for answer in answers if answer not in OPTION_IDS]
        if invalid:
            row_errors.append(f'Invalid correct_answer: "{", ".join(invalid)}"')

        multiple = record.get("multiple_correct", "").strip().lower()
        if multiple and multiple not in ("yes", "no"):
            row_errors.append(f'Invalid multiple_correct: "{record.get("multiple_correct")}"')

        if row_errors:
            report.errors.append(RowError(row=row_number, errors=row_errors))
            continue

        report.parsed_questions.append(
            ParsedQuestion(
                row=row_number,
                question=QuestionRow(
                    question=record["question"],
                    option_a=record["option_a"],
                    option_b=record["option_b"],
                    option_c=record["option_c"],
                    option_d=record["option_d"],
                    correct_answers=tuple(answers),
                    multiple_correct=multiple == "yes",
                ),
            )
        )
    return report


def parse_xlsx(data: bytes) -> list[dict[str, str]]:
    """Read the first worksheet of a workbook into records shaped like ``parse_csv``'s."""
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise QuestionImportError(f"{ZIP_WORKBOOK_FILE} is not a readable Excel workbook") from exc

    records: list[dict[str, str]] = []
    try:
        rows = workbook.worksheets[0].iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            raise QuestionImportError("Workbook is empty or has no data rows")
        keys = [_cell_text(cell).lower() for cell in header]
        for values in rows:
            record = {key: _cell_text(value) for key, value in zip(keys, values) if key}
            if any(record.values()):
                records.append(record)
    finally:
        workbook.close()

    if not records:
        raise QuestionImportError("Workbook is empty or has no data rows")
    return records


def load_zip(data: bytes) -> list[QuestionRow]:
    """Read a ZIP bundle and return its questions with images embedded."""
    if len(data) > MAX_ZIP_BYTES:
        raise QuestionImportError(f"ZIP file too large (limit {MAX_ZIP_BYTES // (1024 * 1024)}MB)")
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as exc:
        raise QuestionImportError("Uploaded file is not a valid ZIP archive") from exc

    with archive:
        names = set(archive.namelist())
        records = _read_question_sheet(archive, names)

        header = set(records[0])
        if not any(column in header for column in _CORRECT_COLUMNS):
            raise QuestionImportError("Missing required column: correct_answer or correct_answers")
        for column in _REQUIRED_COLUMNS:
            if column not in header:
                raise QuestionImportError(f"Missing required column: {column}")

        report = validate_records(records)
        if report.errors:
            first = report.errors[0]
            raise QuestionImportError(f"Row {first.row}: {'; '.join(first.errors)}")

        questions: list[QuestionRow] = []
        for parsed, record in zip(report.parsed_questions, records):
            images = {
                column: _embed_image(archive, names, record.get(column, ""), parsed.row)
                for column in _IMAGE_COLUMNS
            }
            base = parsed.question
            questions.append(
                QuestionRow(
                    question=base.question,
                    option_a=base.option_a,
                    option_b=base.option_b,
                    option_c=base.option_c,
                    option_d=base.option_d,
                    correct_answers=base.correct_answers,
                    multiple_correct=base.multiple_correct,
                    **images,
                )
            )

    logger.info("Imported %d questions from ZIP bundle", len(questions))
    return questions


def _read_question_sheet(archive: zipfile.ZipFile, names: set[str]) -> list[dict[str, str]]:
    if ZIP_WORKBOOK_FILE in names:
        return parse_xlsx(archive.read(ZIP_WORKBOOK_FILE))
    if ZIP_CSV_FILE in names:
        try:
            text = archive.read(ZIP_CSV_FILE).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise QuestionImportError(f"{ZIP_CSV_FILE} must be UTF-8 encoded") from exc
        return parse_csv(text)
    raise QuestionImportError(f"{ZIP_WORKBOOK_FILE} not found in ZIP root")


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    # Whole-number cells come back from openpyxl as floats.
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _correct_cell(record: dict[str, str]) -> str:
    for column in _CORRECT_COLUMNS:
        if record.get(column):
            return record[column]
    return ""


def _embed_image(archive: zipfile.ZipFile, names: set[str], cell: str, row_number: int) -> str | None:
    raw = cell.strip()
    if not raw:
        return None

    filename = PurePosixPath(raw.replace("\\", "/")).name
    member = f"{ZIP_IMAGES_DIR}/{filename}"
    if member not in names:
        raise QuestionImportError(f"Missing image file for '{filename}' referenced on row {row_number}")
    if PurePosixPath(filename).suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
        raise QuestionImportError(f"Invalid image format for {filename} on row {row_number}")
    if archive.getinfo(member).file_size > MAX_ZIP_BYTES:
        raise QuestionImportError(f"Image {filename} on row {row_number} is too large")

    payload = archive.read(member)
    try:
        with Image.open(io.BytesIO(payload)) as image:
            image_format = (image.format or "").lower()
            if image_format not in ("jpeg", "png"):
                raise QuestionImportError(f"Invalid image format for {filename} on row {row_number}")
            if len(payload) > MAX_IMAGE_BYTES:
                payload = _shrink_image(image, image_format, filename)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise QuestionImportError(f"Invalid image format for {filename} on row {row_number}") from exc

    return f"data:image/{image_format};base64,{base64.b64encode(payload).decode('ascii')}"


def _shrink_image(image: Image.Image, image_format: str, filename: str) -> bytes:
    """Re-encode an oversized image, stepping compression down until it fits."""
    picture = ImageOps.exif_transpose(image)
    picture.thumbnail(MAX_IMAGE_SIZE)
    if image_format == "jpeg":
        if picture.mode not in ("RGB", "L"):
            picture = picture.convert("RGB")
        attempts = [{"quality": quality} for quality in JPEG_QUALITY_STEPS]
    else:
        attempts = [{"compress_level": level} for level in PNG_COMPRESS_LEVELS]

    for options in attempts:
        buffer = io.BytesIO()
        picture.save(buffer, format=image_format.upper(), **options)
        if buffer.tell() <= MAX_IMAGE_BYTES:
            logger.info("Recompressed %s to %d bytes", filename, buffer.tell())
            return buffer.getvalue()
    raise QuestionImportError(f"Unable to compress {filename} under 2MB")
