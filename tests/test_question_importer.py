from __future__ import annotations

import base64
import io
import random
import zipfile

from openpyxl import Workbook
from PIL import Image
import pytest

from betquiz_app.constants.import_constants import MAX_IMAGE_BYTES
from betquiz_app.core.errors import QuestionImportError
from betquiz_app.core.question_importer import TEMPLATE_CSV, load_zip, parse_csv, validate_records

HEADER = "question,option_a,option_b,option_c,option_d,correct_answer,multiple_correct\n"
IMAGE_HEADER = (
    "question,question_image,option_a,option_a_image,option_b,option_b_image,"
    "option_c,option_c_image,option_d,option_d_image,correct_answer,multiple_correct\n"
)


def _image_bytes(image_format: str, size: tuple[int, int] = (8, 6)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buffer, format=image_format)
    return buffer.getvalue()


def _zip(files: dict[str, bytes | str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def test_template_validates_cleanly():
    report = validate_records(parse_csv(TEMPLATE_CSV))

    assert report.total_rows == 3
    assert report.errors == []
    assert report.valid == 3
    primary = report.parsed_questions[1].question
    assert primary.correct_answers == ("A", "C")
    assert primary.multiple_correct is True


def test_byte_order_mark_and_header_case_are_ignored():
    text = "\ufeff" + HEADER.upper() + "What is 2 + 2?,3,4,5,22,b,NO\n"
    report = validate_records(parse_csv(text))

    assert report.valid == 1
    question = report.parsed_questions[0].question
    assert question.question == "What is 2 + 2?"
    assert question.correct_answers == ("B",)
    assert question.multiple_correct is False


def test_row_errors_are_collected_per_row():
    text = HEADER + "Q1,a,b,c,d,B,no\n" + ",a,b,c,d,E,maybe\n" + "Q3,a,b,c,d,,no\n" + ",,,,,,\n"
    report = validate_records(parse_csv(text))

    assert report.total_rows == 3
    assert [parsed.row for parsed in report.parsed_questions] == [2]
    assert [(error.row, error.errors) for error in report.errors] == [
        (3, ['Missing "question"', 'Invalid correct_answer: "E"', 'Invalid multiple_correct: "maybe"']),
        (4, ['Missing "correct_answer"']),
    ]


def test_plural_correct_answers_column_is_accepted():
    text = "question,option_a,option_b,option_c,option_d,correct_answers,multiple_correct\n"
    text += 'Odd ones?,1,2,3,4,"a, c",yes\n'
    report = validate_records(parse_csv(text))

    assert report.parsed_questions[0].question.correct_answers == ("A", "C")


@pytest.mark.parametrize("text", ["", HEADER, HEADER + ",,,,,,\n"])
def test_empty_csv_is_rejected(text):
    with pytest.raises(QuestionImportError, match="empty"):
        parse_csv(text)


def test_zip_embeds_images_as_data_uris():
    png = _image_bytes("PNG")
    jpeg = _image_bytes("JPEG")
    csv_text = IMAGE_HEADER + 'Which logo?,images/q1.png,A,,B,sub/dir/b.JPG,C,,D,,"A,B",yes\n'
    data = _zip({"questions.csv": csv_text, "images/q1.png": png, "images/b.JPG": jpeg})

    [row] = load_zip(data)

    assert row.question == "Which logo?"
    assert row.question_image == "data:image/png;base64," + base64.b64encode(png).decode("ascii")
    assert row.option_b_image == "data:image/jpeg;base64," + base64.b64encode(jpeg).decode("ascii")
    assert row.option_a_image is None
    assert row.correct_answers == ("A", "B")
    assert row.multiple_correct is True


def test_zip_reads_questions_from_workbook():
    png = _image_bytes("PNG")
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(IMAGE_HEADER.strip().split(","))
    sheet.append(["What is 2 + 2?", "images/q1.png", 3, None, 4, None, 5, None, 22, None, "B", "no"])
    sheet.append([None] * 12)
    sheet.append(["Which are odd?", None, 1, None, 2, None, 3, None, 4, None, "A,C", "yes"])
    buffer = io.BytesIO()
    workbook.save(buffer)
    data = _zip(
        {
            "questions.xlsx": buffer.getvalue(),
            "questions.csv": HEADER + "Ignored,a,b,c,d,A,no\n",
            "images/q1.png": png,
        }
    )

    first, second = load_zip(data)

    assert first.question == "What is 2 + 2?"
    assert first.option_texts() == ["3", "4", "5", "22"]
    assert first.correct_answers == ("B",)
    assert first.question_image == "data:image/png;base64," + base64.b64encode(png).decode("ascii")
    assert second.correct_answers == ("A", "C")
    assert second.multiple_correct is True
    assert second.question_image is None


def test_unreadable_workbook_is_rejected():
    with pytest.raises(QuestionImportError, match="not a readable Excel workbook"):
        load_zip(_zip({"questions.xlsx": b"not a workbook"}))


def test_zip_without_question_sheet_is_rejected():
    with pytest.raises(QuestionImportError, match="questions.xlsx not found in ZIP root"):
        load_zip(_zip({"nested/questions.csv": HEADER + "Q,a,b,c,d,A,no\n"}))


def test_non_zip_upload_is_rejected():
    with pytest.raises(QuestionImportError, match="not a valid ZIP"):
        load_zip(b"definitely not a zip")


def test_zip_missing_required_column_is_rejected():
    csv_text = "question,option_a,option_b,option_c,option_d,correct_answer\nQ,a,b,c,d,A\n"
    with pytest.raises(QuestionImportError, match="Missing required column: multiple_correct"):
        load_zip(_zip({"questions.csv": csv_text}))


def test_zip_reports_first_invalid_row():
    csv_text = HEADER + "Q1,a,b,c,d,A,no\nQ2,a,b,c,d,Z,no\n"
    with pytest.raises(QuestionImportError, match=r'Row 3: Invalid correct_answer: "Z"'):
        load_zip(_zip({"questions.csv": csv_text}))


def test_zip_missing_image_is_rejected():
    csv_text = IMAGE_HEADER + "Q,images/gone.png,a,,b,,c,,d,,A,no\n"
    with pytest.raises(QuestionImportError, match="Missing image file for 'gone.png' referenced on row 2"):
        load_zip(_zip({"questions.csv": csv_text}))


@pytest.mark.parametrize(
    ("filename", "content"),
    [("anim.gif", b"GIF89a"), ("fake.png", b"\x89PNG\r\n\x1a\nnot really"), ("gif.jpg", None)],
)
def test_zip_rejects_files_that_are_not_png_or_jpeg(filename, content):
    if content is None:
        content = _image_bytes("GIF")
    csv_text = IMAGE_HEADER + f"Q,images/{filename},a,,b,,c,,d,,A,no\n"
    data = _zip({"questions.csv": csv_text, f"images/{filename}": content})
    with pytest.raises(QuestionImportError, match=f"Invalid image format for {filename} on row 2"):
        load_zip(data)


def test_oversized_image_is_resized_and_recompressed():
    # Trailing bytes after the JPEG end marker inflate the file without changing the picture.
    bloated = _image_bytes("JPEG", size=(4000, 300)) + b"\0" * (MAX_IMAGE_BYTES + 1)
    csv_text = IMAGE_HEADER + "Q,images/big.jpg,a,,b,,c,,d,,A,no\n"
    data = _zip({"questions.csv": csv_text, "images/big.jpg": bloated})

    [row] = load_zip(data)

    prefix = "data:image/jpeg;base64,"
    assert row.question_image.startswith(prefix)
    encoded = base64.b64decode(row.question_image[len(prefix):])
    assert len(encoded) <= MAX_IMAGE_BYTES
    with Image.open(io.BytesIO(encoded)) as image:
        assert image.format == "JPEG"
        assert image.size == (1920, 144)


def test_incompressible_image_is_rejected():
    noise = Image.frombytes("RGB", (1920, 1080), random.Random(7).randbytes(1920 * 1080 * 3))
    buffer = io.BytesIO()
    noise.save(buffer, format="PNG", compress_level=1)
    assert buffer.tell() > MAX_IMAGE_BYTES
    csv_text = IMAGE_HEADER + "Q,images/noise.png,a,,b,,c,,d,,A,no\n"
    data = _zip({"questions.csv": csv_text, "images/noise.png": buffer.getvalue()})

    with pytest.raises(QuestionImportError, match="Unable to compress noise.png under 2MB"):
        load_zip(data)
