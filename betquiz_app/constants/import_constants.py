"""Limits applied to uploaded question files."""

MAX_ZIP_BYTES: int = 50 * 1024 * 1024
MAX_IMAGE_BYTES: int = 2 * 1024 * 1024
MAX_IMAGE_SIZE: tuple[int, int] = (1920, 1080)
ALLOWED_IMAGE_EXTENSIONS: frozenset[str] = frozenset({".png", ".jpg", ".jpeg"})
JPEG_QUALITY_STEPS: tuple[int, ...] = (90, 80, 70, 60, 50, 40, 30)
PNG_COMPRESS_LEVELS: tuple[int, ...] = (9, 7, 5, 3, 1)
ZIP_WORKBOOK_FILE: str = "questions.xlsx"
ZIP_CSV_FILE: str = "questions.csv"
ZIP_IMAGES_DIR: str = "images"
