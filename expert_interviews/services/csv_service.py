from typing import Dict, List, Optional
from uuid import UUID

from fastapi import UploadFile
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from expert_interviews.core.config import settings
from expert_interviews.core.exceptions import CSVValidationError
from expert_interviews.crud.crud_question_pair import (
    QuestionPairRow, csv_file_crud, question_pair_crud
)
from expert_interviews.db.transaction import transaction
from expert_interviews.schemas.project import CSVUploadResponse

REQUIRED_COLUMNS = ["questionId", "questionText", "answerA", "answerB"]

QUOTE = '"'
DELIMITER = ","


def parse_csv(text: str) -> List[List[str]]:
    """
    Split CSV text into rows of trimmed cells.

    Double quotes enclose a field; inside an enclosure a doubled quote is a
    literal quote, and commas and line breaks are part of the field. Blank
    lines are skipped.
    """
    rows: List[List[str]] = []
    row: List[str] = []
    field: List[str] = []
    in_quotes = False

    def end_field():
        row.append("".join(field).strip())
        field.clear()

    def end_row():
        end_field()
        if any(cell for cell in row):
            rows.append(row.copy())
        row.clear()

    text = text.strip()
    i = 0
    while i < len(text):
        char = text[i]

        if in_quotes:
            if char == QUOTE:
                if i + 1 < len(text) and text[i + 1] == QUOTE:
                    field.append(QUOTE)
                    i += 1
                else:
                    in_quotes = False
            else:
                field.append(char)
        elif char == QUOTE:
            in_quotes = True
        elif char == DELIMITER:
            end_field()
        elif char == "\n":
            end_row()
        elif char == "\r":
            if i + 1 < len(text) and text[i + 1] == "\n":
                i += 1
            end_row()
        else:
            field.append(char)

        i += 1

    if field or row:
        end_row()

    return rows


def map_columns(header: List[str]) -> Dict[str, int]:
    """
    Locate the required columns in the header row, case-insensitively

    Raises:
        CSVValidationError: If any required column is missing
    """
    column_map: Dict[str, int] = {}
    for index, name in enumerate(header):
        if name:
            column_map.setdefault(name.lower(), index)

    missing = [col for col in REQUIRED_COLUMNS if col.lower() not in column_map]
    if missing:
        raise CSVValidationError(f"Missing required columns: {', '.join(missing)}")

    return {col: column_map[col.lower()] for col in REQUIRED_COLUMNS}


def extract_question_rows(rows: List[List[str]]) -> List[QuestionPairRow]:
    """
    Validate parsed rows and turn the data rows into question pairs

    Raises:
        CSVValidationError: If the file is too short, a column is missing, or
            any data row lacks a required value
    """
    if len(rows) < 2:
        raise CSVValidationError("CSV file must contain a header row and at least one data row")

    columns = map_columns(rows[0])

    question_rows = []
    for line_number, row in enumerate(rows[1:], start=2):
        values = {
            col: row[index] if index < len(row) else ""
            for col, index in columns.items()
        }
        missing = [col for col, value in values.items() if not value]
        if missing:
            raise CSVValidationError(
                f"Missing data in CSV row {line_number}: {', '.join(missing)}"
            )

        question_rows.append(
            QuestionPairRow(
                question_id=values["questionId"],
                question_text=values["questionText"],
                answer_a=values["answerA"],
                answer_b=values["answerB"],
            )
        )

    return question_rows


async def import_questions_csv(
        db: AsyncSession,
        *,
        project_id: UUID,
        csv_content: str,
        filename: Optional[str] = None,
) -> CSVUploadResponse:
    """
    Replace a project's question pairs with the contents of a CSV file.

    Every row is validated before anything is written, and the delete, the
    CSV file record and all inserts share one transaction.
    """
    question_rows = extract_question_rows(parse_csv(csv_content))

    async with transaction(db):
        csv_file = await csv_file_crud.create_active(
            db,
            project_id=project_id,
            filename=filename or "upload.csv",
            row_count=len(question_rows),
        )
        pairs = await question_pair_crud.replace_for_project(
            db,
            project_id=project_id,
            csv_file_id=csv_file.id,
            rows=question_rows,
        )

    logger.info(f"Imported {len(pairs)} question pairs into project {project_id} from {csv_file.filename}")
    return CSVUploadResponse(records_created=len(pairs), csv_file_id=csv_file.id)


async def read_upload(file: UploadFile) -> str:
    """
    Read an uploaded CSV file as text

    Raises:
        CSVValidationError: If the file is too large or not UTF-8
    """
    content = b""
    while chunk := await file.read(1024 * 1024):  # 1MB chunks
        content += chunk
        if len(content) > settings.MAX_CSV_UPLOAD_SIZE:
            raise CSVValidationError("CSV file is too large")

    try:
        # utf-8-sig drops the BOM spreadsheet exports tend to add
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise CSVValidationError("CSV file must be UTF-8 encoded")
