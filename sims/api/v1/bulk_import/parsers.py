"""
CSV / Excel handling for bulk import: turn an uploaded sheet into raw import
rows, and build the downloadable template for each role.
"""

import csv
import io
import secrets
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from openpyxl import Workbook, load_workbook

from sims.core.enums import AppRole, TemplateFormat

PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
GENERATED_PASSWORD_LENGTH = 8

HEADER_ALIASES = {"name": "nama"}

TEMPLATE_COLUMNS: Dict[AppRole, List[str]] = {
    AppRole.TEACHER: ["nama", "email", "password", "nip"],
    AppRole.STUDENT: ["nama", "email", "password", "nis", "kelas_id", "tanggal_lahir", "alamat"],
    AppRole.GUARDIAN: ["nama", "email", "password", "telepon", "alamat"],
}

TEMPLATE_EXAMPLES: Dict[AppRole, List[str]] = {
    AppRole.TEACHER: ["Budi Santoso", "budi@example.com", "password123", "123456789"],
    AppRole.STUDENT: ["Siti Aminah", "siti@example.com", "password123", "2024001", "", "2010-05-17", "Jl. Merdeka No. 1"],
    AppRole.GUARDIAN: ["Ahmad Hidayat", "ahmad@example.com", "password123", "081234567890", "Jl. Merdeka No. 1"],
}

CSV_MEDIA_TYPE = "text/csv"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    """Random password for rows uploaded without one. Ambiguous characters (0/O, 1/l/I) are left out."""
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def _normalize_header(value: Any) -> str:
    key = str(value).strip().lower() if value is not None else ""
    return HEADER_ALIASES.get(key, key)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    # Excel stores whole numbers (nip, nis, phone) as floats
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def rows_from_records(
    header: Sequence[Any],
    records: Iterable[Sequence[Any]],
    role: AppRole,
) -> List[Dict[str, str]]:
    """Map data rows onto header keys. Blank lines are skipped; every row gets the given role."""
    keys = [_normalize_header(h) for h in header]
    rows: List[Dict[str, str]] = []
    for values in records:
        cells = [_cell_text(v) for v in values]
        if not any(cells):
            continue
        row = {key: value for key, value in zip(keys, cells) if key}
        row["role"] = role.value
        if not row.get("password"):
            row["password"] = generate_password()
        rows.append(row)
    return rows


def read_csv(content: bytes) -> Tuple[List[str], List[List[str]]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")
    records = list(csv.reader(io.StringIO(text)))
    if not records:
        return [], []
    return records[0], records[1:]


def read_xlsx(content: bytes) -> Tuple[List[Any], List[Sequence[Any]]]:
    try:
        wb = load_workbook(filename=io.BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise ValueError(f"Invalid Excel file: {e}") from e
    try:
        ws = wb.worksheets[0]
        records = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()
    if not records:
        return [], []
    return list(records[0]), records[1:]


def parse_upload(filename: str, content: bytes, role: AppRole) -> List[Dict[str, str]]:
    """Raw import rows from an uploaded .csv or .xlsx file. Raises ValueError for unreadable files."""
    name = (filename or "").lower()
    if name.endswith(".csv"):
        header, records = read_csv(content)
    elif name.endswith(".xlsx"):
        header, records = read_xlsx(content)
    else:
        raise ValueError("Unsupported file type. Upload a .csv or .xlsx file")
    if not header:
        return []
    return rows_from_records(header, records, role)


def build_template(role: AppRole, fmt: TemplateFormat) -> Tuple[bytes, str, str]:
    """Template file for one role: (content, media type, filename)."""
    columns = TEMPLATE_COLUMNS[role]
    example = TEMPLATE_EXAMPLES[role]
    if fmt == TemplateFormat.CSV:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(columns)
        writer.writerow(example)
        return buf.getvalue().encode("utf-8"), CSV_MEDIA_TYPE, f"template_{role.value}.csv"

    wb = Workbook()
    ws = wb.active
    ws.title = role.value
    ws.append(columns)
    ws.append(example)
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue(), XLSX_MEDIA_TYPE, f"template_{role.value}.xlsx"
