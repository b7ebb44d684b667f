"""
CSV/Excel parsing for activity record uploads.

Turns an uploaded sheet into the entry mappings the ingestion service
expects. Column headers are matched against synonym lists ("Mine ID",
"Site ID" and "Unit ID" all become ``site_id``). Values are passed through
untouched: amount validation, including the refusal of negative values,
happens at ingestion.
"""

import csv
import io
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple
from zipfile import BadZipFile

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from carbonledger.core.errors import InvalidInput

logger = logging.getLogger(__name__)

EMISSION = "emission"
VALUE_CHAIN = "value_chain"

SITE_SYNONYMS = {"siteid", "mineid", "unitid", "site", "mine"}
AMOUNT_SYNONYMS = {"amount", "quantity", "value", "consumption", "qty", "total"}
UNIT_SYNONYMS = {"unit", "units", "uom", "measurement"}
DATE_SYNONYMS = {"date", "time", "period", "activitydate", "recordedat"}
VENDOR_SYNONYMS = {"vendorname", "vendor", "supplier", "suppliername", "company", "source"}
ACTIVITY_SYNONYMS = {"activitytype", "activity", "type", "emissionsource"}
CATEGORY_SYNONYMS = {"category", "emissioncategory", "type"}
SUB_CATEGORY_SYNONYMS = {"subcategory", "subtype"}

COMMON_FIELDS = (
    ("site_id", SITE_SYNONYMS),
    ("amount", AMOUNT_SYNONYMS),
    ("unit", UNIT_SYNONYMS),
    ("date", DATE_SYNONYMS),
)

FIELD_SYNONYMS = {
    EMISSION: COMMON_FIELDS + (("activity_type", ACTIVITY_SYNONYMS),),
    VALUE_CHAIN: COMMON_FIELDS + (
        ("category", CATEGORY_SYNONYMS),
        ("sub_category", SUB_CATEGORY_SYNONYMS),
        ("vendor_name", VENDOR_SYNONYMS),
    ),
}


def normalize_header(header: Any) -> str:
    """'Mine ID ' -> 'mineid'"""
    return re.sub(r"[^a-z0-9]", "", str(header or "").casefold())


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class RecordImporter:
    """
    Parses uploads and maps their columns onto record fields.

    A row without a site reference is filled from ``default_site_id`` when
    one is configured; otherwise the row is left as is and ingestion will
    reject it.
    """

    def __init__(self, kind: str = EMISSION, default_site_id: Optional[str] = None):
        if kind not in FIELD_SYNONYMS:
            raise ValueError(f"Unknown record kind: {kind}")
        self.kind = kind
        self.default_site_id = default_site_id
        self._header_map = {
            synonym: field
            for field, synonyms in FIELD_SYNONYMS[kind]
            for synonym in synonyms
        }

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_csv(self, content: bytes) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Parse CSV content into rows.

        Returns:
            Tuple of (rows, column_names)
        """
        # Try to decode as UTF-8 (BOM tolerated), fallback to latin-1
        try:
            text_content = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            text_content = content.decode("latin-1")

        try:
            reader = csv.DictReader(io.StringIO(text_content))
            columns = [c for c in (reader.fieldnames or []) if c]
            rows = [
                {key: _clean(value) for key, value in row.items() if key}
                for row in reader
            ]
        except csv.Error as e:
            logger.error(f"CSV parsing error: {e}")
            raise InvalidInput(f"Failed to parse CSV: {e}", field="file")

        rows = [row for row in rows if any(not _is_blank(v) for v in row.values())]
        return rows, columns

    def parse_excel(self, content: bytes) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Parse the first worksheet of an Excel workbook into rows.

        Returns:
            Tuple of (rows, column_names)
        """
        try:
            wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, BadZipFile, KeyError, OSError) as e:
            logger.error(f"Excel parsing error: {e}")
            raise InvalidInput(f"Failed to parse Excel: {e}", field="file")

        try:
            ws = wb.active
            rows_iter = ws.iter_rows(values_only=True)
            header = next(rows_iter, None)

            if not header:
                raise InvalidInput("Excel file has no header row", field="file")

            columns = [
                str(c).strip() if c is not None else f"col_{i}"
                for i, c in enumerate(header)
            ]

            rows = []
            for row_values in rows_iter:
                if any(not _is_blank(v) for v in row_values):
                    rows.append({
                        columns[i]: _clean(value)
                        for i, value in enumerate(row_values)
                        if i < len(columns)
                    })
        finally:
            wb.close()

        return rows, columns

    def parse_file(self, filename: str, content: bytes) -> List[Dict[str, Any]]:
        """Parse an upload by extension and return mapped entries."""
        name = (filename or "").casefold()
        if name.endswith(".csv"):
            rows, _ = self.parse_csv(content)
        elif name.endswith((".xlsx", ".xlsm")):
            rows, _ = self.parse_excel(content)
        else:
            raise InvalidInput(
                "Unsupported file type; upload a .csv or .xlsx file", field="file"
            )

        if not rows:
            raise InvalidInput("No data rows found in upload", field="file")

        entries = self.map_rows(rows)
        logger.info(f"Parsed {len(entries)} {self.kind} rows from {filename}")
        return entries

    # ------------------------------------------------------------------
    # Header mapping
    # ------------------------------------------------------------------

    def map_row(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Map one raw row onto record field names."""
        mapped: Dict[str, Any] = {}
        for key, value in row.items():
            field = self._header_map.get(normalize_header(key))
            if field is None or field in mapped:
                continue
            mapped[field] = value

        if _is_blank(mapped.get("site_id")) and self.default_site_id:
            mapped["site_id"] = self.default_site_id
        return mapped

    def map_rows(self, rows: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        return [self.map_row(row) for row in rows]
