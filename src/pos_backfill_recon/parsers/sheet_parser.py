"""
Point-of-sale tabular export parser.
Reads .xlsx and .csv exports into positional rows for the normalizer.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional
import logging

import pandas as pd
from openpyxl import load_workbook

from ..config import ReconConfig
from ..normalization.text import cell_to_text
from ..utils.exceptions import SheetParseError

logger = logging.getLogger(__name__)

XLSX_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv", ".txt"}


@dataclass
class SheetRow:
    """One data row of an export, keyed by 1-based column index."""

    source_label: str
    row_number: int
    cells: dict[int, Any] = field(default_factory=dict)

    def cell(self, column: int) -> Any:
        return self.cells.get(column)

    def to_fields(self, columns: Mapping[str, int]) -> dict[str, Any]:
        """
        Map positional cells onto canonical field names.

        Args:
            columns: Canonical field name -> 1-based column index

        Returns:
            Field bag for the normalizer
        """
        return {name: self.cell(index) for name, index in columns.items()}


class SheetParser:
    """
    Parser for point-of-sale transaction exports.

    Data starts on the row after the configured header row and ends at the
    totals row. Rows with a blank service column are separators and are
    skipped.
    """

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config
        self.sheet_config = config.input.sheet
        self.service_column = self.sheet_config.columns.get("item_sold", 6)
        self.stop_label = self.sheet_config.stop_label.strip().lower()

    def parse_file(self, file_path: Path, source_label: Optional[str] = None) -> list[SheetRow]:
        """
        Parse an export file and return its transaction rows.

        Args:
            file_path: Path to the .xlsx or .csv export
            source_label: Batch label (defaults to the file stem)

        Returns:
            List of sheet rows in file order

        Raises:
            SheetParseError: If the file cannot be read
        """
        file_path = Path(file_path)
        label = source_label or file_path.stem
        suffix = file_path.suffix.lower()

        logger.info(f"Parsing export file: {file_path}")

        if suffix in XLSX_SUFFIXES:
            raw_rows = self._read_xlsx(file_path)
            first_row = self.sheet_config.xlsx_header_row + 1
        elif suffix in CSV_SUFFIXES:
            raw_rows = self._read_csv(file_path)
            first_row = self.sheet_config.csv_header_row + 1
        else:
            raise SheetParseError(f"Unsupported export format: {file_path.name}")

        rows = self._collect_rows(raw_rows, label, first_row)
        logger.info(f"Extracted {len(rows)} rows from {file_path.name}")
        return rows

    def _read_xlsx(self, file_path: Path) -> list[tuple]:
        """Read the active worksheet below the header row."""
        header_row = self.sheet_config.xlsx_header_row
        try:
            workbook = load_workbook(file_path, read_only=True, data_only=True)
        except Exception as e:
            logger.error(f"Failed to read workbook: {e}")
            raise SheetParseError(f"Failed to read workbook {file_path.name}: {e}") from e

        try:
            sheet = workbook.active
            if sheet is None:
                raise SheetParseError(f"{file_path.name} has no worksheet")
            rows = list(sheet.iter_rows(min_row=header_row + 1, values_only=True))
            if sheet.max_row is not None and sheet.max_row < header_row:
                raise SheetParseError(
                    f"{file_path.name} has only {sheet.max_row} rows; "
                    f"expected header at row {header_row}"
                )
        finally:
            workbook.close()

        return rows

    def _read_csv(self, file_path: Path) -> list[tuple]:
        """
        Read a CSV export below the header row, every cell as text.

        Blank lines are kept so offsets stay aligned with physical line
        numbers. A row wider than the first data row loses its trailing
        empty cells; anything still past the width is dropped by pandas.
        """
        ragged = 0

        def trim_ragged(fields: list[str]) -> list[str]:
            nonlocal ragged
            ragged += 1
            while fields and not str(fields[-1]).strip():
                fields = fields[:-1]
            return fields

        try:
            df = pd.read_csv(
                file_path,
                header=None,
                skiprows=self.sheet_config.csv_header_row,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=False,
                encoding=self.sheet_config.encoding,
                delimiter=self.sheet_config.delimiter,
                engine="python",
                on_bad_lines=trim_ragged,
            )
        except pd.errors.EmptyDataError:
            return []
        except Exception as e:
            logger.error(f"Failed to read CSV file: {e}")
            raise SheetParseError(f"Failed to read CSV file {file_path.name}: {e}") from e

        if ragged:
            logger.warning(f"{file_path.name}: {ragged} rows had more cells than the first row")
        return list(df.itertuples(index=False, name=None))

    def _collect_rows(
        self, raw_rows: Iterable[tuple], source_label: str, first_row: int
    ) -> list[SheetRow]:
        rows: list[SheetRow] = []
        blank = 0

        for offset, values in enumerate(raw_rows):
            row_number = first_row + offset
            cells = {index: value for index, value in enumerate(values, start=1)}
            service = cell_to_text(cells.get(self.service_column))

            if service.lower() == self.stop_label:
                logger.debug(f"{source_label}: totals row at {row_number}, stopping")
                break

            if not service:
                blank += 1
                continue

            rows.append(SheetRow(source_label=source_label, row_number=row_number, cells=cells))

        if blank:
            logger.debug(f"{source_label}: skipped {blank} rows with no service")
        return rows
