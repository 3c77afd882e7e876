"""Spreadsheet loading: every sheet of a workbook as a grid of text cells."""

import io
import logging

import pandas as pd

from .dates import cell_text
from ..utils.exceptions import FormatError

logger = logging.getLogger(__name__)

Grid = list[list[str]]


def load_workbook_grids(data: bytes) -> list[Grid]:
    """
    Read all sheets of an .xls or .xlsx workbook.

    pandas picks the engine from the file signature (xlrd for legacy BIFF
    files, openpyxl for OOXML). Cells are returned as text; see ``cell_text``.

    Args:
        data: Raw workbook bytes

    Returns:
        One grid (rows of cells) per sheet, in workbook order

    Raises:
        FormatError: If the bytes are not a readable workbook or hold no sheets
    """
    try:
        sheets = pd.read_excel(
            io.BytesIO(data),
            sheet_name=None,
            header=None,
            dtype=object,
        )
    except Exception as e:
        logger.error(f"Failed to open spreadsheet: {e}")
        raise FormatError(f"Error opening spreadsheet: {e}") from e

    if not sheets:
        raise FormatError("No sheets found in spreadsheet")

    grids = [frame_to_grid(df) for df in sheets.values()]
    logger.debug(f"Loaded workbook with {len(grids)} sheet(s)")
    return grids


def frame_to_grid(df: pd.DataFrame) -> Grid:
    """Convert a header-less DataFrame into rows of text cells."""
    return [
        [cell_text(value) for value in row]
        for row in df.itertuples(index=False, name=None)
    ]
