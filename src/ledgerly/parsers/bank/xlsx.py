"""
Excel workbook reading for statement exports.

Only the first worksheet is read; every cell comes back as text.
"""

import io
import logging
import zipfile
from typing import List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"


def is_xlsx(content: bytes) -> bool:
    """Check for the ZIP container signature used by .xlsx files."""
    return content[:4] == ZIP_MAGIC


def read_rows(content: bytes) -> Optional[List[List[str]]]:
    """
    Read the first worksheet as rows of strings.

    Empty cells become "". Dates come back as "YYYY-MM-DD HH:MM:SS".

    Returns:
        List of rows (header included), or None if the workbook can't be read
    """
    try:
        df = pd.read_excel(
            io.BytesIO(content),
            sheet_name=0,
            header=None,
            dtype=str,
            keep_default_na=False,
            engine="openpyxl",
        )
    except (ValueError, OSError, KeyError, zipfile.BadZipFile) as e:
        logger.warning(f"Could not read Excel workbook: {e}")
        return None

    return [
        ["" if pd.isna(value) else str(value) for value in record]
        for record in df.itertuples(index=False, name=None)
    ]
