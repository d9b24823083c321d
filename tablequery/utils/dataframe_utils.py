from __future__ import annotations

import io
from typing import Any, Dict

import pandas as pd

CSV_ENCODINGS = ("utf-8", "utf-8-sig", "cp1251", "latin1")


def try_read_csv(file_bytes: bytes) -> pd.DataFrame:
    """Try reading CSV with common encodings. Raise ValueError if all fail."""
    last_exc: Exception | None = None
    for encoding in CSV_ENCODINGS:
        try:
            return pd.read_csv(io.BytesIO(file_bytes), encoding=encoding)
        except pd.errors.EmptyDataError as exc:
            raise ValueError("Uploaded file is empty") from exc
        except (UnicodeDecodeError, pd.errors.ParserError) as exc:
            last_exc = exc
    raise ValueError(f"Unable to read CSV: {last_exc}")


def read_dataframe_from_bytes(file_bytes: bytes, filename: str) -> pd.DataFrame:
    """Load a DataFrame from CSV/XLS/XLSX bytes.

    - CSV is tried with several encodings
    - Excel reads the first sheet
    - Anything else is read as CSV
    """
    lower = (filename or "").lower()
    if lower.endswith(".xlsx") or lower.endswith(".xls"):
        df = pd.read_excel(io.BytesIO(file_bytes))
    else:
        df = try_read_csv(file_bytes)

    # Column names reach the prompt verbatim, so strip stray whitespace
    df.columns = [str(c).strip() for c in df.columns]
    dupes = sorted({c for c in df.columns if list(df.columns).count(c) > 1})
    if dupes:
        raise ValueError(f"Duplicate column names after trimming whitespace: {', '.join(dupes)}")
    return df


def preview_dataframe(df: pd.DataFrame, rows: int) -> Dict[str, Any]:
    sample = df.head(rows)
    sample = sample.astype(object).where(pd.notna(sample), None)
    return {
        "columns": list(sample.columns),
        "rows": sample.to_dict(orient="records"),
        "row_count": int(len(df)),
        "column_count": int(df.shape[1]),
    }
