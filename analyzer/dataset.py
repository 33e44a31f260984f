"""Dataset model and CSV ingestion.

A Dataset is an immutable rectangle of strings: one header row plus data
rows of the same width. Typing of values (numeric vs categorical) is left to
the analysis layer.
"""

import io
import logging

import pandas as pd
from pydantic import BaseModel, ConfigDict, model_validator

from analyzer.errors import IngestionError

log = logging.getLogger(__name__)


class Dataset(BaseModel):
    model_config = ConfigDict(frozen=True)

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...] = ()
    name: str = ""

    @model_validator(mode="after")
    def _check_rectangular(self) -> "Dataset":
        width = len(self.headers)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(f"Row {i} has {len(row)} values, expected {width}")
        return self

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    def column(self, key: str | int) -> list[str]:
        """Return the values of one column, by header name or position."""
        if isinstance(key, int):
            idx = key
        else:
            try:
                idx = self.headers.index(key)
            except ValueError:
                raise KeyError(key) from None
        return [row[idx] for row in self.rows]


def _is_blank(row: list[str]) -> bool:
    return not any(value.strip() for value in row)


def ingest_csv(data: bytes | str, name: str = "") -> Dataset:
    """Parse CSV content into a Dataset.

    The first row becomes the (trimmed) header row. Data rows that are
    entirely blank are dropped; short rows are padded with empty strings.
    Raises IngestionError for undecodable, malformed or empty input.
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise IngestionError(f"File is not valid UTF-8 text: {exc}") from exc
    else:
        text = data

    try:
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            na_filter=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as exc:
        raise IngestionError("CSV file is empty") from exc
    except pd.errors.ParserError as exc:
        raise IngestionError(f"Could not parse CSV: {exc}") from exc

    records = df.fillna("").astype(str).values.tolist()
    if not records:
        raise IngestionError("CSV file is empty")

    headers = tuple(h.strip() for h in records[0])
    rows = tuple(tuple(r) for r in records[1:] if not _is_blank(r))

    try:
        dataset = Dataset(headers=headers, rows=rows, name=name)
    except ValueError as exc:
        raise IngestionError(str(exc)) from exc

    log.info(
        "Ingested dataset %r: %d rows, %d columns (%d blank rows dropped)",
        name, dataset.row_count, dataset.column_count, len(records) - 1 - len(rows),
    )
    return dataset
