"""
Record ingestion from the external entity and relation stores.

Supports in-memory iterables, CSV, JSON, and pandas DataFrames. All sources
yield raw dictionaries; conversion to Entity/Relation models happens when the
run snapshot is taken.

Design:
- Format detection from file suffix or an explicit format argument
- Iterator-based, each source is drained exactly once per run
- Any unreadable or malformed input is fatal (DataSourceError): a run never
  scores a partial store
- Missing values normalize to None (empty CSV cells, NaN in DataFrames)
"""

import csv
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping, Union

import pandas as pd
from pydantic import BaseModel

from linkaudit.core.exceptions import DataSourceError

logger = logging.getLogger(__name__)


class BaseRecordSource(ABC):
    """
    Abstract base class for record sources.

    Each source type implements this interface and raises DataSourceError on
    any read failure.
    """

    @abstractmethod
    def read(self) -> Iterator[Dict[str, Any]]:
        """
        Read records from the source.

        Yields:
            Dict mapping field names to raw values
        """
        pass


class IterableRecordSource(BaseRecordSource):
    """
    Wraps records already held in memory (lists, generators, query cursors).
    Pydantic models, such as Entity and Relation, are dumped to dicts.
    """

    def __init__(self, records: Iterable[Mapping[str, Any]]):
        if records is None:
            raise DataSourceError("Record source is missing")
        self.records = records

    def read(self) -> Iterator[Dict[str, Any]]:
        try:
            for idx, record in enumerate(self.records):
                if isinstance(record, BaseModel):
                    record = record.model_dump()
                if not isinstance(record, Mapping):
                    raise DataSourceError(f"Record {idx} is not a mapping: {type(record).__name__}")
                yield dict(record)
        except DataSourceError:
            raise
        except Exception as e:
            logger.error(f"Error reading in-memory records: {e}")
            raise DataSourceError(f"Failed to read records: {e}") from e


class FileRecordSource(BaseRecordSource):
    """
    Base class for file-backed sources.
    """

    def __init__(self, filepath: Union[str, Path], encoding: str = "utf-8"):
        """
        Args:
            filepath: Path to the store file
            encoding: File encoding (default utf-8)

        Raises:
            DataSourceError: If the file doesn't exist
        """
        self.filepath = Path(filepath)
        self.encoding = encoding

        if not self.filepath.exists():
            raise DataSourceError(f"Store file not found: {self.filepath}")


class CSVRecordSource(FileRecordSource):
    """
    Reads CSV stores. First row must contain headers.

    Example:
        id,department,position,role,programming_language,agilestruct
        1,platform,engineer,backend,python,
        2,platform,engineer,backend,go,tribe-a

    Empty cells are read as missing values.
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        encoding: str = "utf-8",
        delimiter: str = ","
    ):
        super().__init__(filepath, encoding)
        self.delimiter = delimiter

    def read(self) -> Iterator[Dict[str, Any]]:
        try:
            with open(self.filepath, "r", encoding=self.encoding, newline="") as f:
                reader = csv.DictReader(f, delimiter=self.delimiter)

                if reader.fieldnames is None:
                    # Header-less empty file is an empty store
                    return

                # Normalize BOM in header if present
                reader.fieldnames = [
                    name.lstrip("\ufeff") if isinstance(name, str) else name
                    for name in reader.fieldnames
                ]

                for line_num, row in enumerate(reader, start=2):  # row 1 is header
                    if None in row:
                        raise DataSourceError(f"Too many fields at line {line_num}")
                    yield {
                        key: (None if value is None or value == "" else value)
                        for key, value in row.items()
                    }
        except DataSourceError:
            raise
        except Exception as e:
            logger.error(f"Error reading CSV store {self.filepath}: {e}")
            raise DataSourceError(f"Failed to read CSV store: {e}") from e


class JSONRecordSource(FileRecordSource):
    """
    Reads JSON stores: either a JSON array of objects or NDJSON
    (one object per line).
    """

    def read(self) -> Iterator[Dict[str, Any]]:
        try:
            with open(self.filepath, "r", encoding=self.encoding) as f:
                content = f.read().lstrip("\ufeff").strip()
        except Exception as e:
            logger.error(f"Error reading JSON store {self.filepath}: {e}")
            raise DataSourceError(f"Failed to read JSON store: {e}") from e

        if not content:
            return

        if content.startswith("["):
            try:
                records = json.loads(content)
            except json.JSONDecodeError as e:
                raise DataSourceError(f"Invalid JSON array: {e}") from e
            for idx, record in enumerate(records):
                if not isinstance(record, dict):
                    raise DataSourceError(f"Non-object entry at index {idx}: {type(record).__name__}")
                yield record
            return

        for line_num, line in enumerate(content.split("\n"), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise DataSourceError(f"Malformed JSON at line {line_num}: {line[:100]}") from e
            if not isinstance(record, dict):
                raise DataSourceError(f"NDJSON line {line_num} is not an object")
            yield record


def _plain(value: Any) -> Any:
    """Unbox pandas/numpy scalars so models see plain Python values."""
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    item = getattr(value, "item", None)
    if callable(item) and not isinstance(value, (str, bytes)):
        return item()
    return value


class DataFrameRecordSource(BaseRecordSource):
    """
    Reads records from a pandas DataFrame, one record per row.

    NaN/NaT cells are read as missing values.
    """

    def __init__(self, frame: pd.DataFrame):
        if not isinstance(frame, pd.DataFrame):
            raise DataSourceError(f"Expected a DataFrame, got {type(frame).__name__}")
        self.frame = frame

    @staticmethod
    def _restore_integers(frame: pd.DataFrame) -> pd.DataFrame:
        """
        Undo pandas' float upcast of integer columns holding nulls, so 7
        reads as "7" (as in a CSV store) rather than "7.0".
        """
        frame = frame.copy()
        for name in frame.columns:
            column = frame[name]
            if pd.api.types.is_float_dtype(column) and column.dropna().mod(1).eq(0).all():
                frame[name] = column.astype("Int64")
        return frame

    def read(self) -> Iterator[Dict[str, Any]]:
        frame = self._restore_integers(self.frame)
        cleaned = frame.astype(object).where(pd.notna(frame), None)
        for record in cleaned.to_dict(orient="records"):
            yield {key: _plain(value) for key, value in record.items()}


def open_source(
    source: Any,
    format: str = "auto"
) -> BaseRecordSource:
    """
    Pick a record source for whatever the caller handed in.

    Args:
        source: Existing BaseRecordSource, DataFrame, file path, or iterable of mappings
        format: File format ("csv", "json", or "auto" for suffix detection)

    Returns:
        A BaseRecordSource

    Raises:
        DataSourceError: If the source is missing or the format unsupported
    """
    if source is None:
        raise DataSourceError("Record source is missing")
    if isinstance(source, BaseRecordSource):
        return source
    if isinstance(source, pd.DataFrame):
        return DataFrameRecordSource(source)

    if isinstance(source, (str, Path)):
        filepath = Path(source)
        if format == "auto":
            suffix = filepath.suffix.lower()
            if suffix == ".csv":
                format = "csv"
            elif suffix in (".json", ".ndjson", ".jsonl"):
                format = "json"
            else:
                raise DataSourceError(f"Cannot detect store format for {filepath}")

        if format == "csv":
            return CSVRecordSource(filepath)
        if format == "json":
            return JSONRecordSource(filepath)
        raise DataSourceError(f"Unknown format: {format}")

    return IterableRecordSource(source)
