# =============================================================================
# utils/csv_utils.py - CSV utilities
# =============================================================================

import csv
import os
import tempfile
from pathlib import Path
from typing import List, Dict, Any, Tuple
import logging

from core.errors import RosterWriteError


class CSVHandler:
    """Utilities for reading and writing CSV files"""

    @staticmethod
    def read_csv(file_path: str, encoding: str = 'utf-8-sig',
                 delimiter: str = ',') -> Tuple[List[Dict[str, Any]], List[str]]:
        """Read CSV file and return its rows as dictionaries plus the header"""
        logger = logging.getLogger(__name__)

        try:
            with open(file_path, 'r', newline='', encoding=encoding) as file:
                reader = csv.reader(file, delimiter=delimiter)
                headers = next(reader, None)
                if headers is None:
                    logger.warning(f"{file_path} is empty")
                    return [], []

                logger.debug(f"CSV Headers: {headers[:10]}")

                file.seek(0)
                dict_reader = csv.DictReader(file, delimiter=delimiter)
                data = list(dict_reader)

                logger.info(f"Successfully read {len(data)} records from {file_path}")
                return data, headers

        except FileNotFoundError:
            logger.error(f"Input file {file_path} not found")
            raise
        except Exception as e:
            logger.error(f"Error reading CSV: {e}")
            raise

    @staticmethod
    def write_csv(data: List[Dict[str, Any]], output_path: str,
                  fieldnames: List[str]) -> None:
        """
        Rewrite a CSV file in full.

        Rows go to a temporary file beside the target which then replaces it,
        so readers only ever see the old or the new complete file.
        """
        logger = logging.getLogger(__name__)
        target = Path(output_path)
        temp_path = None

        try:
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
            )
            with os.fdopen(fd, 'w', newline='', encoding='utf-8') as file:
                writer = csv.DictWriter(file, fieldnames=fieldnames)
                writer.writeheader()
                writer.writerows(data)
                file.flush()
                os.fsync(file.fileno())
            os.replace(temp_path, target)
            temp_path = None

            logger.info(f"Successfully wrote {len(data)} records to {output_path}")

        except (OSError, csv.Error) as e:
            logger.error(f"Error writing CSV {output_path}: {e}")
            raise RosterWriteError(f"Could not rewrite {output_path}: {e}") from e
        finally:
            if temp_path and os.path.exists(temp_path):
                os.remove(temp_path)

    @staticmethod
    def append_rows(data: List[Dict[str, Any]], output_path: str,
                    fieldnames: List[str]) -> None:
        """Append rows to a CSV file, writing the header when the file is new"""
        logger = logging.getLogger(__name__)

        if not data:
            logger.debug("No rows to append")
            return

        try:
            needs_header = not os.path.exists(output_path) or os.path.getsize(output_path) == 0
            with open(output_path, 'a', newline='', encoding='utf-8') as file:
                writer = csv.DictWriter(file, fieldnames=fieldnames)
                if needs_header:
                    writer.writeheader()
                writer.writerows(data)
                file.flush()
                os.fsync(file.fileno())

            logger.debug(f"Appended {len(data)} records to {output_path}")

        except (OSError, csv.Error) as e:
            logger.error(f"Error appending to CSV {output_path}: {e}")
            raise RosterWriteError(f"Could not append to {output_path}: {e}") from e
