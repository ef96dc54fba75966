"""Reader for business records (CSV or JSON)."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from bizsift.core.exceptions import InputError
from bizsift.core.models import Business, EnrichedBusiness


logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = ('.csv', '.json')


class BusinessReader:
    """Load business records exported by the discovery search."""

    def __init__(self, file_path: str):
        """Initialize reader.

        Args:
            file_path: Path to a ``.csv`` or ``.json`` file

        Raises:
            FileNotFoundError: If the file doesn't exist
            InputError: If the file type is not supported
        """
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"Input file not found: {file_path}")
        if self.file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise InputError(f"Input file must be CSV or JSON: {file_path}")

    def _read_records(self) -> List[Dict[str, Any]]:
        if self.file_path.suffix.lower() == '.json':
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise InputError(f"Invalid JSON in {self.file_path}: {e}")
            if isinstance(data, dict):
                data = data.get('businesses', data.get('companies', []))
            if not isinstance(data, list):
                raise InputError("JSON input must be a list of business records")
            return [record for record in data if isinstance(record, dict)]

        try:
            df = pd.read_csv(self.file_path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            logger.warning("CSV file is empty or contains no data")
            return []
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise InputError(f"Error reading CSV file: {e}")

        df.columns = [str(column).strip() for column in df.columns]
        return df.to_dict(orient='records')

    def read_businesses(self) -> List[Business]:
        """Read businesses, skipping rows without a name.

        Returns:
            Business records in file order
        """
        logger.info(f"Reading businesses from {self.file_path}")
        businesses = []

        for index, record in enumerate(self._read_records()):
            business = Business.from_record(record)
            if business.name == 'N/A':
                logger.warning(f"Record {index + 1}: Missing business name, skipping")
                continue
            businesses.append(business)

        logger.info(f"Loaded {len(businesses)} businesses")
        return businesses

    def read_enriched(self) -> List[EnrichedBusiness]:
        """Read the output of a previous enrichment run."""
        enriched = []
        for index, record in enumerate(self._read_records()):
            try:
                item = EnrichedBusiness.from_record(record)
            except ValueError as e:
                raise InputError(f"Record {index + 1}: invalid enrichment data: {e}")
            if item.name == 'N/A':
                logger.warning(f"Record {index + 1}: Missing business name, skipping")
                continue
            enriched.append(item)
        return enriched
