"""Writer for enriched business records (CSV or JSON)."""

import json
import logging
from pathlib import Path
from typing import Sequence

import pandas as pd

from bizsift.core.models import EnrichedBusiness


logger = logging.getLogger(__name__)

COLUMNS = [
    'name',
    'business_type',
    'locality',
    'region',
    'website',
    'contact',
    'maps_url',
    'latitude',
    'longitude',
    'rating',
    'website_url',
    'website_status',
    'website_confidence',
    'enriched_at',
    'error_message',
]


class EnrichedWriter:
    """Write enriched businesses to a CSV or JSON file."""

    def __init__(self, output_path: str):
        self.output_path = Path(output_path)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, enriched: Sequence[EnrichedBusiness]) -> None:
        """Write all records, replacing any existing file.

        Args:
            enriched: Enriched businesses in output order
        """
        records = [item.to_record() for item in enriched]
        logger.info(f"Writing {len(records)} records to {self.output_path}")

        if self.output_path.suffix.lower() == '.json':
            with open(self.output_path, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
        else:
            df = pd.DataFrame(records, columns=COLUMNS)
            df['website_confidence'] = df['website_confidence'].astype('Int64')
            df.to_csv(self.output_path, index=False)

        logger.info(f"Successfully wrote {len(records)} records to {self.output_path}")
