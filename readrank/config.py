"""Runtime configuration for ReadRank.

Values come from the environment, with a ``.env`` file loaded first for
local development.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from readrank.errors import ValidationError
from readrank.rating.sampler import PICKERS

load_dotenv()


@dataclass(frozen=True)
class Settings:
    db_path: str = 'data/readrank.db'
    migrations_dir: str = 'migrations'
    picker: str = 'random'
    random_seed: Optional[int] = None
    google_books_api_key: Optional[str] = None
    log_file: Optional[str] = None

    def __post_init__(self):
        if self.picker not in PICKERS:
            raise ValidationError(
                f"READRANK_PICKER must be one of {', '.join(sorted(PICKERS))}, got {self.picker!r}"
            )

    @classmethod
    def from_env(cls) -> "Settings":
        seed = os.getenv('READRANK_RANDOM_SEED')
        try:
            random_seed = int(seed) if seed else None
        except ValueError:
            raise ValidationError(f"READRANK_RANDOM_SEED must be an integer, got {seed!r}") from None

        return cls(
            db_path=os.getenv('READRANK_DB_PATH', 'data/readrank.db'),
            migrations_dir=os.getenv('READRANK_MIGRATIONS_DIR', 'migrations'),
            picker=os.getenv('READRANK_PICKER', 'random').strip().lower(),
            random_seed=random_seed,
            google_books_api_key=os.getenv('GOOGLE_BOOKS_API_KEY') or None,
            log_file=os.getenv('READRANK_LOG_FILE') or None,
        )
