"""
Repository Pattern - Abstract data access layer.

Enables switching between CSV and SQLite backends without changing business logic.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import pandas as pd

from ..config import Config
from ..models import VocabularyItem
from ..utils.parsing import TextParser

logger = logging.getLogger(__name__)

# Stored columns, in VocabularyItem field order
ITEM_COLUMNS = [f.name for f in fields(VocabularyItem)]


def _item_to_row(item: VocabularyItem) -> Dict[str, Any]:
    row = item.to_dict()
    for key, value in row.items():
        if isinstance(value, str):
            row[key] = TextParser.normalize_unicode(value)
    return row


class BaseRepository(ABC):
    """
    Abstract base class for vocabulary data repositories.

    Defines the contract for all data access operations.
    Saving replaces the whole stored collection (last write wins).
    """

    @abstractmethod
    def exists(self) -> bool:
        """True once the collection has been stored at least once."""

    @abstractmethod
    def load_items(self) -> List[VocabularyItem]:
        """Load all items, defaulting missing fields."""

    @abstractmethod
    def save_items(self, items: List[VocabularyItem]) -> bool:
        """Replace the stored collection. Returns True if successful."""

    def count(self) -> int:
        """Get total item count."""
        return len(self.load_items())

    def get_by_id(self, item_id: str) -> Optional[VocabularyItem]:
        for item in self.load_items():
            if item.id == item_id:
                return item
        return None

    def search(self, query: str) -> List[VocabularyItem]:
        """Items whose headword or gloss contains the query (case-insensitive)."""
        if not query:
            return []
        query = query.lower()
        return [
            item for item in self.load_items()
            if query in item.headword.lower() or query in item.gloss.lower()
        ]


class CSVRepository(BaseRepository):
    """
    CSV-based repository implementation.

    Uses pandas for CSV operations; pipe separated, one row per item.
    """

    def __init__(self, csv_path: Optional[str] = None):
        """
        Initialize CSV repository.

        Args:
            csv_path: Path to CSV file
        """
        self.csv_path = Path(csv_path or Config.WORDS_FILE)

    def exists(self) -> bool:
        return self.csv_path.exists()

    def load_dataframe(self) -> pd.DataFrame:
        """Raw stored rows as strings."""
        if not self.csv_path.exists():
            return pd.DataFrame(columns=ITEM_COLUMNS)

        try:
            df = pd.read_csv(
                self.csv_path,
                sep='|',
                encoding='utf-8-sig',
                dtype=str,
                keep_default_na=False,
                on_bad_lines='warn',
                engine='python'
            )
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.error("Error loading CSV %s: %s", self.csv_path, e)
            return pd.DataFrame(columns=ITEM_COLUMNS)

        df.columns = df.columns.str.strip()
        return df

    def load_items(self) -> List[VocabularyItem]:
        """Load vocabulary from CSV file."""
        df = self.load_dataframe()
        items = []
        for record in df.to_dict(orient='records'):
            try:
                items.append(VocabularyItem.from_dict(record))
            except (TypeError, ValueError) as e:
                logger.warning("Skipping malformed row %s: %s", record.get('id'), e)
        return items

    def save_items(self, items: List[VocabularyItem]) -> bool:
        """Save vocabulary to CSV file."""
        # Empty cells for missing values keep integer columns from turning into floats
        rows = [
            {key: "" if value is None else value for key, value in _item_to_row(item).items()}
            for item in items
        ]
        df = pd.DataFrame(rows, columns=ITEM_COLUMNS)
        temp_path = self.csv_path.with_suffix('.csv.tmp')
        try:
            self.csv_path.parent.mkdir(parents=True, exist_ok=True)
            df.to_csv(
                temp_path,
                sep='|',
                index=False,
                encoding='utf-8-sig'
            )
            temp_path.replace(self.csv_path)
            return True
        except OSError as e:
            logger.error("Error saving CSV %s: %s", self.csv_path, e)
            if temp_path.exists():
                temp_path.unlink()
            return False


class SQLiteRepository(BaseRepository):
    """
    SQLite-based repository implementation.

    Provides transactional saves (no partially written collections).
    """

    # Schema version for migrations
    SCHEMA_VERSION = 1
    SAVED_MARKER = "collection_saved"

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize SQLite repository.

        Args:
            db_path: Path to SQLite database file
        """
        if db_path is None:
            db_path = str(Path(Config.DATA_DIR) / "vocabforge.db")

        self.db_path = Path(db_path)
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get database connection with context manager."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at INTEGER NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS vocabulary (
                    position INTEGER NOT NULL,
                    id TEXT PRIMARY KEY,
                    gloss TEXT NOT NULL,
                    headword TEXT NOT NULL,
                    category TEXT,
                    level TEXT,
                    example_sentence TEXT,
                    image_ref TEXT,
                    status TEXT,
                    next_review_at INTEGER,
                    last_review_at INTEGER,
                    attempt_count INTEGER DEFAULT 0,
                    correct_streak INTEGER DEFAULT 0,
                    generated INTEGER DEFAULT 0
                )
            """)

            # Marks that a collection was saved, even an empty one
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

            cursor.execute("CREATE INDEX IF NOT EXISTS idx_vocab_headword ON vocabulary(headword)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_vocab_next_review ON vocabulary(next_review_at)")

            cursor.execute("INSERT OR IGNORE INTO schema_version (version, applied_at) VALUES (?, strftime('%s','now'))",
                           (self.SCHEMA_VERSION,))
            conn.commit()

    def exists(self) -> bool:
        with self._get_connection() as conn:
            row = conn.execute("SELECT 1 FROM metadata WHERE key = ?", (self.SAVED_MARKER,)).fetchone()
            return row is not None

    def load_items(self) -> List[VocabularyItem]:
        """Get all vocabulary entries in stored order."""
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM vocabulary ORDER BY position").fetchall()
        items = []
        for row in rows:
            data = dict(row)
            data.pop('position', None)
            data['generated'] = bool(data.get('generated'))
            items.append(VocabularyItem.from_dict(data))
        return items

    def save_items(self, items: List[VocabularyItem]) -> bool:
        """Replace all rows in a single transaction."""
        rows = []
        for position, item in enumerate(items):
            row = _item_to_row(item)
            row['generated'] = 1 if item.generated else 0
            rows.append([position] + [row[c] for c in ITEM_COLUMNS])

        placeholders = ", ".join("?" for _ in range(len(ITEM_COLUMNS) + 1))
        column_names = ", ".join(["position"] + ITEM_COLUMNS)
        try:
            with self._get_connection() as conn:
                with conn:
                    conn.execute("DELETE FROM vocabulary")
                    conn.executemany(
                        f"INSERT INTO vocabulary ({column_names}) VALUES ({placeholders})", rows
                    )
                    conn.execute(
                        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, strftime('%s','now'))",
                        (self.SAVED_MARKER,),
                    )
            return True
        except sqlite3.Error as e:
            logger.error("Error saving vocabulary to %s: %s", self.db_path, e)
            return False

    def count(self) -> int:
        """Get total row count."""
        with self._get_connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM vocabulary").fetchone()[0]

    def get_by_id(self, item_id: str) -> Optional[VocabularyItem]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM vocabulary WHERE id = ?", (item_id,)).fetchone()
        if row is None:
            return None
        data = dict(row)
        data.pop('position', None)
        data['generated'] = bool(data.get('generated'))
        return VocabularyItem.from_dict(data)

    def import_from_csv(self, csv_path: str) -> int:
        """
        Import vocabulary from a CSV file, replacing stored rows.

        Returns:
            Number of items imported
        """
        items = CSVRepository(csv_path).load_items()
        if not items:
            return 0
        return len(items) if self.save_items(items) else 0

    def export_to_csv(self, csv_path: str) -> bool:
        """Export vocabulary to CSV file."""
        return CSVRepository(csv_path).save_items(self.load_items())
