"""
Article Store

Relational persistence for analyzed articles. The SQLite implementation uses
SQLAlchemy Core over a single `articles` table keyed by URL; the in-memory
implementation mirrors its semantics for tests and throwaway runs.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from collections import Counter
from datetime import timezone
from typing import List, Dict, Iterable, Optional

from sqlalchemy import (
    Column, DateTime, JSON, MetaData, String, Table, Text,
    bindparam, create_engine, func, insert, select, text,
)
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from ..errors import DuplicateError, PersistenceError
from ..models import Article, EntityCount

logger = logging.getLogger(__name__)

metadata = MetaData()

articles_table = Table(
    "articles",
    metadata,
    Column("url", String, primary_key=True),
    Column("title", Text, nullable=False),
    Column("excerpt", Text),
    Column("summary", Text),
    Column("sentiment", Text),
    Column("topics", JSON),
    Column("entities", JSON),
    Column("processed_at", DateTime(timezone=True), nullable=False),
)

# Entities count once per occurrence; an article's topics stand in for its
# entities only when it has none.
TOP_ENTITIES_SQL = """
SELECT mention AS entity, COUNT(*) AS total
FROM (
    SELECT je.value AS mention
    FROM articles AS a, json_each(COALESCE(a.entities, '[]')) AS je
    WHERE TRIM(je.value) <> '' {url_filter}
    UNION ALL
    SELECT jt.value AS mention
    FROM articles AS a, json_each(COALESCE(a.topics, '[]')) AS jt
    WHERE json_array_length(COALESCE(a.entities, '[]')) = 0
      AND TRIM(jt.value) <> '' {url_filter}
)
GROUP BY mention
ORDER BY total DESC, entity ASC
LIMIT :limit
"""


class ArticleStore(ABC):
    """Persistence port for articles keyed by URL."""

    @abstractmethod
    def save(self, article: Article) -> None:
        """
        Insert a new article.

        Raises:
            DuplicateError: If an article with the same URL already exists
            PersistenceError: On any other storage failure
        """

    @abstractmethod
    def find_by_url(self, url: str) -> Optional[Article]:
        """Return the stored article, or None."""

    @abstractmethod
    def find_all(self) -> List[Article]:
        """Return every stored article, newest first."""

    @abstractmethod
    def find_top_entities(self, urls: Iterable[str], limit: int) -> List[EntityCount]:
        """
        Rank the entities mentioned by a set of articles.

        Args:
            urls: Restrict counting to these articles (empty means all)
            limit: Maximum number of entries returned

        Returns:
            Entity counts ordered by count descending, then entity ascending
        """

    @abstractmethod
    def count(self) -> int:
        """Number of stored articles."""

    def exists(self, url: str) -> bool:
        return self.find_by_url(url) is not None


class SQLArticleStore(ArticleStore):
    """
    SQLite-backed article store.

    Args:
        database_path: SQLite file path, or ":memory:"
        engine: Pre-built engine (overrides database_path)
    """

    def __init__(self, database_path: str = "data/articles.db", engine: Optional[Engine] = None):
        if engine is None:
            if database_path != ":memory:":
                directory = os.path.dirname(database_path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
            options: Dict = {"connect_args": {"check_same_thread": False}}
            if database_path == ":memory:":
                # One shared connection, otherwise every checkout sees an empty database
                options["poolclass"] = StaticPool
            engine = create_engine(f"sqlite:///{database_path}", **options)
        self.engine = engine
        self.database_path = database_path
        self._write_lock = threading.Lock()
        metadata.create_all(self.engine)
        logger.info(f"Article store ready at {database_path}")

    @staticmethod
    def _row_to_article(row: Row) -> Article:
        processed_at = row.processed_at
        if processed_at is not None and processed_at.tzinfo is None:
            processed_at = processed_at.replace(tzinfo=timezone.utc)
        return Article(
            url=row.url,
            title=row.title or "",
            excerpt=row.excerpt or "",
            summary=row.summary or "",
            sentiment=row.sentiment or "",
            topics=list(row.topics or []),
            entities=list(row.entities or []),
            processed_at=processed_at,
        )

    def save(self, article: Article) -> None:
        values = {
            "url": article.url,
            "title": article.title,
            "excerpt": article.excerpt,
            "summary": article.summary,
            "sentiment": article.sentiment,
            "topics": list(article.topics),
            "entities": list(article.entities),
            "processed_at": article.processed_at,
        }
        try:
            # SQLite allows one writer at a time
            with self._write_lock, self.engine.begin() as conn:
                conn.execute(insert(articles_table).values(**values))
        except IntegrityError as e:
            raise DuplicateError(f"Article already exists: {article.url}") from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to save article {article.url}: {e}")
            raise PersistenceError(f"Failed to save article {article.url}: {e}") from e

    def find_by_url(self, url: str) -> Optional[Article]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(articles_table).where(articles_table.c.url == url)
            ).first()
        return self._row_to_article(row) if row is not None else None

    def find_all(self) -> List[Article]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(articles_table).order_by(articles_table.c.processed_at.desc())
            ).all()
        return [self._row_to_article(row) for row in rows]

    def find_top_entities(self, urls: Iterable[str], limit: int) -> List[EntityCount]:
        if limit <= 0:
            return []
        url_list = sorted(set(urls))

        if url_list:
            statement = text(TOP_ENTITIES_SQL.format(url_filter="AND a.url IN :urls")).bindparams(
                bindparam("urls", expanding=True)
            )
            params: Dict = {"urls": url_list, "limit": limit}
        else:
            statement = text(TOP_ENTITIES_SQL.format(url_filter=""))
            params = {"limit": limit}

        with self.engine.connect() as conn:
            rows = conn.execute(statement, params).all()
        return [EntityCount(entity=row.entity, count=int(row.total)) for row in rows]

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(articles_table)).scalar_one()

    def close(self) -> None:
        self.engine.dispose()


class InMemoryArticleStore(ArticleStore):
    """Dictionary-backed article store with the same contract as SQLArticleStore."""

    def __init__(self):
        self._articles: Dict[str, Article] = {}
        self._lock = threading.Lock()

    def save(self, article: Article) -> None:
        with self._lock:
            if article.url in self._articles:
                raise DuplicateError(f"Article already exists: {article.url}")
            # Full text is not persisted, matching the relational schema
            self._articles[article.url] = Article.from_dict(article.to_dict())

    def find_by_url(self, url: str) -> Optional[Article]:
        with self._lock:
            return self._articles.get(url)

    def find_all(self) -> List[Article]:
        with self._lock:
            articles = list(self._articles.values())
        return sorted(articles, key=lambda a: a.processed_at, reverse=True)

    def find_top_entities(self, urls: Iterable[str], limit: int) -> List[EntityCount]:
        if limit <= 0:
            return []
        wanted = set(urls)
        counter: Counter = Counter()

        with self._lock:
            for article in self._articles.values():
                if wanted and article.url not in wanted:
                    continue
                mentions = article.entities if article.entities else article.topics
                counter.update(m for m in mentions if m.strip())

        ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
        return [EntityCount(entity=entity, count=count) for entity, count in ranked[:limit]]

    def count(self) -> int:
        with self._lock:
            return len(self._articles)
