from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel

from core.models import EventEntry


class CommerceBlog(ABC):
    name: str

    @abstractmethod
    async def list_articles(self, limit: int) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def get_article_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        ...


class DocumentStore(ABC):
    name: str

    @abstractmethod
    async def list_posts(self, limit: int) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def get_post_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def insert_post(self, doc: Dict[str, Any]) -> str:
        ...


class TextGenerator(ABC):
    name: str

    @abstractmethod
    async def complete(self, prompt: str, output_schema: Type[BaseModel],
                       system: Optional[str] = None) -> Optional[str]:
        ...


class EventStore(ABC):
    @abstractmethod
    async def add(self, entry: EventEntry) -> None:
        ...

    @abstractmethod
    async def recent(self, limit: int) -> List[EventEntry]:
        ...
