from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from softrepo.entities import BaseEntity, Column, ColumnSet, SortOrder
from softrepo.soft_deletable import SoftDeletableEntity, soft_delete_column


class Post(BaseEntity):
    title: str
    content: str
    published: bool = False
    category: str | None = None


class PostUpdate(BaseModel):
    title: str | None = None
    content: str | None = None
    published: bool | None = None
    category: str | None = None


class Article(SoftDeletableEntity):
    title: str
    body: str = ""
    category: str | None = None


class ArticleUpdate(BaseModel):
    title: str | None = None
    body: str | None = None
    category: str | None = None


class ArticleExample(BaseModel):
    title: str | None = None
    category: str | None = None


class ArticleSort(BaseModel):
    title: SortOrder | None = None
    category: SortOrder | None = None


class ArticleColumns(ColumnSet):
    title = Column[str]("title")
    category = Column[str]("category")


class Comment(BaseEntity):
    article_id: UUID
    body: str


class CommentUpdate(BaseModel):
    body: str | None = None


@soft_delete_column("removed_at")
class Invoice(SoftDeletableEntity):
    number: str
    amount: Decimal


class InvoiceUpdate(BaseModel):
    amount: Decimal | None = None


class InvoiceExample(BaseModel):
    number: str | None = None


class InvoiceSort(BaseModel):
    number: SortOrder | None = None
    deleted_at: SortOrder | None = None
