from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING, List
from datetime import datetime

if TYPE_CHECKING:
    from app.models.book_image import BookImage


class Book(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    author: Optional[str] = None

    cover_image: Optional[str] = None

    price: float
    stock: Optional[int] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    images: List["BookImage"] = Relationship(
        back_populates="book",
        sa_relationship_kwargs={"order_by": "BookImage.sort_order"},
    )

    @property
    def display_image(self) -> Optional[str]:
        if self.images:
            return self.images[0].image_url
        return self.cover_image
