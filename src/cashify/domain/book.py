"""Book domain service."""

from typing import Optional

from cashify.database.base import Database
from cashify.domain.business import BusinessService
from cashify.domain.entities import Book, BookType
from cashify.domain.errors import ConflictError, NotFoundError, ValidationError, book_not_found, duplicate_name


class BookService:
    """Service for managing books."""

    def __init__(self, db: Database):
        self.db = db

    def create_book(
        self,
        business_id: int,
        name: str,
        book_type: BookType | str = BookType.GENERAL,
        description: Optional[str] = None,
    ) -> int:
        """Create a book. Returns book ID.

        Raises:
            ValidationError: If the name is empty or the type is unknown
            ConflictError: If the name is already used in the business
        """
        BusinessService(self.db).require_business(business_id)
        if not name or not name.strip():
            raise ValidationError("Book name is required")
        try:
            book_type = BookType(book_type)
        except ValueError:
            raise ValidationError(f"Invalid book type '{book_type}'")
        name = name.strip()

        for book in self.db.list_books(business_id):
            if book.name == name:
                raise ConflictError(duplicate_name("Book", name))

        return self.db.create_book(
            business_id, name=name, book_type=book_type.value, description=description
        )

    def get_book(self, business_id: int, book_id: int) -> Optional[Book]:
        return self.db.get_book(business_id, book_id)

    def require_book(self, business_id: int, book_id: int) -> Book:
        book = self.db.get_book(business_id, book_id)
        if book is None:
            raise NotFoundError(book_not_found(book_id))
        return book

    def list_books(self, business_id: int) -> list[Book]:
        return self.db.list_books(business_id)
