import csv
import io
import logging
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from unilibrary.core.errors import InvalidStateError, NotFoundError
from unilibrary.models.models import Book, BorrowRecord

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, book_id: int) -> Book:
        book = self.db.query(Book).filter(Book.id == book_id).first()
        if not book:
            raise NotFoundError("Book not found")
        return book

    def get_by_rfid(self, rfid_tag: str) -> Book:
        book = self.db.query(Book).filter(Book.rfid_tag == rfid_tag).first()
        if not book:
            raise NotFoundError(f"Book not found with RFID tag: {rfid_tag}")
        return book

    def _check_unique(self, isbn: Optional[str], rfid_tag: Optional[str], exclude_id: Optional[int] = None):
        if isbn:
            query = self.db.query(Book).filter(Book.isbn == isbn)
            if exclude_id is not None:
                query = query.filter(Book.id != exclude_id)
            if query.first():
                raise InvalidStateError("ISBN already exists")
        if rfid_tag:
            query = self.db.query(Book).filter(Book.rfid_tag == rfid_tag)
            if exclude_id is not None:
                query = query.filter(Book.id != exclude_id)
            if query.first():
                raise InvalidStateError("RFID tag already assigned to another book")

    def create(self, data: dict) -> Book:
        self._check_unique(data.get("isbn"), data.get("rfid_tag"))
        book = Book(**data)
        book.title = book.title.strip()
        book.author = book.author.strip()
        book.available_copies = book.total_copies
        book.total_borrows = 0
        self.db.add(book)
        self.db.commit()
        self.db.refresh(book)
        logger.info(f"Created book id={book.id} title={book.title}")
        return book

    def update(self, book_id: int, data: dict) -> Book:
        book = self.get(book_id)
        self._check_unique(data.get("isbn"), data.get("rfid_tag"), exclude_id=book.id)
        # Changing the stock shifts availability by the same delta
        if data.get("total_copies") is not None:
            delta = data["total_copies"] - book.total_copies
            book.available_copies = max(0, book.available_copies + delta)
            book.total_copies = data["total_copies"]
        data.pop("total_copies", None)
        for k, v in data.items():
            setattr(book, k, v)
        self.db.commit()
        self.db.refresh(book)
        logger.info(f"Updated book id={book.id}")
        return book

    def delete(self, book_id: int) -> None:
        book = self.get(book_id)
        if book.total_copies > book.available_copies:
            raise InvalidStateError("Cannot delete book with active borrows")
        if self.db.query(BorrowRecord.id).filter(BorrowRecord.book_id == book.id).first():
            raise InvalidStateError("Cannot delete book with borrow history")
        self.db.delete(book)
        self.db.commit()
        logger.info(f"Deleted book id={book_id}")

    def search(self, q: Optional[str] = None, category: Optional[str] = None,
               available_only: bool = False, skip: int = 0, limit: int = 20) -> List[Book]:
        query = self.db.query(Book)
        if q:
            like_q = f"%{q}%"
            query = query.filter(or_(Book.title.ilike(like_q), Book.author.ilike(like_q),
                                     Book.isbn == q))
        if category:
            query = query.filter(Book.category.ilike(f"%{category}%"))
        if available_only:
            query = query.filter(Book.available_copies > 0)
        return query.order_by(Book.title).offset(skip).limit(limit).all()

    def popular(self, min_borrows: int = 1, limit: int = 20) -> List[Book]:
        return (
            self.db.query(Book)
            .filter(Book.total_borrows >= min_borrows)
            .order_by(Book.total_borrows.desc(), Book.title)
            .limit(limit)
            .all()
        )

    def needing_restock(self, threshold: int = 0) -> List[Book]:
        return (
            self.db.query(Book)
            .filter(Book.available_copies <= threshold)
            .order_by(Book.available_copies, Book.title)
            .all()
        )

    def import_csv(self, content: str) -> dict:
        """Upsert books from CSV with headers title,author,isbn,category,total_copies."""
        reader = csv.DictReader(io.StringIO(content))
        created = 0
        updated = 0
        errors = []
        for i, row in enumerate(reader, start=1):
            title = (row.get("title") or row.get("Title") or "").strip()
            author = (row.get("author") or row.get("Author") or "").strip()
            isbn = (row.get("isbn") or row.get("ISBN") or "").strip()
            category = (row.get("category") or "").strip() or None
            if not title or not author or not isbn:
                errors.append({"row": i, "error": "title, author and isbn are required"})
                continue
            try:
                copies = int(row.get("total_copies") or 1)
            except ValueError:
                errors.append({"row": i, "error": f"invalid total_copies: {row.get('total_copies')}"})
                continue
            if copies < 0:
                errors.append({"row": i, "error": "total_copies must be >= 0"})
                continue

            book = self.db.query(Book).filter(Book.isbn == isbn).first()
            if book:
                book.title = title
                book.author = author
                book.category = category or book.category
                if copies > book.total_copies:
                    book.available_copies += copies - book.total_copies
                    book.total_copies = copies
                updated += 1
            else:
                self.db.add(Book(title=title, author=author, isbn=isbn, category=category,
                                 total_copies=copies, available_copies=copies, total_borrows=0))
                # flush so a repeated ISBN later in the same file updates this row
                self.db.flush()
                created += 1
        self.db.commit()
        logger.info(f"CSV import finished created={created} updated={updated} errors={len(errors)}")
        return {"created": created, "updated": updated, "errors": errors}
