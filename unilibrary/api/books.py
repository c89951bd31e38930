from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from unilibrary.core.database import get_db
from unilibrary.core.security import require
from unilibrary.schemas import schemas
from unilibrary.services.catalog import CatalogService

router = APIRouter(prefix="/books", tags=["books"])


@router.post("/", response_model=schemas.BookOut, dependencies=[Depends(require("catalog:write"))])
def create_book(book_in: schemas.BookCreate, db: Session = Depends(get_db)):
    return CatalogService(db).create(book_in.model_dump())


@router.get("/", response_model=List[schemas.BookOut], dependencies=[Depends(require("catalog:read"))])
def list_books(q: Optional[str] = Query(None, description="search title, author or ISBN"),
               category: Optional[str] = None, available_only: bool = False,
               skip: int = 0, limit: int = 20, db: Session = Depends(get_db)):
    return CatalogService(db).search(q=q, category=category, available_only=available_only,
                                     skip=skip, limit=limit)


@router.get("/popular", response_model=List[schemas.BookOut], dependencies=[Depends(require("catalog:read"))])
def popular_books(min_borrows: int = 1, limit: int = 20, db: Session = Depends(get_db)):
    return CatalogService(db).popular(min_borrows=min_borrows, limit=limit)


@router.get("/restock", response_model=List[schemas.BookOut], dependencies=[Depends(require("catalog:write"))])
def books_needing_restock(threshold: int = 0, db: Session = Depends(get_db)):
    return CatalogService(db).needing_restock(threshold)


@router.get("/rfid/{rfid_tag}", response_model=schemas.BookOut, dependencies=[Depends(require("catalog:read"))])
def read_book_by_rfid(rfid_tag: str, db: Session = Depends(get_db)):
    return CatalogService(db).get_by_rfid(rfid_tag)


@router.post("/import/csv", response_model=schemas.ImportResult, dependencies=[Depends(require("catalog:write"))])
def import_books_csv(file: UploadFile = File(...), db: Session = Depends(get_db)):
    """Accepts CSV with headers: title,author,isbn,category,total_copies"""
    content = file.file.read().decode("utf-8-sig")
    return CatalogService(db).import_csv(content)


@router.get("/{book_id}", response_model=schemas.BookOut, dependencies=[Depends(require("catalog:read"))])
def read_book(book_id: int, db: Session = Depends(get_db)):
    return CatalogService(db).get(book_id)


@router.put("/{book_id}", response_model=schemas.BookOut, dependencies=[Depends(require("catalog:write"))])
def update_book(book_id: int, book_upd: schemas.BookUpdate, db: Session = Depends(get_db)):
    return CatalogService(db).update(book_id, book_upd.model_dump(exclude_unset=True))


@router.delete("/{book_id}", dependencies=[Depends(require("catalog:write"))])
def delete_book(book_id: int, db: Session = Depends(get_db)):
    CatalogService(db).delete(book_id)
    return {"ok": True}
