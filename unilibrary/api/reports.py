from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from unilibrary.api.deps import ensure_student_access
from unilibrary.core.database import get_db
from unilibrary.core.security import Principal, require
from unilibrary.services.reports import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/librarian/summary", dependencies=[Depends(require("reports:read"))])
def librarian_summary(period: str = Query("monthly", description="daily, weekly, monthly or yearly"),
                      db: Session = Depends(get_db)):
    return ReportService(db).librarian_summary(period)


@router.get("/student/{student_pk}/summary")
def student_summary(student_pk: int, period: str = Query("monthly"),
                    principal: Principal = Depends(require("self:read")), db: Session = Depends(get_db)):
    ensure_student_access(principal, student_pk, db, staff_capability="reports:read")
    return ReportService(db).student_summary(student_pk, period)


@router.get("/export/top-borrowed.csv", dependencies=[Depends(require("reports:read"))])
def export_top_borrowed(limit: int = 50, db: Session = Depends(get_db)):
    """Top borrowed books by number of borrow records."""
    content = ReportService(db).top_borrowed_csv(limit=limit)
    return Response(content=content, media_type="text/csv",
                    headers={"Content-Disposition": 'attachment; filename="analytics_top_borrowed.csv"'})
