"""Small maintenance utilities: ``unilibrary initdb|seed|sweep|serve``."""

import argparse
import logging
from datetime import time

from unilibrary.core.config import settings
from unilibrary.core.database import Base, SessionLocal, engine
from unilibrary.models.models import Book, Librarian, LibrarianRole, LibraryHours
from unilibrary.scheduler import run_auto_exit_sweep
from unilibrary.services.auth import AuthService
from unilibrary.services.hours import LibraryHoursService

logging.basicConfig(level=settings.log_level,
                    format="%(asctime)s %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger("unilibrary")


def init_db() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")


def seed(admin_password: str) -> None:
    """Idempotent seed: one admin, default opening hours and a couple of books."""
    init_db()
    db = SessionLocal()
    try:
        auth = AuthService(db)
        if db.query(Librarian).count() == 0:
            auth.register_librarian("admin", admin_password, "Library", "Admin", "admin@library.local",
                                    staff_id="ADMIN-001", role=LibrarianRole.ADMIN)
        if db.query(LibraryHours).count() == 0:
            LibraryHoursService(db).save_hours(time(8, 0), time(18, 0), "MON,TUE,WED,THU,FRI", set_by="seed")
        if db.query(Book).count() == 0:
            db.add_all([
                Book(title="Data Engineering with Python", author="J. Reader", isbn="978-1111111111",
                     category="Computer Science", total_copies=3, available_copies=3, total_borrows=0),
                Book(title="Designing Data-Intensive Applications", author="Martin Kleppmann",
                     isbn="978-0980000000", category="Computer Science", total_copies=2, available_copies=2,
                     total_borrows=0),
            ])
            db.commit()
        logger.info("Seeded sample data")
    finally:
        db.close()


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(prog="unilibrary", description="University library utilities")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("initdb", help="Create tables")
    seed_parser = sub.add_parser("seed", help="Seed an admin account, opening hours and sample books")
    seed_parser.add_argument("--admin-password", default="admin123")
    sub.add_parser("sweep", help="Close open entries now if the library is closed")
    serve_parser = sub.add_parser("serve", help="Run the API with uvicorn")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")
    args = parser.parse_args(argv)

    if args.command == "initdb":
        init_db()
    elif args.command == "seed":
        seed(args.admin_password)
    elif args.command == "sweep":
        init_db()
        closed = run_auto_exit_sweep()
        print(f"Auto-exited {closed} open entr{'y' if closed == 1 else 'ies'}")
    elif args.command == "serve":
        import uvicorn
        uvicorn.run("unilibrary.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
