from .database import engine, SessionLocal, Base, get_db, check_database

__all__ = ["engine", "SessionLocal", "Base", "get_db", "check_database"]
