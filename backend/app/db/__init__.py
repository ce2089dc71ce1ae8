"""
Persistence layer: engine and session factory, ORM models for users, cases,
documents, medical bills, chat, demand letters and AI prompts, plus the
Pydantic request/response schemas the API speaks.
"""

from app.db.database import Base, engine, SessionLocal, get_db, init_db
from app.db import models, schemas

__all__ = ["Base", "engine", "SessionLocal", "get_db", "init_db", "models", "schemas"]
