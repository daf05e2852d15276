# civic_reports/db/session.py
from fastapi import Request

from civic_reports.core.config import Settings
from civic_reports.db.mongo import Mongo


def get_db(request: Request) -> Mongo:
    """
    FastAPI dependency that returns the Mongo holder owned by the app
    """
    return request.app.state.mongo


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
