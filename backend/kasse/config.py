# backend/kasse/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/kasse.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///kasse.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Software identity written to the SAF-T header
    APP_NAME = os.environ.get("APP_NAME", "POS System")
    SAFT_SOFTWARE_COMPANY_NAME = os.environ.get("SAFT_SOFTWARE_COMPANY_NAME", APP_NAME)
    SAFT_SOFTWARE_ID = os.environ.get("SAFT_SOFTWARE_ID", APP_NAME)
    SAFT_SOFTWARE_VERSION = os.environ.get("SAFT_SOFTWARE_VERSION", "1.0")

    # Flat VAT policy (rate is a fraction, e.g. "0.25" = 25%)
    SAFT_VAT_RATE = os.environ.get("SAFT_VAT_RATE", "0.25")
    SAFT_TAX_CODE = os.environ.get("SAFT_TAX_CODE", "1")

    # Where generated files land; relative paths resolve against the instance folder
    SAFT_STORAGE_DIR = os.environ.get("SAFT_STORAGE_DIR", "saf-t")
    REPORT_STORAGE_DIR = os.environ.get("REPORT_STORAGE_DIR", "exports")
