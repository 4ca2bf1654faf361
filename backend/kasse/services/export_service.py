# Overview: Writes generated SAF-T and report files to instance storage and guards downloads.

from __future__ import annotations

import os
from typing import Optional, Union

from flask import current_app

from ..models import Store
from .saft_service import generate_saft_cash_register
from .session_service import DateLike
from kasse.time_utils import coerce_date


class ExportError(Exception):
    """Raised when an export file cannot be produced or served."""
    pass


class ExportAccessError(ExportError):
    """Requested file does not belong to the store."""
    pass


class ExportNotFoundError(ExportError):
    pass


def storage_dir(config_key: str) -> str:
    """
    Absolute directory for a storage config key, created on demand.

    Relative paths resolve against the app instance folder.
    """
    configured = current_app.config.get(config_key)
    if not configured:
        raise ExportError(f"{config_key} is not configured")
    path = configured if os.path.isabs(configured) else os.path.join(current_app.instance_path, configured)
    os.makedirs(path, exist_ok=True)
    return path


def saft_filename(store: Store, from_date: DateLike, to_date: DateLike) -> str:
    return f"SAF-T_{store.slug}_{coerce_date(from_date):%Y-%m-%d}_{coerce_date(to_date):%Y-%m-%d}.xml"


def write_file(config_key: str, filename: str, content: Union[str, bytes]) -> dict:
    directory = storage_dir(config_key)
    path = os.path.join(directory, filename)
    data = content.encode("utf-8") if isinstance(content, str) else content
    with open(path, "wb") as fh:
        fh.write(data)
    return {"filename": filename, "path": path, "size": len(data)}


def export_saft_file(
    store: Store,
    from_date: DateLike,
    to_date: DateLike,
    *,
    output_path: Optional[str] = None,
) -> dict:
    """
    Generate the SAF-T file for a store and range and write it to storage.

    Returns filename, path, size and the normalized dates. An existing file
    with the same name is overwritten.
    """
    from_day = coerce_date(from_date)
    to_day = coerce_date(to_date)
    if to_day < from_day:
        raise ExportError("to_date must be on or after from_date")

    xml = generate_saft_cash_register(store, from_day, to_day)
    filename = saft_filename(store, from_day, to_day)

    if output_path:
        data = xml.encode("utf-8")
        with open(output_path, "wb") as fh:
            fh.write(data)
        result = {"filename": os.path.basename(output_path), "path": output_path, "size": len(data)}
    else:
        result = write_file("SAFT_STORAGE_DIR", filename, xml)

    current_app.logger.info(
        "SAF-T export written for store %s (%s to %s): %s (%d bytes)",
        store.id,
        from_day.isoformat(),
        to_day.isoformat(),
        result["path"],
        result["size"],
    )

    result.update({"from_date": from_day.isoformat(), "to_date": to_day.isoformat()})
    return result


def resolve_saft_download(store: Store, filename: str) -> str:
    """Absolute path of a stored SAF-T file that belongs to the store."""
    if os.path.basename(filename) != filename or not filename.startswith(f"SAF-T_{store.slug}_"):
        raise ExportAccessError("File does not belong to this store")

    path = os.path.join(storage_dir("SAFT_STORAGE_DIR"), filename)
    if not os.path.isfile(path):
        raise ExportNotFoundError("File not found")
    return path
