"""Fetch delimited text resources and split them into header and rows."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

import requests

from flowmap.config import FETCH_TIMEOUT_SECONDS
from flowmap.errors import ResourceUnavailable

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Table:
    """Raw string fields, no semantic interpretation."""

    header: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]


def _is_url(resource_id: str) -> bool:
    return resource_id.lower().startswith(("http://", "https://"))


def _fetch_text(resource_id: str, timeout: float) -> str:
    if _is_url(resource_id):
        try:
            response = requests.get(resource_id, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ResourceUnavailable(resource_id, str(exc)) from exc
        return response.text

    path = Path(resource_id)
    if not path.is_file():
        raise ResourceUnavailable(resource_id, "file not found")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ResourceUnavailable(resource_id, str(exc)) from exc


def split_table(text: str) -> Table:
    """Split on newline then comma. Quoted fields are not supported."""

    lines = [line for line in text.strip().splitlines() if line.strip()]
    if not lines:
        return Table(header=(), rows=())
    header = tuple(field.strip() for field in lines[0].split(","))
    rows = tuple(tuple(line.split(",")) for line in lines[1:])
    return Table(header=header, rows=rows)


def load_table(resource_id: str, timeout: float = FETCH_TIMEOUT_SECONDS) -> Table:
    """Load a local path or http(s) URL into a Table."""

    text = _fetch_text(resource_id, timeout)
    table = split_table(text)
    LOGGER.info("Loaded %s: %d data rows", resource_id, len(table.rows))
    return table


async def load_table_async(resource_id: str, timeout: float = FETCH_TIMEOUT_SECONDS) -> Table:
    return await asyncio.to_thread(load_table, resource_id, timeout)
