# attachments.py
from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Iterable, List

from loguru import logger


@dataclass(frozen=True)
class Blob:
    data: bytes
    media_type: str
    name: str = ""


def is_image(blob: Blob) -> bool:
    return (blob.media_type or "").lower().startswith("image/")


def to_data_uri(blob: Blob) -> str:
    b64 = base64.b64encode(blob.data).decode("ascii")
    return f"data:{blob.media_type.lower()};base64,{b64}"


def ingest_files(blobs: Iterable[Blob]) -> List[str]:
    """Images only, in the order given; everything else is skipped."""
    out: List[str] = []
    for blob in blobs:
        if not is_image(blob):
            logger.debug("ingest_files: skipping '{}' ({})", blob.name, blob.media_type)
            continue
        out.append(to_data_uri(blob))
    logger.debug("ingest_files → {} image(s)", len(out))
    return out
