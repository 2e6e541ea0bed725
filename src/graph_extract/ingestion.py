from __future__ import annotations
from typing import List
from pathlib import Path
import math

import pandas as pd
from bs4 import BeautifulSoup
from pypdf import PdfReader

from .schemas import Segment
from .exceptions import InvalidConfiguration
from .config import settings


SUPPORTED_EXTENSIONS = {".pdf", ".csv", ".tsv", ".xlsx", ".html", ".htm", ".md", ".txt"}


def _debug(msg: str) :
    if settings.debug_pipeline:
        print(f"[INGEST] {msg}", flush=True)


def _load_text_from_pdf(path: Path) :
    _debug(f"Loading PDF: {path}")
    reader = PdfReader(str(path))
    texts = []
    for page_num, page in enumerate(reader.pages, start=1):
        texts.append(page.extract_text() or "")
        if page_num % 10 == 0:
            _debug(f"  Parsed {page_num} pages in {path.name}")
    return "\n".join(texts)


def _load_text_from_table(path: Path, sep: str = ",") :
    _debug(f"Loading table: {path}")
    if path.suffix.lower() == ".xlsx":
        df = pd.read_excel(path)
    else:
        df = pd.read_csv(path, sep=sep)
    return df.to_csv(index=False)


def _load_text_from_html(path: Path) :
    _debug(f"Loading HTML: {path}")
    html = path.read_text(encoding="utf-8", errors="ignore")
    soup = BeautifulSoup(html, "html.parser")
    for script in soup(["script", "style"]):
        script.extract()
    return soup.get_text(separator="\n")


def _load_text_from_md_or_txt(path: Path) :
    _debug(f"Loading text/markdown: {path}")
    return path.read_text(encoding="utf-8", errors="ignore")


def load_file_to_text(path: Path) :
    """Read any supported input file into the plain text handed to the pipeline."""
    ext = path.suffix.lower()
    if ext == ".pdf":
        return _load_text_from_pdf(path)
    if ext == ".csv":
        return _load_text_from_table(path)
    if ext == ".tsv":
        return _load_text_from_table(path, sep="\t")
    if ext == ".xlsx":
        return _load_text_from_table(path)
    if ext in {".html", ".htm"}:
        return _load_text_from_html(path)
    if ext in {".md", ".txt"}:
        return _load_text_from_md_or_txt(path)
    raise ValueError(f"Unsupported extension: {ext}")


def validate_bound(bound_size: int) :
    if isinstance(bound_size, bool) or not isinstance(bound_size, int) or bound_size <= 0:
        raise InvalidConfiguration(
            f"Segment size must be a positive integer, got {bound_size!r}"
        )


def segment_text(text: str, bound_size: int) -> List[Segment]:
    """
    Split text into contiguous, non-overlapping segments of at most
    bound_size characters. Concatenating the segments gives back the input.
    """
    validate_bound(bound_size)

    if len(text) <= bound_size:
        return [Segment(index=0, text=text, start=0)]

    count = math.ceil(len(text) / bound_size)
    segments = [
        Segment(index=i, text=text[i * bound_size : (i + 1) * bound_size], start=i * bound_size)
        for i in range(count)
    ]
    _debug(f"Split {len(text)} characters into {len(segments)} segments")
    return segments
