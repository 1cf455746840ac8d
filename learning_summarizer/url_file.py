import logging
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from .discovery import is_valid_course_url

logger = logging.getLogger(__name__)


def parse_urls(lines: Iterable[str]) -> List[str]:
    """Trimmed URLs in file order, skipping blank and ``#`` comment lines."""
    urls = list()
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        urls.append(stripped)
    return urls


def read_url_file(path: Union[str, Path]) -> List[str]:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        urls = parse_urls(f.read().splitlines())
    logger.info(f"Read {len(urls)} URL(s) from {path}")
    return urls


def split_valid_urls(urls: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Partition URLs into LinkedIn Learning course URLs and everything else."""
    valid, invalid = list(), list()
    for url in urls:
        (valid if is_valid_course_url(url) else invalid).append(url)
    return valid, invalid
