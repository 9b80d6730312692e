"""Helper functions for chunking iterables."""
from collections.abc import Iterable, Iterator
from itertools import islice
from typing import TypeVar

T = TypeVar("T")


def chunked(iterable: Iterable[T], size: int) -> Iterator[list[T]]:
    """Yield successive chunks to bound the size of each DB write."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    iterator = iter(iterable)
    while batch := list(islice(iterator, size)):
        yield batch
